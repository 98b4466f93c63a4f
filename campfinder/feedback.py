"""
Visitor feedback: validation and submission to the Feedback table
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from campfinder.airtable.client import AirtableClient
from campfinder.config import FEEDBACK_TABLE, logger
from campfinder.models.camp import FeedbackSubmission

RATING_ERROR = "Rating must be a number between 1 and 5"


class FeedbackValidationError(ValueError):
    pass


def _clean_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def validate_feedback(body: Any) -> FeedbackSubmission:
    """
    Check a decoded JSON body. Booleans are not ratings even though Python
    treats them as ints.
    """
    if not isinstance(body, dict):
        raise FeedbackValidationError(RATING_ERROR)

    rating = body.get("rating")
    if isinstance(rating, bool) or not isinstance(rating, (int, float)):
        raise FeedbackValidationError(RATING_ERROR)
    if not 1 <= rating <= 5:
        raise FeedbackValidationError(RATING_ERROR)

    return FeedbackSubmission(
        rating=rating,
        suggestions=_clean_text(body.get("suggestions")),
        page=_clean_text(body.get("page")),
    )


def submitted_at(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def submit_feedback(client: AirtableClient, feedback: FeedbackSubmission) -> Dict[str, Any]:
    """
    Create the Feedback record and return it; AirtableError propagates
    """
    record = await client.create_record(FEEDBACK_TABLE, feedback.to_fields(submitted_at()))
    logger.info(f"Feedback recorded: rating={feedback.rating} page={feedback.page}")
    return record
