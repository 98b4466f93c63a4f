"""
Registration status resolution and registration date formatting
"""
from datetime import date
from typing import Optional

from campfinder.models.camp import Camp, RegistrationStatus

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

STATUS_BADGE_CLASSES = {
    RegistrationStatus.OPEN_NOW: "badge-status-open",
    RegistrationStatus.COMING_SOON: "badge-status-coming-soon",
    RegistrationStatus.NOT_UPDATED: "badge-status-not-updated",
}


def parse_opens_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` string into a date.

    Returns None for blank input, anything that is not three dash separated
    integers, and dates that do not exist on the calendar (e.g. 2026-02-30).
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None

    parts = value.split("-")
    if len(parts) != 3:
        return None
    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        return None


def compute_registration_status(camp: Camp, today: Optional[date] = None) -> RegistrationStatus:
    """
    Resolve the status to display for a camp.

    A stored "Coming Soon" goes stale once the opening date passes, so a past
    opening date wins over any stored value except an explicit "Not Updated".
    Without a usable stored value the status is computed from the date alone.
    """
    today = today or date.today()
    stored = (camp.registration_status or "").strip()
    opens = parse_opens_date(camp.registration_opens_date)

    if opens is not None and opens < today and stored != RegistrationStatus.NOT_UPDATED.value:
        return RegistrationStatus.OPEN_NOW

    if stored in RegistrationStatus.values():
        return RegistrationStatus(stored)

    if not (camp.registration_opens_date or "").strip():
        return RegistrationStatus.NOT_UPDATED

    if opens is None:
        return RegistrationStatus.NOT_UPDATED
    return RegistrationStatus.OPEN_NOW if opens < today else RegistrationStatus.COMING_SOON


def format_registration_date(date_str: Optional[str], time_str: Optional[str] = None) -> Optional[str]:
    """
    Format an opening date as ``"Feb 2, 2026"``, adding ``" at 7am"`` when a
    time is given. The time is display text and is passed through untouched.
    """
    opens = parse_opens_date(date_str)
    if opens is None:
        return None

    formatted = f"{MONTH_ABBREVIATIONS[opens.month - 1]} {opens.day}, {opens.year}"
    if time_str and str(time_str).strip():
        formatted = f"{formatted} at {time_str}"
    return formatted


def status_badge_class(status: RegistrationStatus) -> str:
    return STATUS_BADGE_CLASSES[status]
