#camp.py
"""
Pydantic models for camp data validation
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RegistrationStatus(str, Enum):
    """
    Normalized registration status shown on camp cards and detail pages
    """
    OPEN_NOW = "Open Now"
    COMING_SOON = "Coming Soon"
    NOT_UPDATED = "Not Updated"

    @classmethod
    def values(cls) -> List[str]:
        return [status.value for status in cls]


class Camp(BaseModel):
    """
    One camp record from the Camps table.

    Attribute names are snake_case; aliases are the Airtable field names so a
    record's ``fields`` mapping can be validated directly.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str
    name: str = Field(default="", alias="Camp Name")
    primary_category: Optional[str] = Field(default=None, alias="Primary Category")
    age_min: Optional[int] = Field(default=None, alias="Age Min")
    age_max: Optional[int] = Field(default=None, alias="Age Max")
    cost_per_week: Optional[float] = Field(default=None, alias="Cost Per Week")
    cost_display: Optional[str] = Field(default=None, alias="Cost Display")
    city: Optional[str] = Field(default=None, alias="City")
    location_name: Optional[str] = Field(default=None, alias="Location Name")
    address: Optional[str] = Field(default=None, alias="Address")
    has_after_care: bool = Field(default=False, alias="Has After Care")
    description: Optional[str] = Field(default=None, alias="Description")
    short_description: Optional[str] = Field(default=None, alias="Short Description")
    activities: List[str] = Field(default_factory=list, alias="Activities")
    featured: bool = Field(default=False, alias="Featured")
    registration_status: Optional[str] = Field(default=None, alias="Registration Status")
    registration_opens_date: Optional[str] = Field(default=None, alias="Registration Opens Date")
    registration_opens_time: Optional[str] = Field(default=None, alias="Registration Opens Time")
    website: Optional[str] = Field(default=None, alias="Website")
    registration_url: Optional[str] = Field(default=None, alias="Registration URL")
    session_dates: Optional[str] = Field(default=None, alias="Session Dates")
    weeks_offered: Optional[str] = Field(default=None, alias="Weeks Offered")
    schedule_notes: Optional[str] = Field(default=None, alias="Schedule Notes")
    registration_notes: Optional[str] = Field(default=None, alias="Registration Notes")
    extended_care_notes: Optional[str] = Field(default=None, alias="Extended Care Notes")

    @field_validator("activities", mode="before")
    @classmethod
    def validate_activities(cls, v):
        """Accept a multi-select list or a comma separated string"""
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return [str(item) for item in v if item]

    @field_validator("has_after_care", "featured", mode="before")
    @classmethod
    def validate_flags(cls, v):
        """Unchecked checkboxes are omitted by Airtable"""
        return bool(v)

    @field_validator(
        "session_dates", "weeks_offered", "registration_opens_date",
        "registration_opens_time", mode="before",
    )
    @classmethod
    def validate_text(cls, v):
        """Numbers and dates typed into text columns still render as text"""
        if v is None:
            return None
        return str(v)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Camp":
        """
        Build a Camp from an Airtable record ``{"id": ..., "fields": {...}}``
        """
        fields = dict(record.get("fields") or {})
        fields.pop("id", None)
        # "Dates" is the older column name for session dates
        if "Session Dates" not in fields and "Dates" in fields:
            fields["Session Dates"] = fields["Dates"]
        return cls(id=record.get("id"), **fields)

    @property
    def link(self) -> Optional[str]:
        return self.website or self.registration_url

    @property
    def age_text(self) -> Optional[str]:
        if self.age_min is None or self.age_max is None:
            return None
        return f"{self.age_min}-{self.age_max}"

    @property
    def cost_text(self) -> Optional[str]:
        if self.cost_display:
            return self.cost_display
        if self.cost_per_week is None:
            return None
        return f"${self.cost_per_week:g}"


class Category(BaseModel):
    """
    A camp category with its denormalized camp count
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: Optional[str] = None
    name: str = Field(alias="Category Name")
    camp_count: int = Field(default=0, alias="Camp Count")
    icon: Optional[str] = Field(default=None, alias="Icon")

    @field_validator("camp_count", mode="before")
    @classmethod
    def validate_count(cls, v):
        return v or 0

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Category":
        fields = dict(record.get("fields") or {})
        fields.pop("id", None)
        return cls(id=record.get("id"), **fields)


class FilterSpec(BaseModel):
    """
    Active search/filter criteria for one browse request.

    ``None`` means the numeric criterion is inactive; ``"all"`` is the
    inactive sentinel for city and category.
    """
    model_config = ConfigDict(frozen=True)

    search_query: str = ""
    age: Optional[int] = None
    max_price: Optional[float] = None
    city: Optional[str] = "all"
    category: Optional[str] = "all"
    after_care: bool = False

    @classmethod
    def from_params(
        cls,
        q: Optional[str] = None,
        age: Optional[str] = None,
        max_price: Optional[str] = None,
        city: Optional[str] = None,
        category: Optional[str] = None,
        after_care: Optional[str] = None,
    ) -> "FilterSpec":
        """
        Build a spec from raw form/query values, dropping anything unusable
        """
        return cls(
            search_query=(q or "").strip(),
            age=_parse_number(age, int),
            max_price=_parse_number(max_price, float),
            city=city or "all",
            category=category or "all",
            after_care=(after_care or "").strip().lower() in ("1", "true", "on", "yes"),
        )

    def to_params(self) -> Dict[str, str]:
        """Query parameters that reproduce this spec on /browse"""
        params: Dict[str, str] = {}
        if self.search_query:
            params["q"] = self.search_query
        if self.age is not None:
            params["age"] = str(self.age)
        if self.max_price is not None:
            params["max_price"] = f"{self.max_price:g}"
        if self.city and self.city != "all":
            params["city"] = self.city
        if self.category and self.category != "all":
            params["category"] = self.category
        if self.after_care:
            params["after_care"] = "true"
        return params


def _parse_number(value: Optional[str], kind):
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    try:
        return kind(float(value)) if kind is int else kind(value)
    except (ValueError, OverflowError):
        return None


class FeedbackSubmission(BaseModel):
    """
    Validated feedback payload
    """
    rating: Union[int, float]
    suggestions: Optional[str] = None
    page: Optional[str] = None

    def to_fields(self, submitted_at: str) -> Dict[str, Any]:
        """Airtable fields for the Feedback table"""
        fields: Dict[str, Any] = {
            "Rating": self.rating,
            "Submitted At": submitted_at,
        }
        if self.suggestions:
            fields["Suggestions"] = self.suggestions
        if self.page:
            fields["Page"] = self.page
        return fields


class AuthenticatedUser(BaseModel):
    """
    Claims of a verified Supabase access token
    """
    sub: str
    email: Optional[str] = None
    role: Optional[str] = None
