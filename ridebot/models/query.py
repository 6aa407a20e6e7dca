"""Structured query models produced by the language-understanding adapter."""

from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Annotated, Any, Literal, get_args

import dateparser
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

RelativeDate = Literal["today", "tomorrow", "this_weekend", "this_week", "next_week"]

RELATIVE_DATE_TOKENS: tuple[str, ...] = get_args(RelativeDate)


class CamelModel(BaseModel):
    """Base model accepting camelCase keys from providers and snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Intent(str, Enum):
    """What the user wants from this message."""

    SEARCH = "search"
    DETAIL = "detail"
    HELP = "help"
    UNKNOWN = "unknown"


class Discipline(str, Enum):
    """Riding discipline."""

    ROAD = "road"
    GRAVEL = "gravel"
    MTB = "mtb"
    MIXED = "mixed"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _coerce_calendar_date(value: Any, info: ValidationInfo) -> Any:
    """Accept ISO dates first, then anything dateparser understands.

    Relative phrases ("Saturday", "next Friday") are anchored on the
    ``today`` date passed as validation context, else on the clock.
    """
    if value is None or isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    settings: dict[str, Any] = {"PREFER_DATES_FROM": "future"}
    today = (info.context or {}).get("today")
    if isinstance(today, date):
        settings["RELATIVE_BASE"] = datetime.combine(today, time.min)

    parsed = dateparser.parse(text, settings=settings)
    if parsed is None:
        raise ValueError(f"Unrecognised date: {text!r}")
    return parsed.date()


OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
CalendarDate = Annotated[date | None, BeforeValidator(_coerce_calendar_date)]


class LocationHint(CamelModel):
    """Where the user wants to ride."""

    name: OptionalText = Field(default=None, description="Free-text place to geocode")
    use_user_location: bool = Field(
        default=False, description="Use the requester's saved coordinates"
    )

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.use_user_location


class DateRange(CamelModel):
    """Either explicit calendar bounds or one relative token."""

    start: CalendarDate = Field(default=None, alias="from")
    end: CalendarDate = Field(default=None, alias="to")
    relative: RelativeDate | None = None

    @field_validator("relative", mode="before")
    @classmethod
    def _normalise_relative(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower().replace(" ", "_")
            return value or None
        return value

    @model_validator(mode="after")
    def _single_representation(self) -> DateRange:
        if self.relative is not None:
            self.start = None
            self.end = None
        elif self.start and self.end and self.start > self.end:
            self.start, self.end = self.end, self.start
        return self

    @property
    def is_empty(self) -> bool:
        return self.relative is None and self.start is None and self.end is None


class NumericRange(CamelModel):
    """Lower/upper bounds, both optional."""

    min: float | None = Field(default=None, gt=0)
    max: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _ordered(self) -> NumericRange:
        if self.min is not None and self.max is not None and self.min > self.max:
            self.min, self.max = self.max, self.min
        return self

    @property
    def is_empty(self) -> bool:
        return self.min is None and self.max is None


class StructuredQuery(CamelModel):
    """Best-effort structured reading of one chat message.

    Every field is advisory. Missing fields mean "unconstrained".
    """

    intent: Intent = Intent.UNKNOWN
    location: LocationHint | None = None
    radius: float | None = Field(default=None, gt=0, description="Search radius in km")
    date_range: DateRange | None = None
    pace: NumericRange | None = Field(default=None, description="Pace in km/h")
    distance: NumericRange | None = Field(default=None, description="Ride length in km")
    community: OptionalText = Field(default=None, description="Community slug")
    chapter: OptionalText = Field(
        default=None, description="Local chapter name (parsed, not filtered on)"
    )
    discipline: Discipline | None = None

    @field_validator("intent", "discipline", mode="before")
    @classmethod
    def _lowercase_enum(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def has_filters(self) -> bool:
        """Whether any non-location constraint was recovered."""
        return any(
            (
                self.date_range is not None and not self.date_range.is_empty,
                self.pace is not None and not self.pace.is_empty,
                self.distance is not None and not self.distance.is_empty,
                self.community is not None,
                self.discipline is not None,
            )
        )
