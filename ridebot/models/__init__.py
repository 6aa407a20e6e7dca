"""Data models for the RidesWith query bot."""

from .interpretation import InterpretationResult, Outcome
from .query import (
    RELATIVE_DATE_TOKENS,
    DateRange,
    Discipline,
    Intent,
    LocationHint,
    NumericRange,
    RelativeDate,
    StructuredQuery,
)
from .requester import RequesterContext
from .rides import RideBrand, RideCandidate, RideOrganizer, SearchParameters

__all__ = [
    "DateRange",
    "Discipline",
    "Intent",
    "InterpretationResult",
    "LocationHint",
    "NumericRange",
    "Outcome",
    "RELATIVE_DATE_TOKENS",
    "RelativeDate",
    "RequesterContext",
    "RideBrand",
    "RideCandidate",
    "RideOrganizer",
    "SearchParameters",
    "StructuredQuery",
]
