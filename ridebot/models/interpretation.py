"""Output of the query interpretation engine."""

from enum import Enum

from pydantic import BaseModel, Field

from ridebot.models.query import StructuredQuery
from ridebot.models.rides import RideCandidate, SearchParameters


class Outcome(str, Enum):
    """How an interpretation ended."""

    HELP = "help"
    LOCATION_NOT_FOUND = "location_not_found"
    LOCATION_REQUIRED = "location_required"
    RESULTS = "results"
    RELAXED = "relaxed"
    NO_RESULTS = "no_results"


class InterpretationResult(BaseModel):
    """Rides plus the narrative shown to the user."""

    rides: list[RideCandidate] = Field(default_factory=list)
    narrative: str
    outcome: Outcome
    relaxation: str | None = Field(
        default=None, description="Relaxation strategy that produced the rides"
    )
    location_label: str | None = None
    query: StructuredQuery | None = None
    search_params: SearchParameters | None = None
