"""
Relaxation strategies tried when a ride search comes back empty.

Each strategy is a pure function from the original search parameters and
structured query to a broader set of parameters, plus a narrative prefix
explaining what was relaxed. Strategies run in list order and the first
non-empty search wins. Relaxation is cumulative: later strategies drop
everything earlier ones dropped.
"""

from collections.abc import Callable
from dataclasses import dataclass

from ridebot.config import Settings
from ridebot.models import SearchParameters, StructuredQuery
from ridebot.services.date_ranges import describe_date_range
from ridebot.services.formatting import KM_PER_MILE, Units


@dataclass(frozen=True)
class RelaxationStrategy:
    """One step of the relaxation sequence."""

    name: str
    """Identifier reported in InterpretationResult.relaxation"""

    relax_fn: Callable[[SearchParameters, StructuredQuery, Settings], SearchParameters | None]
    """Returns broader parameters, or None when the strategy does not apply."""

    narrative_fn: Callable[[StructuredQuery, SearchParameters, Units], str]
    """Builds the sentence shown above the relaxed results, in the requester's units."""

    requires_location: bool = False

    def relax(
        self, params: SearchParameters, query: StructuredQuery, settings: Settings
    ) -> SearchParameters | None:
        if self.requires_location and not params.has_location:
            return None
        return self.relax_fn(params, query, settings)


def _nearby(params: SearchParameters) -> str:
    return " nearby" if params.has_location else ""


def _without_type(params: SearchParameters) -> SearchParameters:
    return params.model_copy(
        update={"discipline": None, "distance_min": None, "distance_max": None}
    )


def _broaden_type(
    params: SearchParameters, query: StructuredQuery, settings: Settings
) -> SearchParameters | None:
    if params.discipline is None and params.distance_min is None and params.distance_max is None:
        return None
    return _without_type(params)


def _broaden_type_narrative(
    query: StructuredQuery, params: SearchParameters, units: Units = "km"
) -> str:
    kind = "rides of that length"
    if query.discipline is not None:
        label = "MTB" if query.discipline.value == "mtb" else query.discipline.value
        kind = f"{label} rides"

    when = describe_date_range(query.date_range)
    when_suffix = f" {when}" if when else ""
    return f"No {kind} found{when_suffix}. Here are other rides{_nearby(params)}{when_suffix}:"


def _broaden_date(
    params: SearchParameters, query: StructuredQuery, settings: Settings
) -> SearchParameters | None:
    if params.date_from is None and params.date_to is None:
        return None
    return _without_type(params).model_copy(update={"date_from": None, "date_to": None})


def _broaden_date_narrative(
    query: StructuredQuery, params: SearchParameters, units: Units = "km"
) -> str:
    when = describe_date_range(query.date_range) or "for those dates"
    return f"No rides found {when}. Here's what's coming up{_nearby(params)} instead:"


def _location_only(
    params: SearchParameters, query: StructuredQuery, settings: Settings
) -> SearchParameters:
    return SearchParameters(
        lat=params.lat,
        lng=params.lng,
        radius=settings.relaxed_radius_km,
        result_limit=params.result_limit,
    )


def _location_only_narrative(
    query: StructuredQuery, params: SearchParameters, units: Units = "km"
) -> str:
    if units == "mi":
        within = f"{round(params.radius / KM_PER_MILE)} mi"
    else:
        within = f"{params.radius:g} km"
    return (
        "No rides matched all of your filters. "
        f"Here are the closest upcoming rides within {within}:"
    )


BROADEN_TYPE = RelaxationStrategy(
    name="broaden_type",
    relax_fn=_broaden_type,
    narrative_fn=_broaden_type_narrative,
)

BROADEN_DATE = RelaxationStrategy(
    name="broaden_date",
    relax_fn=_broaden_date,
    narrative_fn=_broaden_date_narrative,
)

LOCATION_ONLY = RelaxationStrategy(
    name="location_only",
    relax_fn=_location_only,
    narrative_fn=_location_only_narrative,
    requires_location=True,
)

RELAXATION_STRATEGIES: tuple[RelaxationStrategy, ...] = (
    BROADEN_TYPE,
    BROADEN_DATE,
    LOCATION_ONLY,
)
