"""
Query interpretation engine for the ride chat bot.

Turns a free-text message into a bounded ride search:

1. Parse the message into a StructuredQuery (language-understanding adapter)
2. Resolve the location (geocode a named place, or use the saved one)
3. Resolve radius and dates into SearchParameters
4. Run the primary search
5. On zero results, walk the relaxation strategies until one finds rides
6. Render the outcome as narrative text

Every external call is bounded by a timeout and degrades to an empty value,
so the engine always returns a narrative. The one early exit is a named
place that cannot be geocoded.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Sequence
from datetime import datetime
from typing import TypeVar

from ridebot.agents.relaxation import RELAXATION_STRATEGIES, RelaxationStrategy
from ridebot.config import Settings, get_settings
from ridebot.models import (
    Intent,
    InterpretationResult,
    Outcome,
    RequesterContext,
    RideCandidate,
    SearchParameters,
    StructuredQuery,
)
from ridebot.services.chat_commands import SEARCH_PROMPT
from ridebot.services.date_ranges import resolve_date_range
from ridebot.services.formatting import (
    NO_RIDES_MESSAGE,
    escape_html,
    format_ride_list,
    format_single_ride,
)
from ridebot.services.geocoding import NominatimClient, get_geocoder
from ridebot.services.query_parser import QueryParserClient, get_query_parser
from ridebot.services.rides import RidesWithClient, get_rides_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOCATION_REQUIRED_MESSAGE = (
    "📍 I don't have your location yet!\n\n"
    "Share your location, or tell me where to look, e.g. \"rides near Berlin\"."
)


def location_not_found_message(name: str) -> str:
    """Reply for a place name that could not be geocoded."""
    return (
        f'📍 I couldn\'t find "{escape_html(name)}". '
        'Try being more specific (e.g., "Berlin, Germany").'
    )


class QueryInterpreter:
    """Coordinates parsing, geocoding, searching and relaxation for one message."""

    def __init__(
        self,
        parser: QueryParserClient | None = None,
        geocoder: NominatimClient | None = None,
        rides: RidesWithClient | None = None,
        settings: Settings | None = None,
        strategies: Sequence[RelaxationStrategy] = RELAXATION_STRATEGIES,
    ):
        self.parser = parser or get_query_parser()
        self.geocoder = geocoder or get_geocoder()
        self.rides = rides or get_rides_client()
        self.settings = settings or get_settings()
        self.strategies = tuple(strategies)

    def _now(self, now: datetime | None) -> datetime:
        tz = self.settings.tz
        if now is None:
            return datetime.now(tz)
        if now.tzinfo is None:
            return now.replace(tzinfo=tz)
        return now.astimezone(tz)

    async def _guarded(self, label: str, call: Awaitable[T], default: T) -> T:
        """Await an external call with a timeout, mapping any failure to ``default``."""
        try:
            return await asyncio.wait_for(call, timeout=self.settings.external_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "⏱️ [Interpret] %s timed out after %.1fs",
                label,
                self.settings.external_timeout_seconds,
            )
        except Exception as e:
            logger.error("%s failed: %s", label, e, exc_info=True)
        return default

    async def _search(self, params: SearchParameters) -> list[RideCandidate]:
        return await self._guarded("Ride search", self.rides.search_rides(params), [])

    async def interpret_and_search(
        self,
        raw_text: str,
        requester: RequesterContext | None = None,
        now: datetime | None = None,
    ) -> InterpretationResult:
        """
        Interpret a chat message and search for matching rides.

        Args:
            raw_text: The user's message
            requester: Saved preferences of the sender (read-only)
            now: Anchor for relative dates; defaults to the server clock

        Returns:
            InterpretationResult with rides and narrative; never raises for
            provider failures
        """
        trace_id = str(uuid.uuid4())[:8]
        requester = requester or RequesterContext()
        now = self._now(now)

        text = (raw_text or "").strip()
        if not text:
            return InterpretationResult(narrative=SEARCH_PROMPT, outcome=Outcome.HELP)

        logger.debug("💬 [Interpret] Message | trace=%s length=%d", trace_id, len(text))
        start_time = time.perf_counter()

        query = await self._guarded(
            "Query parsing",
            self.parser.parse_ride_query(text, now.date()),
            StructuredQuery(intent=Intent.UNKNOWN),
        )
        logger.debug(
            "🧠 [Interpret] Parsed | trace=%s intent=%s query=%s",
            trace_id,
            query.intent.value,
            query.model_dump(exclude_none=True, mode="json"),
        )

        params = SearchParameters(result_limit=self.settings.result_limit)
        location_label: str | None = None

        if query.location is not None and query.location.name:
            name = query.location.name
            geocoded = await self._guarded(
                "Geocoding", self.geocoder.geocode_by_name(name), None
            )
            if geocoded is None:
                logger.debug("📍 [Interpret] Place not found | trace=%s name=%s", trace_id, name)
                return InterpretationResult(
                    narrative=location_not_found_message(name),
                    outcome=Outcome.LOCATION_NOT_FOUND,
                    query=query,
                )
            params.lat, params.lng = geocoded.latitude, geocoded.longitude
            location_label = geocoded.city or name
        elif (
            query.location is not None
            and query.location.use_user_location
            and requester.has_location
        ):
            params.lat, params.lng = requester.latitude, requester.longitude
            location_label = requester.city

        if not params.has_location and not query.has_filters():
            # Nothing usable was recovered: fall back to nearest rides
            if not requester.has_location:
                return InterpretationResult(
                    narrative=LOCATION_REQUIRED_MESSAGE,
                    outcome=Outcome.LOCATION_REQUIRED,
                    query=query,
                )
            params.lat, params.lng = requester.latitude, requester.longitude
            location_label = requester.city

        if params.has_location:
            params.radius = (
                query.radius or requester.default_radius or self.settings.default_radius_km
            )

        params.date_from, params.date_to = resolve_date_range(query.date_range, now)

        if query.pace is not None:
            params.pace_min, params.pace_max = query.pace.min, query.pace.max
        if query.distance is not None:
            params.distance_min, params.distance_max = query.distance.min, query.distance.max
        params.community_slug = query.community
        params.discipline = query.discipline

        rides = await self._search(params)
        logger.debug(
            "🔍 [Interpret] Primary search | trace=%s results=%d duration=%.2fs",
            trace_id,
            len(rides),
            time.perf_counter() - start_time,
        )

        if rides:
            return InterpretationResult(
                rides=rides,
                narrative=self._render(rides, location_label, params, requester, now),
                outcome=Outcome.RESULTS,
                location_label=location_label,
                query=query,
                search_params=params,
            )

        return await self._relax(query, params, requester, now, location_label, trace_id)

    async def _relax(
        self,
        query: StructuredQuery,
        params: SearchParameters,
        requester: RequesterContext,
        now: datetime,
        location_label: str | None,
        trace_id: str,
    ) -> InterpretationResult:
        """Try each relaxation strategy in order until one finds rides."""
        tried = [params]

        for strategy in self.strategies:
            relaxed = strategy.relax(params, query, self.settings)
            if relaxed is None or relaxed in tried:
                continue
            tried.append(relaxed)

            rides = await self._search(relaxed)
            logger.debug(
                "🔁 [Interpret] Relaxation | trace=%s strategy=%s results=%d",
                trace_id,
                strategy.name,
                len(rides),
            )
            if rides:
                prefix = strategy.narrative_fn(query, relaxed, requester.unit_preference)
                listing = self._render(rides, location_label, relaxed, requester, now)
                return InterpretationResult(
                    rides=rides,
                    narrative=f"{prefix}\n\n{listing}",
                    outcome=Outcome.RELAXED,
                    relaxation=strategy.name,
                    location_label=location_label,
                    query=query,
                    search_params=relaxed,
                )

        logger.debug("📭 [Interpret] No results | trace=%s attempts=%d", trace_id, len(tried))
        return InterpretationResult(
            narrative=NO_RIDES_MESSAGE,
            outcome=Outcome.NO_RESULTS,
            location_label=location_label,
            query=query,
            search_params=params,
        )

    def _render(
        self,
        rides: list[RideCandidate],
        location_label: str | None,
        params: SearchParameters,
        requester: RequesterContext,
        now: datetime,
    ) -> str:
        return format_ride_list(
            rides,
            location_label,
            params.lat,
            params.lng,
            now=now,
            units=requester.unit_preference,
        )

    async def find_nearby(
        self, requester: RequesterContext, now: datetime | None = None
    ) -> InterpretationResult:
        """Nearest upcoming rides at the requester's saved location."""
        if not requester.has_location:
            return InterpretationResult(
                narrative=LOCATION_REQUIRED_MESSAGE, outcome=Outcome.LOCATION_REQUIRED
            )

        now = self._now(now)
        params = SearchParameters(
            lat=requester.latitude,
            lng=requester.longitude,
            radius=requester.default_radius or self.settings.default_radius_km,
            result_limit=self.settings.result_limit,
        )
        rides = await self._search(params)

        return InterpretationResult(
            rides=rides,
            narrative=self._render(rides, requester.city, params, requester, now),
            outcome=Outcome.RESULTS if rides else Outcome.NO_RESULTS,
            location_label=requester.city,
            search_params=params,
        )

    async def describe_ride(
        self,
        ride_id: str,
        requester: RequesterContext | None = None,
        now: datetime | None = None,
    ) -> str | None:
        """Render a single ride with its link, or None if it cannot be fetched."""
        requester = requester or RequesterContext()
        ride = await self._guarded("Ride lookup", self.rides.get_ride(ride_id), None)
        if ride is None:
            return None
        return format_single_ride(
            ride,
            requester.latitude,
            requester.longitude,
            include_link=True,
            now=self._now(now),
            units=requester.unit_preference,
        )

    async def label_for_location(self, latitude: float, longitude: float) -> str:
        """City label for shared coordinates, or "your location"."""
        geocoded = await self._guarded(
            "Reverse geocoding", self.geocoder.geocode_by_coordinates(latitude, longitude), None
        )
        if geocoded is None or not geocoded.city:
            return "your location"
        return geocoded.city


# Singleton instance
_interpreter: QueryInterpreter | None = None


def get_query_interpreter() -> QueryInterpreter:
    """Get the singleton query interpreter."""
    global _interpreter
    if _interpreter is None:
        _interpreter = QueryInterpreter()
    return _interpreter
