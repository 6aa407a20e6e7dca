"""
RidesWith API client and ride search gateway.

The upstream /rides endpoint only understands lat/lng/radius. Date, pace,
community, discipline and distance filters are applied client-side after
the fetch, and the result limit is applied last.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime, time as dt_time, tzinfo
from typing import Any

import httpx
from pydantic import ValidationError

from ridebot.config import get_settings
from ridebot.models.query import Discipline
from ridebot.models.rides import RideCandidate, SearchParameters

logger = logging.getLogger(__name__)

# Terrain keywords that count as a match for each discipline
_DISCIPLINE_TERMS: dict[Discipline, tuple[str, ...]] = {
    Discipline.ROAD: ("road", "asphalt", "paved"),
    Discipline.GRAVEL: ("gravel",),
    Discipline.MTB: ("mtb", "mountain", "trail"),
}


def _localize(moment: datetime, tz: tzinfo) -> datetime:
    return moment.replace(tzinfo=tz) if moment.tzinfo is None else moment


def _pace_at_least(ride: RideCandidate, threshold: float) -> bool:
    # Lower bound decides; the upper bound stands in when it is missing
    pace = ride.pace_min if ride.pace_min is not None else ride.pace_max
    return pace is None or pace >= threshold


def _pace_at_most(ride: RideCandidate, threshold: float) -> bool:
    pace = ride.pace_max if ride.pace_max is not None else ride.pace_min
    return pace is None or pace <= threshold


def _matches_discipline(ride: RideCandidate, discipline: Discipline) -> bool:
    if discipline is Discipline.MIXED or not ride.terrain:
        return True
    terrain = ride.terrain.lower()
    return any(term in terrain for term in _DISCIPLINE_TERMS[discipline])


def build_ride_url(base_url: str, ride_id: str) -> str:
    """Public detail-page URL of a ride."""
    return f"{base_url.rstrip('/')}/rides/{ride_id}"


def apply_search_filters(
    rides: list[RideCandidate], params: SearchParameters, tz: tzinfo
) -> list[RideCandidate]:
    """
    Apply the client-side filter chain.

    Order: date_from, date_to, pace_min, pace_max, community_slug,
    discipline, distance_min, distance_max, then result_limit. Rides with
    unknown pace, terrain or distance pass the corresponding filters.

    Args:
        rides: Rides returned by the upstream search
        params: Search parameters
        tz: Timezone that defines calendar-day boundaries

    Returns:
        Filtered rides, at most ``params.result_limit`` long
    """
    filters: list[Callable[[RideCandidate], bool]] = []

    if params.date_from is not None:
        start = datetime.combine(params.date_from, dt_time.min, tzinfo=tz)
        filters.append(lambda r: _localize(r.starts_at, tz) >= start)

    if params.date_to is not None:
        end = datetime.combine(params.date_to, dt_time.max, tzinfo=tz)
        filters.append(lambda r: _localize(r.starts_at, tz) <= end)

    if params.pace_min is not None:
        pace_min = params.pace_min
        filters.append(lambda r: _pace_at_least(r, pace_min))

    if params.pace_max is not None:
        pace_max = params.pace_max
        filters.append(lambda r: _pace_at_most(r, pace_max))

    if params.community_slug:
        slug = params.community_slug.lower()
        filters.append(
            lambda r: r.brand is not None
            and r.brand.slug is not None
            and r.brand.slug.lower() == slug
        )

    if params.discipline is not None:
        discipline = params.discipline
        filters.append(lambda r: _matches_discipline(r, discipline))

    if params.distance_min is not None:
        distance_min = params.distance_min
        filters.append(lambda r: r.distance is None or r.distance >= distance_min)

    if params.distance_max is not None:
        distance_max = params.distance_max
        filters.append(lambda r: r.distance is None or r.distance <= distance_max)

    filtered = rides
    for keep in filters:
        filtered = [ride for ride in filtered if keep(ride)]

    if params.result_limit:
        filtered = filtered[: params.result_limit]

    return filtered


class RidesWithClient:
    """Async client for the RidesWith ride listing API."""

    def __init__(
        self,
        api_url: str | None = None,
        base_url: str | None = None,
        tz: tzinfo | None = None,
    ):
        settings = get_settings()
        self.api_url = (api_url or settings.rideswith_api_url).rstrip("/")
        self.base_url = (base_url or settings.rideswith_base_url).rstrip("/")
        self.tz = tz or settings.tz
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                headers={"Accept": "application/json"},
                timeout=30.0,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def get_ride_url(self, ride_id: str) -> str:
        """Build the URL of a ride's detail page."""
        return build_ride_url(self.base_url, ride_id)

    async def search_rides(self, params: SearchParameters) -> list[RideCandidate]:
        """
        Search rides near a location and filter them client-side.

        Args:
            params: Search parameters; only lat/lng/radius are sent upstream

        Returns:
            Matching rides, or an empty list on any upstream failure
        """
        query: dict[str, str] = {}
        if params.lat is not None:
            query["lat"] = str(params.lat)
        if params.lng is not None:
            query["lng"] = str(params.lng)
        if params.radius is not None:
            query["radius"] = str(params.radius)

        client = await self._get_client()

        try:
            logger.debug("🚴 [Rides] Search | params=%s", query)
            start_time = time.perf_counter()
            response = await client.get("/rides", params=query)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("RidesWith search error: %s", e)
            return []

        if not isinstance(data, list):
            logger.warning("RidesWith search returned %s, expected list", type(data).__name__)
            return []

        rides = [ride for item in data if (ride := self._parse_ride(item))]
        filtered = apply_search_filters(rides, params, self.tz)

        logger.debug(
            "✅ [Rides] Complete | fetched=%d kept=%d duration=%.2fs",
            len(rides),
            len(filtered),
            time.perf_counter() - start_time,
        )
        return filtered

    async def get_ride(self, ride_id: str) -> RideCandidate | None:
        """Fetch a single ride by ID."""
        client = await self._get_client()

        try:
            response = await client.get(f"/rides/{ride_id}")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("RidesWith get ride error: %s", e)
            return None

        return self._parse_ride(data)

    def _parse_ride(self, data: Any) -> RideCandidate | None:
        """Parse a raw ride payload, skipping malformed items."""
        try:
            return RideCandidate.model_validate(data)
        except ValidationError as e:
            ride_id = data.get("id") if isinstance(data, dict) else None
            logger.warning("Skipping malformed ride %s: %s", ride_id, e.error_count())
            return None


# Singleton instance
_client: RidesWithClient | None = None


def get_rides_client() -> RidesWithClient:
    """Get the singleton RidesWith client."""
    global _client
    if _client is None:
        _client = RidesWithClient()
    return _client
