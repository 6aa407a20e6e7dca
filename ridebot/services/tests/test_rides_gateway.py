"""Tests for the RidesWith client and client-side filter chain."""

from datetime import date
from zoneinfo import ZoneInfo

import httpx
import pytest

from ridebot.models import Discipline, SearchParameters
from ridebot.services.rides import RidesWithClient, apply_search_filters, get_rides_client

BERLIN = ZoneInfo("Europe/Berlin")


def _payload(ride_id: str, **overrides) -> dict:
    payload = {
        "id": ride_id,
        "title": f"Ride {ride_id}",
        "date": "2026-10-24T09:00:00+02:00",
        "locationName": "Augustusplatz",
        "latitude": 51.3397,
        "longitude": 12.3731,
        "attendeeCount": 2,
    }
    payload.update(overrides)
    return payload


def _client_with(handler) -> RidesWithClient:
    client = RidesWithClient(
        api_url="https://rideswith.test/api", base_url="https://rideswith.test", tz=BERLIN
    )
    client._client = httpx.AsyncClient(
        base_url=client.api_url, transport=httpx.MockTransport(handler)
    )
    return client


class TestApplySearchFilters:
    """Tests for apply_search_filters."""

    def test_no_filters_keeps_everything(self, make_ride):
        rides = [make_ride("a"), make_ride("b")]
        assert apply_search_filters(rides, SearchParameters(), BERLIN) == rides

    def test_date_window_is_inclusive_calendar_days(self, make_ride):
        """date_from is start of day and date_to end of day, in local time."""
        rides = [
            make_ride("fri-late", date="2026-10-23T23:30:00+02:00"),
            make_ride("sat-early", date="2026-10-24T00:00:00+02:00"),
            make_ride("sun-late", date="2026-10-25T23:59:00+01:00"),
            make_ride("mon", date="2026-10-26T00:30:00+01:00"),
        ]
        params = SearchParameters(date_from=date(2026, 10, 24), date_to=date(2026, 10, 25))

        kept = apply_search_filters(rides, params, BERLIN)

        assert [r.id for r in kept] == ["sat-early", "sun-late"]

    def test_utc_timestamps_compared_in_local_time(self, make_ride):
        # 22:30 UTC on Friday is already Saturday in Berlin
        rides = [make_ride("utc", date="2026-10-23T22:30:00Z")]
        params = SearchParameters(date_from=date(2026, 10, 24))
        assert len(apply_search_filters(rides, params, BERLIN)) == 1

    def test_pace_min_checks_lower_bound(self, make_ride):
        """pace_min tests the ride's lower bound, falling back to its upper one."""
        rides = [
            make_ride("slow", paceMin=18, paceMax=22),
            make_ride("wide", paceMin=18, paceMax=32),
            make_ride("fast-max-only", paceMax=34),
            make_ride("fast", paceMin=31),
        ]
        kept = apply_search_filters(rides, SearchParameters(pace_min=30), BERLIN)
        assert [r.id for r in kept] == ["fast-max-only", "fast"]

    def test_pace_max_checks_upper_bound(self, make_ride):
        """pace_max tests the ride's upper bound, falling back to its lower one."""
        rides = [
            make_ride("slow", paceMin=18, paceMax=22),
            make_ride("wide", paceMin=18, paceMax=32),
            make_ride("fast", paceMin=30, paceMax=35),
            make_ride("min-only", paceMin=20),
        ]
        kept = apply_search_filters(rides, SearchParameters(pace_max=22), BERLIN)
        assert [r.id for r in kept] == ["slow", "min-only"]

    def test_unknown_pace_passes(self, make_ride):
        rides = [make_ride("no-pace")]
        params = SearchParameters(pace_min=30, pace_max=35)
        assert len(apply_search_filters(rides, params, BERLIN)) == 1

    def test_community_slug_case_insensitive(self, make_ride):
        rides = [
            make_ride("straede", brand={"name": "Straede", "slug": "Straede"}),
            make_ride("other", brand={"name": "Other Crew", "slug": "other-crew"}),
            make_ride("unbranded"),
        ]
        kept = apply_search_filters(rides, SearchParameters(community_slug="straede"), BERLIN)
        assert [r.id for r in kept] == ["straede"]

    def test_discipline_matches_terrain(self, make_ride):
        rides = [
            make_ride("gravel", terrain="Gravel"),
            make_ride("road", terrain="road"),
            make_ride("unknown"),
        ]
        params = SearchParameters(discipline=Discipline.GRAVEL)
        kept = apply_search_filters(rides, params, BERLIN)
        assert [r.id for r in kept] == ["gravel", "unknown"]

    def test_mtb_terms(self, make_ride):
        rides = [make_ride("trail", terrain="Trail"), make_ride("road", terrain="Asphalt")]
        kept = apply_search_filters(rides, SearchParameters(discipline=Discipline.MTB), BERLIN)
        assert [r.id for r in kept] == ["trail"]

    def test_mixed_discipline_keeps_all(self, make_ride):
        rides = [make_ride("gravel", terrain="gravel"), make_ride("road", terrain="road")]
        params = SearchParameters(discipline=Discipline.MIXED)
        assert len(apply_search_filters(rides, params, BERLIN)) == 2

    def test_distance_bounds(self, make_ride):
        rides = [
            make_ride("short", distance=25),
            make_ride("medium", distance=45),
            make_ride("long", distance=90),
            make_ride("unknown"),
        ]
        params = SearchParameters(distance_min=30, distance_max=60)
        kept = apply_search_filters(rides, params, BERLIN)
        assert [r.id for r in kept] == ["medium", "unknown"]

    def test_limit_applied_after_filters(self, make_ride):
        """Filtering happens before truncation, so matches further down survive."""
        rides = [make_ride(f"road-{i}", terrain="road") for i in range(5)]
        rides += [make_ride(f"gravel-{i}", terrain="gravel") for i in range(3)]
        params = SearchParameters(discipline=Discipline.GRAVEL, result_limit=2)

        kept = apply_search_filters(rides, params, BERLIN)

        assert [r.id for r in kept] == ["gravel-0", "gravel-1"]

    def test_limit_preserves_order(self, make_ride):
        rides = [make_ride(str(i)) for i in range(8)]
        kept = apply_search_filters(rides, SearchParameters(result_limit=5), BERLIN)
        assert [r.id for r in kept] == ["0", "1", "2", "3", "4"]


class TestRidesWithClient:
    """Tests for RidesWithClient."""

    def test_ride_url(self):
        client = RidesWithClient(base_url="https://rideswith.com/")
        assert client.get_ride_url("abc") == "https://rideswith.com/rides/abc"

    def test_singleton(self):
        assert get_rides_client() is get_rides_client()

    @pytest.mark.asyncio
    async def test_only_location_sent_upstream(self):
        """Dates, pace and community never reach the upstream query string."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[_payload("a")])

        client = _client_with(handler)
        params = SearchParameters(
            lat=51.34,
            lng=12.37,
            radius=50,
            date_from=date(2026, 10, 24),
            pace_min=25,
            community_slug="straede",
        )
        await client.search_rides(params)

        query = dict(seen[0].url.params)
        assert seen[0].url.path == "/api/rides"
        assert query == {"lat": "51.34", "lng": "12.37", "radius": "50.0"}

    @pytest.mark.asyncio
    async def test_search_filters_and_limits(self):
        rides = [_payload(str(i), paceMin=20 + i * 3) for i in range(6)]
        client = _client_with(lambda request: httpx.Response(200, json=rides))

        result = await client.search_rides(
            SearchParameters(lat=51.34, lng=12.37, radius=50, pace_min=28, result_limit=2)
        )

        assert [r.id for r in result] == ["3", "4"]

    @pytest.mark.asyncio
    async def test_malformed_items_skipped(self):
        payload = [_payload("good"), {"id": "bad", "title": "No date"}, "garbage"]
        client = _client_with(lambda request: httpx.Response(200, json=payload))

        result = await client.search_rides(SearchParameters(lat=51.34, lng=12.37))

        assert [r.id for r in result] == ["good"]

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_empty(self):
        client = _client_with(lambda request: httpx.Response(502))
        assert await client.search_rides(SearchParameters(lat=51.34, lng=12.37)) == []

    @pytest.mark.asyncio
    async def test_network_failure_returns_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client_with(handler)
        assert await client.search_rides(SearchParameters(lat=51.34, lng=12.37)) == []

    @pytest.mark.asyncio
    async def test_non_list_payload_returns_empty(self):
        payload = {"error": "maintenance"}
        client = _client_with(lambda request: httpx.Response(200, json=payload))
        assert await client.search_rides(SearchParameters()) == []

    @pytest.mark.asyncio
    async def test_get_ride(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json=_payload("r1", brand={"name": "Straede", "slug": "straede"})
            )

        client = _client_with(handler)
        ride = await client.get_ride("r1")

        assert ride.id == "r1"
        assert ride.brand.slug == "straede"
        assert seen[0].url.path == "/api/rides/r1"

    @pytest.mark.asyncio
    async def test_get_ride_not_found(self):
        client = _client_with(lambda request: httpx.Response(404))
        assert await client.get_ride("missing") is None
