"""
Geocoding via OpenStreetMap Nominatim (free, no API key needed).

Forward lookup turns a place name into coordinates and a city label;
reverse lookup turns coordinates into a city label. Any failure is
reported as None so callers have a single "not found" path.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from ridebot.config import get_settings

logger = logging.getLogger(__name__)

# Address components in order of preference for a city label
_CITY_KEYS = ("city", "town", "village", "municipality")


class GeocodingResult(BaseModel):
    """Best single geocoding match."""

    latitude: float
    longitude: float
    display_name: str = ""
    city: str | None = None


def _city_from_address(address: Any) -> str | None:
    if not isinstance(address, dict):
        return None
    for key in _CITY_KEYS:
        if address.get(key):
            return address[key]
    return None


class NominatimClient:
    """Async client for the Nominatim search and reverse endpoints."""

    def __init__(self, base_url: str | None = None, user_agent: str | None = None):
        settings = get_settings()
        self.base_url = base_url or settings.nominatim_base_url
        self.user_agent = user_agent or settings.nominatim_user_agent
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=15.0,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def geocode_by_name(self, name: str) -> GeocodingResult | None:
        """
        Search for a place by name.

        Args:
            name: Free-text place name, e.g. "Leipzig"

        Returns:
            GeocodingResult for the best match, or None if nothing matched
        """
        if not name or not name.strip():
            return None

        client = await self._get_client()
        params = {"q": name.strip(), "format": "json", "limit": "1", "addressdetails": "1"}

        try:
            logger.debug("🗺️ [Geocode] Search | query=%s", name[:50])
            response = await client.get("/search", params=params)
            response.raise_for_status()
            results = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Nominatim search error: %s", e)
            return None

        if not isinstance(results, list) or not results:
            logger.debug("📭 [Geocode] No match | query=%s", name[:50])
            return None

        return self._parse_result(results[0])

    async def geocode_by_coordinates(
        self, latitude: float, longitude: float
    ) -> GeocodingResult | None:
        """Reverse geocode coordinates to the nearest city label."""
        client = await self._get_client()
        params = {
            "lat": str(latitude),
            "lon": str(longitude),
            "format": "json",
            "addressdetails": "1",
        }

        try:
            logger.debug("🗺️ [Geocode] Reverse | lat=%.4f lng=%.4f", latitude, longitude)
            response = await client.get("/reverse", params=params)
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Nominatim reverse error: %s", e)
            return None

        if not isinstance(result, dict) or "error" in result:
            return None

        city = _city_from_address(result.get("address"))
        if city is None:
            return None

        return GeocodingResult(
            latitude=latitude,
            longitude=longitude,
            display_name=result.get("display_name") or "",
            city=city,
        )

    def _parse_result(self, data: Any) -> GeocodingResult | None:
        """Parse a raw Nominatim match."""
        if not isinstance(data, dict):
            return None
        try:
            return GeocodingResult(
                latitude=float(data["lat"]),
                longitude=float(data["lon"]),
                display_name=data.get("display_name") or "",
                city=_city_from_address(data.get("address")),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning("Error parsing Nominatim result: %s", e)
            return None


# Singleton instance
_client: NominatimClient | None = None


def get_geocoder() -> NominatimClient:
    """Get the singleton geocoding client."""
    global _client
    if _client is None:
        _client = NominatimClient()
    return _client
