"""Ride listing models and gateway search parameters."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from ridebot.models.query import CamelModel, Discipline


class RideOrganizer(CamelModel):
    """Organizer account that published a ride."""

    id: str
    name: str
    slug: str | None = None


class RideBrand(CamelModel):
    """Community (brand) that owns a ride."""

    name: str
    slug: str | None = None
    logo: str | None = None
    logo_icon: str | None = None
    primary_color: str | None = None


class RideCandidate(CamelModel):
    """A ride as returned by the RidesWith API. Read-only."""

    id: str
    title: str
    description: str | None = None
    starts_at: datetime = Field(alias="date", description="Ride start")
    end_time: datetime | None = None
    location_name: str = ""
    location_address: str | None = None
    latitude: float
    longitude: float
    distance: float | None = Field(default=None, description="Ride length in km")
    elevation: float | None = None
    pace: str | None = Field(default=None, description="Pace band label")
    pace_min: float | None = None
    pace_max: float | None = None
    terrain: str | None = None
    max_attendees: int | None = None
    attendee_count: int = 0
    is_free: bool = True
    price: float | None = None
    route_url: str | None = None
    organizer: RideOrganizer | None = None
    brand: RideBrand | None = None

    @property
    def spots_left(self) -> int | None:
        if not self.max_attendees:
            return None
        return self.max_attendees - self.attendee_count


class SearchParameters(BaseModel):
    """Gateway-ready search filters.

    Only lat/lng/radius reach the upstream API. Everything else is applied
    client-side over the returned rides.
    """

    lat: float | None = None
    lng: float | None = None
    radius: float | None = Field(default=None, description="Radius in km")
    date_from: date | None = None
    date_to: date | None = None
    pace_min: float | None = None
    pace_max: float | None = None
    community_slug: str | None = None
    discipline: Discipline | None = None
    distance_min: float | None = None
    distance_max: float | None = None
    result_limit: int | None = None

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None
