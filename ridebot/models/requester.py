"""Requester context supplied by the chat-platform layer."""

from typing import Literal

from pydantic import Field

from ridebot.models.query import CamelModel


class RequesterContext(CamelModel):
    """Saved preferences of the user sending a message. Never written here."""

    latitude: float | None = Field(default=None, description="Saved latitude")
    longitude: float | None = Field(default=None, description="Saved longitude")
    city: str | None = Field(default=None, description="Saved city label")
    default_radius: float | None = Field(
        default=None, gt=0, description="Saved search radius in km"
    )
    unit_preference: Literal["km", "mi"] = Field(
        default="km", description="Distance units for display"
    )

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
