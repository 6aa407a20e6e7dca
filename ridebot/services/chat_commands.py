"""Parsing of non-search chat input: commands, keyboard buttons, settings."""

import re
from typing import Literal

from pydantic import BaseModel

NEARBY_BUTTON = "🚴 Nearby Rides"
SEARCH_BUTTON = "🔍 Search"

MIN_RADIUS_KM = 5
MAX_RADIUS_KM = 500

SEARCH_PROMPT = (
    "🔍 <b>Search for rides</b>\n\n"
    "Just type what you're looking for:\n"
    '• "rides near Berlin"\n'
    '• "gravel rides this weekend"\n'
    '• "fast rides tomorrow"'
)

_RIDES_COMMAND_RE = re.compile(r"^/rides(?:@\w+)?\s*", re.IGNORECASE)
_RADIUS_RE = re.compile(r"^radius\s+(\d+)$")
_UNITS_RE = re.compile(r"^units\s+(km|mi)$")


class SettingsUpdate(BaseModel):
    """A requested change to the requester's saved preferences."""

    radius: int | None = None
    unit_preference: Literal["km", "mi"] | None = None
    message: str
    error: bool = False


def strip_rides_command(text: str) -> str:
    """Remove a leading /rides command, leaving the query."""
    return _RIDES_COMMAND_RE.sub("", text.strip(), count=1).strip()


def parse_settings_command(text: str) -> SettingsUpdate | None:
    """
    Recognise "radius N" and "units km|mi" messages.

    Returns:
        SettingsUpdate (possibly flagged as an error), or None if the text is
        not a settings command
    """
    normalized = text.strip().lower()

    radius_match = _RADIUS_RE.match(normalized)
    if radius_match:
        radius = int(radius_match.group(1))
        if radius < MIN_RADIUS_KM or radius > MAX_RADIUS_KM:
            return SettingsUpdate(
                message=f"Please specify a radius between {MIN_RADIUS_KM} and {MAX_RADIUS_KM} km.",
                error=True,
            )
        return SettingsUpdate(radius=radius, message=f"✅ Search radius updated to {radius} km")

    units_match = _UNITS_RE.match(normalized)
    if units_match:
        unit = units_match.group(1)
        label = "kilometers" if unit == "km" else "miles"
        return SettingsUpdate(unit_preference=unit, message=f"✅ Units updated to {label}")

    return None
