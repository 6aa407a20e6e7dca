"""
Text rendering of ride results for chat replies.

Output uses the HTML subset understood by chat platforms such as Telegram
(<b>, <a>), so every upstream or user-supplied string is escaped first.
"""

from __future__ import annotations

import math
from datetime import datetime, tzinfo
from typing import Literal

from ridebot.config import get_settings
from ridebot.models.rides import RideCandidate
from ridebot.services.rides import build_ride_url

Units = Literal["km", "mi"]

EARTH_RADIUS_KM = 6371.0
KM_PER_MILE = 1.609344
RULE = "━━━━━━━━━━━━━━━"

NO_RIDES_MESSAGE = (
    "🚴 No rides found matching your search.\n\n"
    "Try broadening your search or check back later for new rides!"
)


def escape_html(text: str) -> str:
    """Escape &, < and > for HTML chat markup."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two coordinates in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _number(value: float) -> str:
    return f"{value:g}"


def format_pace(pace_min: float | None, pace_max: float | None) -> str:
    """Format a pace range in km/h."""
    if pace_min and pace_max:
        return f"{_number(pace_min)}-{_number(pace_max)} km/h"
    if pace_min:
        return f"{_number(pace_min)}+ km/h"
    if pace_max:
        return f"Up to {_number(pace_max)} km/h"
    return ""


def format_distance(distance_km: float | None, units: Units = "km") -> str:
    """Format a ride length."""
    if distance_km is None:
        return ""
    if units == "mi":
        return f"{_number(round(distance_km / KM_PER_MILE, 1))} mi"
    return f"{_number(distance_km)} km"


def _to_local(moment: datetime, tz: tzinfo) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def format_ride_date(
    starts_at: datetime, now: datetime | None = None, tz: tzinfo | None = None
) -> str:
    """
    Format a ride start like "Sat, Oct 24 · 9:00 AM (in 5 days)".

    The relative annotation counts calendar days in ``tz`` and is only added
    for rides within the next 7 days.
    """
    tz = tz or get_settings().tz
    local = _to_local(starts_at, tz)
    today = _to_local(now, tz) if now is not None else datetime.now(tz)

    hour = local.hour % 12 or 12
    text = f"{local:%a}, {local:%b} {local.day} · {hour}:{local:%M} {local:%p}"

    diff_days = (local.date() - today.date()).days
    if diff_days == 0:
        relative = "Today"
    elif diff_days == 1:
        relative = "Tomorrow"
    elif 1 < diff_days <= 7:
        relative = f"in {diff_days} days"
    else:
        relative = ""

    return f"{text} ({relative})" if relative else text


def format_single_ride(
    ride: RideCandidate,
    requester_lat: float | None = None,
    requester_lng: float | None = None,
    include_link: bool = False,
    *,
    now: datetime | None = None,
    units: Units = "km",
    base_url: str | None = None,
) -> str:
    """Format one ride as a multi-line block."""
    settings = get_settings()
    lines = [f"📍 <b>{escape_html(ride.title)}</b>"]

    lines.append(f"⏰ {format_ride_date(ride.starts_at, now, settings.tz)}")

    location_line = f"📍 {escape_html(ride.location_name)}"
    if requester_lat is not None and requester_lng is not None:
        away_km = haversine_km(requester_lat, requester_lng, ride.latitude, ride.longitude)
        if units == "mi":
            location_line += f" · {round(away_km / KM_PER_MILE)} mi away"
        else:
            location_line += f" · {round(away_km)} km away"
    lines.append(location_line)

    pace = format_pace(ride.pace_min, ride.pace_max)
    distance = format_distance(ride.distance, units)
    if pace or distance:
        parts = []
        if pace:
            parts.append(f"🏃 {pace}")
        if distance:
            parts.append(distance)
        lines.append(" · ".join(parts))

    if ride.brand:
        lines.append(f"🏢 {escape_html(ride.brand.name)}")

    attendee_line = f"👥 {ride.attendee_count} going"
    spots_left = ride.spots_left
    if spots_left is not None:
        attendee_line += f" · {spots_left} spots left" if spots_left > 0 else " · FULL"
    lines.append(attendee_line)

    if include_link:
        url = build_ride_url(base_url or settings.rideswith_base_url, ride.id)
        lines.append(f'🔗 <a href="{escape_html(url)}">View ride</a>')

    return "\n".join(lines)


def format_ride_list(
    rides: list[RideCandidate],
    location_label: str | None = None,
    requester_lat: float | None = None,
    requester_lng: float | None = None,
    *,
    now: datetime | None = None,
    units: Units = "km",
    base_url: str | None = None,
) -> str:
    """Format a list of rides with a count header, or the no-rides message."""
    if not rides:
        return NO_RIDES_MESSAGE

    noun = "ride" if len(rides) == 1 else "rides"
    if location_label:
        header = f"🚴 Found {len(rides)} {noun} near {escape_html(location_label)}:"
    else:
        header = f"🚴 Found {len(rides)} {noun}:"

    blocks = [
        f"{RULE}\n"
        + format_single_ride(
            ride,
            requester_lat,
            requester_lng,
            include_link=True,
            now=now,
            units=units,
            base_url=base_url,
        )
        for ride in rides
    ]
    return f"{header}\n" + "\n".join(blocks) + f"\n{RULE}"
