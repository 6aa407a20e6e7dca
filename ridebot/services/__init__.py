"""
Services for the RidesWith query bot.

Each external provider sits behind a small async client that reports
failure as an empty value (None, [] or an "unknown" query) instead of
raising, so the interpretation engine has a single failure path.

Available Services
------------------
- QueryParserClient: natural language to StructuredQuery (Groq / OpenAI-compatible)
- NominatimClient: forward and reverse geocoding
- RidesWithClient: ride search with client-side filtering
- resolve_relative_range: relative date tokens to calendar bounds
- format_ride_list, format_single_ride: chat-ready ride text
- parse_settings_command, strip_rides_command: chat command parsing
"""

from .chat_commands import (
    NEARBY_BUTTON,
    SEARCH_BUTTON,
    SEARCH_PROMPT,
    SettingsUpdate,
    parse_settings_command,
    strip_rides_command,
)
from .date_ranges import (
    DateWindow,
    describe_date_range,
    resolve_date_range,
    resolve_relative_range,
)
from .formatting import (
    NO_RIDES_MESSAGE,
    escape_html,
    format_distance,
    format_pace,
    format_ride_date,
    format_ride_list,
    format_single_ride,
    haversine_km,
)
from .geocoding import GeocodingResult, NominatimClient, get_geocoder
from .json_extract import extract_json_object
from .query_parser import QueryParserClient, coerce_structured_query, get_query_parser
from .rides import RidesWithClient, apply_search_filters, build_ride_url, get_rides_client

__all__ = [
    "DateWindow",
    "describe_date_range",
    "resolve_date_range",
    "resolve_relative_range",
    "extract_json_object",
    "GeocodingResult",
    "NominatimClient",
    "get_geocoder",
    "QueryParserClient",
    "coerce_structured_query",
    "get_query_parser",
    "RidesWithClient",
    "apply_search_filters",
    "build_ride_url",
    "get_rides_client",
    "NO_RIDES_MESSAGE",
    "escape_html",
    "format_distance",
    "format_pace",
    "format_ride_date",
    "format_ride_list",
    "format_single_ride",
    "haversine_km",
    "NEARBY_BUTTON",
    "SEARCH_BUTTON",
    "SEARCH_PROMPT",
    "SettingsUpdate",
    "parse_settings_command",
    "strip_rides_command",
]
