"""
Language-understanding adapter for ride search queries.

Sends the user's message to an OpenAI-compatible chat completion endpoint
(Groq by default) and turns the reply into a StructuredQuery. Provider
output is never trusted: the first JSON object is extracted leniently and
validated field by field, so one malformed field only drops that field.
"""

import logging
import time
from datetime import date
from typing import Any

from openai import APIError, AsyncOpenAI
from pydantic import BaseModel, ValidationError

from ridebot.config import get_settings
from ridebot.models.query import Intent, StructuredQuery
from ridebot.services.json_extract import extract_json_object

logger = logging.getLogger(__name__)


QUERY_PARSER_SYSTEM_PROMPT = """You are a query parser for RidesWith.com, a cycling group ride discovery platform.

Parse user queries about cycling rides and return structured JSON. Be flexible with natural language.

IMPORTANT: Speed/pace is always in km/h. Distance is always in km.
- "fast" pace means 30+ km/h
- "moderate" pace means 22-28 km/h
- "casual/easy" pace means under 22 km/h
- "short" ride means under 30 km
- "medium" ride means 30-60 km
- "long" ride means 60-100 km
- "epic" ride means 100+ km

Relative time frames MUST use one of these tokens: today, tomorrow, this_weekend, this_week, next_week.
Use explicit "from"/"to" dates (YYYY-MM-DD) only for specific dates, never both a token and dates.

CRITICAL: Only include dateRange if the user EXPLICITLY mentions a time frame (today, tomorrow, this weekend, next week, etc).
- Do NOT add dateRange for queries like "rides near Berlin" - they want ALL upcoming rides
- Only add dateRange for queries like "rides this weekend" or "rides tomorrow"

Examples:
- "rides near Berlin" → location only, NO dateRange
- "fast rides this weekend" → location + pace + dateRange
- "any gravel rides?" → discipline only, NO dateRange
- "rides tomorrow" → dateRange only
- "rides near me" → location.useUserLocation = true
- "Straede rides" → community filter only"""

QUERY_PARSER_USER_TEMPLATE = """Parse this cycling ride search query. Today is {today}. Return ONLY valid JSON, no explanation.

Query: "{query}"

Return JSON matching this schema (omit null/undefined fields):
{{
  "intent": "search" | "detail" | "help" | "unknown",
  "location": {{ "name": "city", "useUserLocation": boolean }},
  "radius": number (km),
  "dateRange": {{
    "from": "YYYY-MM-DD",
    "to": "YYYY-MM-DD",
    "relative": "today" | "tomorrow" | "this_weekend" | "next_week" | "this_week"
  }},
  "pace": {{ "min": number, "max": number }},
  "distance": {{ "min": number, "max": number }},
  "community": "slug",
  "chapter": "name",
  "discipline": "road" | "gravel" | "mtb" | "mixed"
}}"""


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    """Return the BaseModel inside ``Model | None``, if any."""
    for arg in getattr(annotation, "__args__", (annotation,)):
        if isinstance(arg, type) and issubclass(arg, BaseModel):
            return arg
    return None


def _lenient_validate(
    model_cls: type[BaseModel], data: Any, context: dict[str, Any] | None = None
) -> BaseModel | None:
    """
    Validate ``data`` into ``model_cls`` keeping every field that validates.

    Each field is checked on its own; nested models are handled recursively.
    ``context`` is handed to every validator. Returns None when nothing survives.
    """
    if not isinstance(data, dict):
        return None

    kept: dict[str, Any] = {}
    for name, field in model_cls.model_fields.items():
        key = field.alias if field.alias in data else name
        if key not in data or data[key] is None:
            continue

        value = data[key]
        nested = _nested_model(field.annotation)
        if nested is not None and isinstance(value, dict):
            value = _lenient_validate(nested, value, context)
            if value is None:
                continue

        try:
            model_cls.model_validate({name: value}, context=context)
        except ValidationError as e:
            logger.debug("Dropping malformed field %s=%r: %s", key, value, e.errors()[:1])
            continue
        kept[name] = value

    if not kept:
        return None
    try:
        return model_cls.model_validate(kept, context=context)
    except ValidationError as e:
        logger.debug("Dropping %s after field checks: %s", model_cls.__name__, e)
        return None


def coerce_structured_query(data: Any, today: date | None = None) -> StructuredQuery:
    """
    Total conversion of an untrusted payload into a StructuredQuery.

    Non-ISO dates in the payload are resolved relative to ``today``.
    """
    # Models sometimes answer "location": "Leipzig" instead of an object
    if isinstance(data, dict) and isinstance(data.get("location"), str):
        data = {**data, "location": {"name": data["location"]}}

    query = _lenient_validate(StructuredQuery, data, {"today": today})
    if not isinstance(query, StructuredQuery):
        return StructuredQuery(intent=Intent.UNKNOWN)

    # Empty nested objects ("pace": {}) carry no information
    for name in ("location", "date_range", "pace", "distance"):
        value = getattr(query, name)
        if value is not None and value.is_empty:
            setattr(query, name, None)
    return query


class QueryParserClient:
    """Async client turning free text into a StructuredQuery."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.groq_api_key
        self.base_url = base_url or settings.groq_base_url
        self.model = model or settings.groq_model
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the OpenAI-compatible client."""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def parse_ride_query(self, raw_text: str, today: date | str) -> StructuredQuery:
        """
        Parse a ride search message.

        Args:
            raw_text: The user's message
            today: Today's date, used by the model to resolve explicit dates

        Returns:
            StructuredQuery; intent is "unknown" on any provider or parse failure
        """
        if not self.api_key:
            logger.warning("GROQ_API_KEY not set, skipping query parsing")
            return StructuredQuery(intent=Intent.UNKNOWN)

        if isinstance(today, str):
            today = date.fromisoformat(today)
        today_str = today.isoformat()

        try:
            logger.debug("🧠 [Parser] Request | query=%s today=%s", raw_text[:50], today_str)
            start_time = time.perf_counter()

            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": QUERY_PARSER_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": QUERY_PARSER_USER_TEMPLATE.format(
                            today=today_str, query=raw_text
                        ),
                    },
                ],
                temperature=0.1,
                max_tokens=500,
            )
            elapsed = time.perf_counter() - start_time
            content = response.choices[0].message.content if response.choices else None
        except APIError as e:
            logger.warning("Query parser API error: %s", e)
            return StructuredQuery(intent=Intent.UNKNOWN)
        except Exception as e:
            logger.error("Query parser error: %s", e, exc_info=True)
            return StructuredQuery(intent=Intent.UNKNOWN)

        payload = extract_json_object(content)
        if payload is None:
            logger.debug("📭 [Parser] No JSON in reply | duration=%.2fs", elapsed)
            return StructuredQuery(intent=Intent.UNKNOWN)

        query = coerce_structured_query(payload, today)
        logger.debug(
            "✅ [Parser] Complete | intent=%s duration=%.2fs query=%s",
            query.intent.value,
            elapsed,
            query.model_dump(exclude_none=True, by_alias=True, mode="json"),
        )
        return query


# Singleton instance
_client: QueryParserClient | None = None


def get_query_parser() -> QueryParserClient:
    """Get the singleton query parser client."""
    global _client
    if _client is None:
        _client = QueryParserClient()
    return _client
