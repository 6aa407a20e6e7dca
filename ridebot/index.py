"""API endpoints for the RidesWith query bot."""

import json
import logging
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from ridebot.agents import get_query_interpreter
from ridebot.config import configure_logging, get_settings
from ridebot.models import InterpretationResult, Outcome, RequesterContext, RideCandidate
from ridebot.services import (
    NEARBY_BUTTON,
    SEARCH_BUTTON,
    SEARCH_PROMPT,
    SettingsUpdate,
    get_geocoder,
    get_query_parser,
    get_rides_client,
    parse_settings_command,
    strip_rides_command,
)

load_dotenv()

# Configure logging from settings (uses LOG_LEVEL env var)
configure_logging()
logger = logging.getLogger(__name__)


def _format_user_error(error: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_str = str(error).lower()

    if "timeout" in error_str:
        return "The search timed out. Please try again."
    elif "rate limit" in error_str:
        return "We're a bit busy right now. Please try again in a moment."
    else:
        return (
            "Sorry, something went wrong while searching. Please try again.\n\n"
            "You can also browse rides at rideswith.com/discover"
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close provider clients on shutdown."""
    yield
    await get_query_parser().close()
    await get_geocoder().close()
    await get_rides_client().close()


app = FastAPI(
    title="RidesWith Query Bot API",
    description="Natural-language group ride search",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ChatMessageRequest(BaseModel):
    """Request body for chat endpoints."""

    message: str
    requester: RequesterContext | None = None


class ChatMessageResponse(BaseModel):
    """Reply to a routed chat message."""

    kind: str  # "rides", "prompt", "settings"
    narrative: str
    rides: list[RideCandidate] = []
    outcome: Outcome | None = None
    settings_update: SettingsUpdate | None = None


class LocationRequest(BaseModel):
    """Coordinates shared by the user."""

    latitude: float
    longitude: float


def sse_event(event_type: str, data: dict) -> str:
    """Format a Server-Sent Event with type included in payload."""
    payload = {"type": event_type, **data}
    return f"data: {json.dumps(payload)}\n\n"


def _rides_payload(result: InterpretationResult) -> list[dict[str, Any]]:
    return [ride.model_dump(mode="json", by_alias=True) for ride in result.rides]


async def stream_chat_response(
    message: str, requester: RequesterContext | None = None
) -> AsyncGenerator[str, None]:
    """Stream the interpretation of one message as Server-Sent Events."""
    trace_id = str(uuid.uuid4())[:8]
    logger.debug("💬 [Chat] Stream started | trace=%s length=%d", trace_id, len(message))

    try:
        yield sse_event("searching", {})
        result = await get_query_interpreter().interpret_and_search(
            strip_rides_command(message), requester
        )

        # Stream narrative in chunks for responsiveness
        text = result.narrative
        for i in range(0, len(text), 10):
            yield sse_event("content", {"content": text[i : i + 10]})

        if result.rides:
            yield sse_event(
                "rides",
                {
                    "rides": _rides_payload(result),
                    "outcome": result.outcome.value,
                    "relaxation": result.relaxation,
                    "trace_id": trace_id,
                },
            )

        logger.debug(
            "✅ [Chat] Stream complete | trace=%s outcome=%s rides=%d",
            trace_id,
            result.outcome.value,
            len(result.rides),
        )
        yield sse_event("done", {})

    except Exception as e:
        logger.error("Error in stream_chat_response: %s", e, exc_info=True)
        yield sse_event("error", {"message": _format_user_error(e)})
        yield sse_event("done", {})


@app.get("/")
def root():
    """Root endpoint."""
    return {"status": "ok"}


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/api/chat/message", response_model=ChatMessageResponse)
async def chat_message(request: ChatMessageRequest):
    """Route a chat message: keyboard buttons, settings commands, or a ride search."""
    text = request.message.strip()
    requester = request.requester or RequesterContext()
    interpreter = get_query_interpreter()

    if text == SEARCH_BUTTON:
        return ChatMessageResponse(kind="prompt", narrative=SEARCH_PROMPT)

    if text == NEARBY_BUTTON:
        result = await interpreter.find_nearby(requester)
        return ChatMessageResponse(
            kind="rides", narrative=result.narrative, rides=result.rides, outcome=result.outcome
        )

    update = parse_settings_command(text)
    if update is not None:
        return ChatMessageResponse(
            kind="settings", narrative=update.message, settings_update=update
        )

    result = await interpreter.interpret_and_search(strip_rides_command(text), requester)
    return ChatMessageResponse(
        kind="rides", narrative=result.narrative, rides=result.rides, outcome=result.outcome
    )


@app.post("/api/chat/stream")
async def chat_stream(request: ChatMessageRequest):
    """Streaming ride search using Server-Sent Events."""
    return StreamingResponse(
        stream_chat_response(request.message, request.requester),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@app.post("/api/rides/search", response_model=InterpretationResult)
async def search_rides(request: ChatMessageRequest):
    """Interpret a free-text ride query and return rides plus narrative."""
    return await get_query_interpreter().interpret_and_search(request.message, request.requester)


@app.post("/api/rides/nearby", response_model=InterpretationResult)
async def nearby_rides(requester: RequesterContext):
    """Nearest rides at the requester's saved location."""
    return await get_query_interpreter().find_nearby(requester)


@app.get("/api/rides/{ride_id}")
async def ride_detail(ride_id: str, latitude: float | None = None, longitude: float | None = None):
    """Formatted detail text for a single ride."""
    requester = RequesterContext(latitude=latitude, longitude=longitude)
    text = await get_query_interpreter().describe_ride(ride_id, requester)
    if text is None:
        raise HTTPException(status_code=404, detail="Ride not found")
    return {"ride_id": ride_id, "text": text}


@app.post("/api/location/reverse")
async def reverse_location(request: LocationRequest):
    """City label for coordinates shared by the user."""
    city = await get_query_interpreter().label_for_location(request.latitude, request.longitude)
    return {"city": city}
