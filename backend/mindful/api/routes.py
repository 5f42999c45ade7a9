"""
Mindful Companion - REST API Routes

Collaborator surface for the chat UI: session lifecycle, state reads and
the commands the UI issues (send, clear input, dismiss crisis resources,
settings, consent, reset, transcript download).

Architecture:
    All conversation logic lives in ChatSession, accessed through the
    ChatSessionStore kept on app.state. Routes only translate HTTP to
    session commands and domain objects to schemas.
"""

import asyncio
import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from mindful import __version__
from mindful.config import Settings
from mindful.core.exceptions import MindfulError
from mindful.core.session import ChatSession
from mindful.core.session_store import ChatSessionStore
from mindful.core.transcript import render_transcript, transcript_filename, write_transcript
from mindful.core.types import SessionSnapshot, SubmitResult, Tone, Turn
from mindful.core.logging import LogContext

from .schemas import (
    ConsentRequest,
    HealthResponse,
    InputUpdateRequest,
    SessionState,
    SettingsSchema,
    SettingsUpdateRequest,
    SubmitRequest,
    SubmitResponse,
    ToneOption,
    TurnSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])


# =============================================================================
# Dependencies
# =============================================================================

def get_session_store(request: Request) -> ChatSessionStore:
    """Dependency to get the session store from app state."""
    return request.app.state.session_store


def get_settings(request: Request) -> Settings:
    """Dependency to get settings from app state."""
    return request.app.state.settings


def http_error(error: MindfulError) -> HTTPException:
    """Map a domain error to an HTTP error with a structured body."""
    return HTTPException(status_code=error.status_code, detail=error.to_dict())


async def get_chat_session(
    session_id: str,
    store: ChatSessionStore = Depends(get_session_store),
) -> ChatSession:
    """Dependency resolving the session path parameter."""
    try:
        return await store.get_session_or_raise(session_id)
    except MindfulError as e:
        raise http_error(e)


# =============================================================================
# Converters (Domain -> API Schema)
# =============================================================================

def turn_to_schema(turn: Turn) -> TurnSchema:
    return TurnSchema(
        id=turn.id,
        role=turn.role.value,
        text=turn.text,
        timestamp=turn.timestamp,
    )


def snapshot_to_schema(snapshot: SessionSnapshot) -> SessionState:
    """Convert a domain SessionSnapshot to the API SessionState schema."""
    return SessionState(
        session_id=snapshot.session_id,
        messages=[turn_to_schema(t) for t in snapshot.messages],
        pending=snapshot.pending,
        crisis_flag_active=snapshot.crisis_flag_active,
        last_error=snapshot.last_error,
        settings=SettingsSchema(
            tone=snapshot.settings.tone.value,
            user_name=snapshot.settings.user_name,
        ),
        consent_granted=snapshot.consent_granted,
        input_text=snapshot.input_text,
        phase=snapshot.phase.value,
        created_at=snapshot.created_at,
    )


def result_to_schema(result: SubmitResult, session: ChatSession) -> SubmitResponse:
    return SubmitResponse(
        outcome=result.outcome.value,
        error=result.error,
        appended=[turn_to_schema(t) for t in result.appended],
        session=snapshot_to_schema(session.state()),
    )


# =============================================================================
# Health & Metadata
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: ChatSessionStore = Depends(get_session_store),
):
    """
    System health check.

    Returns status of the API, the assistant transport and the session store.
    """
    components = {
        "api": "operational",
        "assistant_transport": store.transport.transport_id,
        "active_sessions": str(await store.count()),
    }

    return HealthResponse(
        status="healthy",
        version=__version__,
        components=components,
    )


@router.get("/tones", response_model=List[ToneOption])
async def list_tones():
    """Selectable assistant tones with display labels."""
    return [ToneOption(value=tone.value, label=tone.label) for tone in Tone]


# =============================================================================
# Session Lifecycle
# =============================================================================

@router.post("/sessions", response_model=SessionState, status_code=status.HTTP_201_CREATED)
async def create_session(
    store: ChatSessionStore = Depends(get_session_store),
):
    """
    Start a new chat session.

    The conversation starts seeded with the assistant's instructions and
    greeting. Consent is not granted until the UI sets it.

    Privacy note: Session IDs are random UUIDs with no PII.
    """
    try:
        session = await store.create_session()
    except MindfulError as e:
        raise http_error(e)

    return snapshot_to_schema(session.state())


@router.get("/sessions/{session_id}", response_model=SessionState)
async def get_session_state(
    session: ChatSession = Depends(get_chat_session),
):
    """Current messages and flags for rendering."""
    return snapshot_to_schema(session.state())


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(
    session_id: str,
    store: ChatSessionStore = Depends(get_session_store),
):
    """End a session and discard its conversation."""
    try:
        await store.end_session(session_id)
    except MindfulError as e:
        raise http_error(e)


# =============================================================================
# Conversation Commands
# =============================================================================

@router.post("/sessions/{session_id}/messages", response_model=SubmitResponse)
async def submit_message(
    request: SubmitRequest,
    session: ChatSession = Depends(get_chat_session),
):
    """
    Send a message to the assistant.

    Validation failures (empty text, missing consent) return 200 with
    outcome "rejected" and last_error set; transport failures return 200
    with outcome "failed" and an apology turn. Returns 409 while a previous
    message is still being answered.
    """
    with LogContext(correlation_id=f"req_{uuid.uuid4().hex[:12]}"):
        try:
            result = await session.submit(request.text)
        except MindfulError as e:
            raise http_error(e)

    return result_to_schema(result, session)


@router.put("/sessions/{session_id}/input", response_model=SessionState)
async def set_input(
    request: InputUpdateRequest,
    session: ChatSession = Depends(get_chat_session),
):
    """Store the draft input buffer."""
    session.set_input(request.text)
    return snapshot_to_schema(session.state())


@router.delete("/sessions/{session_id}/input", response_model=SessionState)
async def clear_input(
    session: ChatSession = Depends(get_chat_session),
):
    """Clear the draft input buffer."""
    session.clear_input()
    return snapshot_to_schema(session.state())


@router.post("/sessions/{session_id}/crisis/dismiss", response_model=SessionState)
async def dismiss_crisis(
    session: ChatSession = Depends(get_chat_session),
):
    """Hide the crisis resources panel."""
    session.dismiss_crisis_flag()
    return snapshot_to_schema(session.state())


@router.patch("/sessions/{session_id}/settings", response_model=SessionState)
async def update_settings(
    request: SettingsUpdateRequest,
    session: ChatSession = Depends(get_chat_session),
):
    """Change tone and/or user name. Applies from the next message on."""
    session.update_settings(
        tone=Tone(request.tone.value) if request.tone is not None else None,
        user_name=request.user_name,
    )
    return snapshot_to_schema(session.state())


@router.put("/sessions/{session_id}/consent", response_model=SessionState)
async def set_consent(
    request: ConsentRequest,
    session: ChatSession = Depends(get_chat_session),
):
    """Grant or withdraw consent to processing."""
    session.set_consent(request.granted)
    return snapshot_to_schema(session.state())


@router.post("/sessions/{session_id}/reset", response_model=SessionState)
async def reset_conversation(
    session: ChatSession = Depends(get_chat_session),
):
    """Clear the conversation back to the greeting. Settings and consent are kept."""
    session.reset_conversation()
    return snapshot_to_schema(session.state())


# =============================================================================
# Transcript
# =============================================================================

@router.get("/sessions/{session_id}/transcript")
async def download_transcript(
    save: bool = Query(default=False, description="Also write the transcript to transcript_dir"),
    session: ChatSession = Depends(get_chat_session),
    settings: Settings = Depends(get_settings),
):
    """
    Download the conversation as plain text.

    One block per message: [local time] ROLE: text

    With save=true the saved file holds exactly the downloaded text.
    """
    content = render_transcript(session.messages)
    filename = transcript_filename()

    if save:
        path = await asyncio.to_thread(write_transcript, content, settings.transcript_dir)
        filename = path.name

    return Response(
        content=content,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
