"""
Mindful Companion - Chat Session Orchestrator

State machine driving one round trip with the remote assistant.

Architecture:
    A send moves through named phases:

    1. VALIDATING: reject empty text or missing consent (sets last_error only)
    2. Append the user turn, clear the input buffer
    3. Classify locally; raise the crisis flag before any network activity
    4. AWAITING_RESPONSE: build the windowed payload, call the transport once
    5. IDLE: append the reply (or a fallback/apology turn), clear pending

    Every send that passes validation appends exactly two turns, whether the
    assistant answers or the transport fails. Errors never escape submit()
    except SessionBusyError, raised when a round trip is already in flight.
    A cancelled submit is recorded as a failure before the cancellation
    propagates.

Concurrency:
    Sessions live on a single event loop. submit() suspends only while
    awaiting the transport; every other command runs to completion.

Usage:
    session = ChatSession(transport=DummyAssistantTransport())
    session.set_consent(True)
    result = await session.submit("I feel anxious today")
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, TYPE_CHECKING

from .crisis import find_crisis_phrases
from .exceptions import (
    AssistantTransportError,
    ConsentRequiredError,
    EmptyMessageError,
    SessionBusyError,
    ValidationError,
)
from .logging import LogContext, get_logger
from .message_log import MessageLog
from .payload import build_payload
from .transcript import render_transcript
from .types import (
    ChatSettings,
    Role,
    SessionPhase,
    SessionSnapshot,
    SubmitOutcome,
    SubmitResult,
    Tone,
    Turn,
)

if TYPE_CHECKING:
    from mindful.services.assistant import AssistantTransport

logger = get_logger(__name__)


# =============================================================================
# User-facing Texts
# =============================================================================

EMPTY_MESSAGE_ERROR = "Please enter a message before sending."
CONSENT_REQUIRED_ERROR = (
    "Please confirm that you consent to have this conversation processed by the assistant."
)
TRANSPORT_ERROR = "Failed to reach the assistant. Try again later."
EMPTY_REPLY_FALLBACK = "Sorry — I couldn't generate a response."
FAILURE_APOLOGY = "I'm having trouble right now. Please try again later."


SessionListener = Callable[["ChatSession"], None]
"""Called with the session after every observable state change."""


# =============================================================================
# Chat Session
# =============================================================================

class ChatSession:
    """
    Conversation session engine for one user.

    Owns the message log and the session flags read by the UI:
    messages, pending, crisis_flag_active, last_error.

    Attributes:
        session_id: Opaque identifier (UUID4)
        settings: Tone and user name, read at send time
        consent_granted: Must be True for submit() to send
        crisis_flag_active: Sticky until dismiss_crisis_flag()
        last_error: Inline error text, cleared on each send attempt
        input_text: Draft input buffer owned by the UI
    """

    def __init__(
        self,
        transport: "AssistantTransport",
        session_id: Optional[str] = None,
        settings: Optional[ChatSettings] = None,
        message_log: Optional[MessageLog] = None,
        log_message_text: bool = False,
    ):
        """
        Args:
            transport: Assistant transport used for every round trip
            session_id: Identifier to use (generated if omitted)
            settings: Initial settings (defaults: compassionate, no name)
            message_log: Pre-built log (a fresh seeded log if omitted)
            log_message_text: Include message text in debug logs
        """
        self.session_id = session_id or str(uuid.uuid4())
        self.settings = settings or ChatSettings()
        self.consent_granted = False
        self.crisis_flag_active = False
        self.last_error: Optional[str] = None
        self.input_text = ""
        self.created_at = datetime.now().astimezone()
        self.last_activity = self.created_at

        self._transport = transport
        self._log = message_log or MessageLog()
        self._phase = SessionPhase.IDLE
        self._listeners: List[SessionListener] = []
        self._log_message_text = log_message_text

    # -------------------------------------------------------------------------
    # State Reads
    # -------------------------------------------------------------------------

    @property
    def messages(self) -> tuple[Turn, ...]:
        return self._log.snapshot()

    @property
    def pending(self) -> bool:
        return self._phase == SessionPhase.AWAITING_RESPONSE

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def message_log(self) -> MessageLog:
        return self._log

    def state(self) -> SessionSnapshot:
        """Immutable view of everything a collaborator renders."""
        return SessionSnapshot(
            session_id=self.session_id,
            messages=self._log.snapshot(),
            pending=self.pending,
            crisis_flag_active=self.crisis_flag_active,
            last_error=self.last_error,
            settings=ChatSettings(tone=self.settings.tone, user_name=self.settings.user_name),
            consent_granted=self.consent_granted,
            input_text=self.input_text,
            phase=self._phase,
            created_at=self.created_at,
        )

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    def add_listener(self, listener: SessionListener) -> None:
        """Register a callback invoked after each state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        self.last_activity = datetime.now().astimezone()
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                # Listener failures must not break the session
                logger.exception(f"Session listener failed: {type(e).__name__}")

    # -------------------------------------------------------------------------
    # Round Trip
    # -------------------------------------------------------------------------

    async def submit(self, raw_text: Optional[str] = None) -> SubmitResult:
        """
        Send a user message and record the assistant's answer.

        Args:
            raw_text: Text to send; the input buffer is used when None

        Returns:
            SubmitResult describing the outcome and the appended turns

        Raises:
            SessionBusyError: If a round trip is already in flight
        """
        if self.pending:
            raise SessionBusyError("A message is already being sent")

        with LogContext(session_id=self.session_id):
            text = (self.input_text if raw_text is None else raw_text).strip()

            # Stage 1: Validation
            self._phase = SessionPhase.VALIDATING
            self.last_error = None
            try:
                self._validate(text)
            except ValidationError as e:
                self.last_error = e.message
                self._phase = SessionPhase.IDLE
                logger.info("Submit rejected", data={"code": e.code})
                self._notify()
                return SubmitResult(outcome=SubmitOutcome.REJECTED, error=e.message)

            # Stage 2: Record the user turn
            user_turn = self._log.append(Role.USER, text)
            self.input_text = ""

            # Stage 3: Local crisis check, before any network activity
            phrases = find_crisis_phrases(text)
            if phrases:
                self.crisis_flag_active = True
                logger.warning(
                    "Crisis language detected in user turn",
                    data={"turn_id": user_turn.id, "phrases": phrases},
                )

            # Stage 4: Round trip
            self._phase = SessionPhase.AWAITING_RESPONSE
            payload = build_payload(self._log.snapshot(), self.settings, text)
            self._notify()

            self._log_outbound(user_turn, len(payload.messages))

            try:
                reply = await self._transport.send(payload)
            except AssistantTransportError as e:
                logger.error(
                    "Assistant round trip failed",
                    data={"code": e.code, "reason": e.message, **e.details},
                )
                return self._fail(user_turn)
            except asyncio.CancelledError:
                # Leave the session idle and appendable, then let the cancel propagate
                logger.warning("Assistant round trip cancelled", data={"turn_id": user_turn.id})
                self._fail(user_turn)
                raise
            except Exception as e:
                logger.exception(f"Unexpected transport error: {type(e).__name__}")
                return self._fail(user_turn)

            # Stage 5: Record the answer
            if reply.flagged and not self.crisis_flag_active:
                self.crisis_flag_active = True
                logger.warning("Assistant flagged the exchange", data={"turn_id": user_turn.id})

            assistant_turn = self._log.append(Role.ASSISTANT, reply.reply or EMPTY_REPLY_FALLBACK)
            self._phase = SessionPhase.IDLE
            logger.info(
                "Assistant replied",
                data={"turn_id": assistant_turn.id, "fallback": not reply.reply},
            )
            self._notify()
            return SubmitResult(
                outcome=SubmitOutcome.REPLIED,
                appended=(user_turn, assistant_turn),
            )

    def _fail(self, user_turn: Turn) -> SubmitResult:
        self.last_error = TRANSPORT_ERROR
        assistant_turn = self._log.append(Role.ASSISTANT, FAILURE_APOLOGY)
        self._phase = SessionPhase.IDLE
        self._notify()
        return SubmitResult(
            outcome=SubmitOutcome.FAILED,
            appended=(user_turn, assistant_turn),
            error=TRANSPORT_ERROR,
        )

    def _validate(self, text: str) -> None:
        if not text:
            raise EmptyMessageError(EMPTY_MESSAGE_ERROR)
        if not self.consent_granted:
            raise ConsentRequiredError(CONSENT_REQUIRED_ERROR)

    def _log_outbound(self, user_turn: Turn, window_size: int) -> None:
        data = {"turn_id": user_turn.id, "window": window_size, "tone": self.settings.tone.value}
        if self._log_message_text:
            logger.debug(f"Sending to assistant: {user_turn.text[:100]}", data=data)
        else:
            logger.debug(
                f"Sending to assistant: [REDACTED, {len(user_turn.text)} chars]",
                data=data,
            )

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def set_input(self, text: str) -> None:
        self.input_text = text or ""
        self._notify()

    def clear_input(self) -> None:
        self.input_text = ""
        self._notify()

    def dismiss_crisis_flag(self) -> None:
        """Hide the crisis resources until crisis language is seen again."""
        self.crisis_flag_active = False
        logger.info("Crisis flag dismissed")
        self._notify()

    def update_settings(
        self,
        tone: Optional[Tone] = None,
        user_name: Optional[str] = None,
    ) -> None:
        """Change tone and/or user name. Takes effect on the next send."""
        if tone is not None:
            self.settings.tone = Tone(tone)
        if user_name is not None:
            self.settings.user_name = user_name
        self._notify()

    def set_consent(self, granted: bool) -> None:
        self.consent_granted = bool(granted)
        self._notify()

    def reset_conversation(self) -> None:
        """Re-seed the message log. Settings and consent are kept."""
        self._log.reset()
        logger.info("Conversation reset")
        self._notify()

    def export_transcript(self) -> str:
        """Text rendering of the current log."""
        return render_transcript(self._log.snapshot())
