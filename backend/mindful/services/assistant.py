"""
Mindful Companion - Assistant Transport Service

Delivers a windowed payload to the remote assistant and parses its reply.

Architecture:
    - Protocol defines the interface for assistant transports
    - DummyAssistantTransport: offline canned replies for development/testing
    - HttpAssistantTransport: JSON over HTTP POST using aiohttp

Failure Contract:
    Every failure (connection error, timeout, non-2xx status, non-JSON or
    schema-invalid body) is raised as AssistantTransportError. The session
    turns it into an apology turn; nothing else escapes a transport.
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import Optional, Protocol, runtime_checkable

import aiohttp
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from mindful.config import Settings
from mindful.core.crisis import classify
from mindful.core.exceptions import AssistantTransportError, ConfigurationError
from mindful.core.types import AssistantReply, Payload, Role, Tone

logger = logging.getLogger(__name__)


# =============================================================================
# Protocol (Interface)
# =============================================================================

@runtime_checkable
class AssistantTransport(Protocol):
    """
    Protocol for assistant transports.

    A transport performs exactly one request per send() call and never
    retries on its own.
    """

    @abstractmethod
    async def send(self, payload: Payload) -> AssistantReply:
        """
        Deliver payload and return the parsed reply.

        Raises:
            AssistantTransportError: On any transport or parse failure
        """
        ...

    @property
    @abstractmethod
    def transport_id(self) -> str:
        """Return transport identifier for health/logging."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...


# =============================================================================
# Response Schema
# =============================================================================

class AssistantResponseBody(BaseModel):
    """Inbound JSON body. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    reply: Optional[str] = None
    flagged: Optional[bool] = None


def parse_response_body(body: object) -> AssistantReply:
    """
    Validate a decoded JSON body.

    Raises:
        AssistantTransportError: If the body is not an object or has wrong types
    """
    if not isinstance(body, dict):
        raise AssistantTransportError(
            "Assistant response is not a JSON object",
            details={"type": type(body).__name__},
        )
    try:
        parsed = AssistantResponseBody.model_validate(body)
    except PydanticValidationError as e:
        raise AssistantTransportError(
            "Assistant response failed validation",
            details={"errors": e.error_count()},
        ) from e
    return AssistantReply(reply=parsed.reply, flagged=bool(parsed.flagged))


# =============================================================================
# Dummy Implementation (Development/Testing)
# =============================================================================

class DummyAssistantTransport:
    """
    Offline assistant for development and testing.

    Replies with a canned, tone-specific reflection and flags the exchange
    when the latest user message contains crisis language. Has no clinical
    validity; it only exercises the round trip.
    """

    TONE_REPLIES = {
        Tone.COMPASSIONATE: (
            "Thank you for sharing that with me. It sounds like a lot to carry. "
            "What feels heaviest right now?"
        ),
        Tone.PRACTICAL: (
            "Let's break this down. What situation triggered the feeling, and "
            "what thought went through your mind at that moment?"
        ),
        Tone.CURIOUS: (
            "I'm curious what that experience has been like for you. "
            "When did you first notice it?"
        ),
    }

    CRISIS_REPLY = (
        "I'm really sorry you're feeling this way. You deserve support right now. "
        "Please consider contacting your local emergency number or a crisis hotline."
    )

    def __init__(self, simulated_latency_ms: float = 0.0):
        """
        Args:
            simulated_latency_ms: Artificial delay to simulate network time
        """
        self._simulated_latency_ms = simulated_latency_ms
        self._call_count = 0

    @property
    def transport_id(self) -> str:
        return "dummy-assistant-v0.1.0"

    @property
    def call_count(self) -> int:
        return self._call_count

    async def send(self, payload: Payload) -> AssistantReply:
        self._call_count += 1

        if self._simulated_latency_ms > 0:
            await asyncio.sleep(self._simulated_latency_ms / 1000.0)

        latest_user = next(
            (m.text for m in reversed(payload.messages) if m.role == Role.USER),
            "",
        )
        flagged = classify(latest_user)

        if flagged:
            reply = self.CRISIS_REPLY
        else:
            reply = self.TONE_REPLIES[payload.tone]

        if payload.user_name:
            reply = f"{payload.user_name}, {reply[0].lower()}{reply[1:]}"

        return AssistantReply(reply=reply, flagged=flagged)

    async def close(self) -> None:
        pass


# =============================================================================
# HTTP Implementation
# =============================================================================

class HttpAssistantTransport:
    """
    Assistant transport that POSTs JSON payloads with aiohttp.

    The client session is created lazily on first send (inside the running
    event loop) and reused until close().
    """

    def __init__(self, url: str, timeout_seconds: float = 30.0):
        """
        Args:
            url: Assistant endpoint accepting POST requests
            timeout_seconds: Total timeout per request
        """
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def transport_id(self) -> str:
        return f"http:{self._url}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def send(self, payload: Payload) -> AssistantReply:
        session = self._get_session()
        try:
            async with session.post(self._url, json=payload.to_dict()) as resp:
                if not 200 <= resp.status < 300:
                    raise AssistantTransportError(
                        f"Assistant returned HTTP {resp.status}",
                        details={"status": resp.status},
                    )
                body = await resp.json(content_type=None)
        except AssistantTransportError:
            raise
        except asyncio.TimeoutError as e:
            raise AssistantTransportError("Assistant request timed out") from e
        except aiohttp.ClientError as e:
            raise AssistantTransportError(f"Assistant request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise AssistantTransportError("Assistant response is not valid JSON") from e

        return parse_response_body(body)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


# =============================================================================
# Factory
# =============================================================================

def create_transport(settings: Settings) -> AssistantTransport:
    """
    Create the assistant transport selected by settings.assistant_backend.

    Raises:
        ConfigurationError: For an unknown backend name
    """
    backend = settings.assistant_backend.lower()

    if backend == "dummy":
        transport = DummyAssistantTransport(simulated_latency_ms=settings.dummy_latency_ms)
    elif backend == "http":
        transport = HttpAssistantTransport(
            url=settings.assistant_url,
            timeout_seconds=settings.assistant_timeout_seconds,
        )
    else:
        raise ConfigurationError(
            f"Unknown assistant backend: {settings.assistant_backend}",
            details={"supported": ["dummy", "http"]},
        )

    logger.info("Assistant transport: %s", transport.transport_id)
    return transport
