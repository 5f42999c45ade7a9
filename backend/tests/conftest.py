"""
Mindful Companion - Test Configuration and Fixtures

Shared fixtures for all test modules.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

# Ensure backend package is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mindful.config import Settings
from mindful.core.exceptions import AssistantTransportError
from mindful.core.message_log import MessageLog
from mindful.core.session import ChatSession
from mindful.core.types import AssistantReply, Payload
from mindful.services.assistant import DummyAssistantTransport


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that open local sockets")


# =============================================================================
# Fake Transports
# =============================================================================

class ScriptedTransport:
    """
    Test transport returning a fixed reply or raising a fixed error.

    Records every payload and, at call time, the session's crisis flag so
    tests can check what was true before the round trip resolved.
    """

    def __init__(
        self,
        reply: Optional[AssistantReply] = None,
        error: Optional[Exception] = None,
    ):
        self.reply = reply or AssistantReply(reply="Let's talk about that.")
        self.error = error
        self.payloads: List[Payload] = []
        self.flag_at_call: List[bool] = []
        self.pending_at_call: List[bool] = []
        self.session: Optional[ChatSession] = None
        self.closed = False

    @property
    def transport_id(self) -> str:
        return "scripted-test"

    @property
    def call_count(self) -> int:
        return len(self.payloads)

    async def send(self, payload: Payload) -> AssistantReply:
        self.payloads.append(payload)
        if self.session is not None:
            self.flag_at_call.append(self.session.crisis_flag_active)
            self.pending_at_call.append(self.session.pending)
        if self.error is not None:
            raise self.error
        return self.reply

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        app_env="testing",
        app_debug=True,
        app_log_level="WARNING",  # Reduce noise in tests
        assistant_backend="dummy",
        dummy_latency_ms=0,
        max_sessions=5,
        transcript_dir=str(tmp_path / "transcripts"),
    )


# =============================================================================
# Engine Fixtures
# =============================================================================

class SteppingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + timedelta(seconds=1)
        return now


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def message_log(clock: SteppingClock) -> MessageLog:
    """Fresh seeded message log with a deterministic clock."""
    return MessageLog(clock=clock)


@pytest.fixture
def scripted_transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def failing_transport() -> ScriptedTransport:
    return ScriptedTransport(
        error=AssistantTransportError("Assistant returned HTTP 500", details={"status": 500}),
    )


@pytest.fixture
def session(scripted_transport: ScriptedTransport) -> ChatSession:
    """Chat session wired to the scripted transport, consent granted."""
    chat = ChatSession(transport=scripted_transport)
    scripted_transport.session = chat
    chat.set_consent(True)
    return chat


@pytest.fixture
def failing_session(failing_transport: ScriptedTransport) -> ChatSession:
    chat = ChatSession(transport=failing_transport)
    failing_transport.session = chat
    chat.set_consent(True)
    return chat


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def crisis_messages() -> list[str]:
    """Messages containing at least one crisis phrase."""
    return [
        "I want to end my life",
        "Sometimes I think about SUICIDE.",
        "i just want to die already",
        "I might hurt myself tonight",
        "There's no reason to live anymore",
        "I keep having violent thoughts",
        "I'm scared I will harm myself",
        "I want to kill myself",
    ]


@pytest.fixture
def calm_messages() -> list[str]:
    """Messages containing no crisis phrase."""
    return [
        "I feel anxious today",
        "Work has been stressful but I'm managing.",
        "Thank you, that helped a lot.",
        "I'd like some tips for sleeping better.",
    ]


# =============================================================================
# FastAPI App Fixtures
# =============================================================================

@pytest.fixture
def app(test_settings: Settings):
    """FastAPI app using the offline dummy assistant."""
    from main import create_app

    return create_app(settings=test_settings, transport=DummyAssistantTransport())


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def client_factory(test_settings: Settings):
    """Build a test client around a specific transport."""
    from main import create_app

    def _make(transport) -> TestClient:
        return TestClient(create_app(settings=test_settings, transport=transport))

    return _make
