"""
Mindful Companion - Core Domain Types

Internal type definitions for the conversation session engine. These are
domain objects used within the core and service layers, independent of API
serialization.

Design Notes:
- API layer converts these to Pydantic schemas for external communication.
- Turns and payloads are frozen dataclasses; the session owns all mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# =============================================================================
# Enums
# =============================================================================

class Role(str, Enum):
    """Author of a conversation turn."""
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"


class Tone(str, Enum):
    """Persona tone requested from the assistant."""
    COMPASSIONATE = "compassionate"
    PRACTICAL = "practical"
    CURIOUS = "curious"

    @property
    def label(self) -> str:
        return TONE_LABELS[self]


TONE_LABELS = {
    Tone.COMPASSIONATE: "Compassionate (default)",
    Tone.PRACTICAL: "Practical / CBT-style",
    Tone.CURIOUS: "Curious / Reflective",
}


class SessionPhase(str, Enum):
    """Round-trip state of a chat session."""
    IDLE = "idle"
    VALIDATING = "validating"
    AWAITING_RESPONSE = "awaiting_response"


class SubmitOutcome(str, Enum):
    """How a submit attempt ended."""
    REJECTED = "rejected"  # validation failed, nothing appended
    REPLIED = "replied"    # assistant reply (or empty-reply fallback) appended
    FAILED = "failed"      # transport failure, apology appended


# =============================================================================
# Conversation Types
# =============================================================================

@dataclass(frozen=True)
class Turn:
    """
    A single entry of the message log.

    Attributes:
        id: Unique, strictly increasing within a session
        role: Author of the turn
        text: Turn content (never None)
        timestamp: Timezone-aware creation time, non-decreasing across the log
    """
    id: int
    role: Role
    text: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ChatSettings:
    """User-adjustable settings, read at send time (last write wins)."""
    tone: Tone = Tone.COMPASSIONATE
    user_name: str = ""


# =============================================================================
# Wire Types
# =============================================================================

@dataclass(frozen=True)
class PayloadMessage:
    """Role + text pair sent to the assistant."""
    role: Role
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "text": self.text}


@dataclass(frozen=True)
class Payload:
    """Outbound request body for one round trip."""
    messages: Tuple[PayloadMessage, ...]
    tone: Tone
    user_name: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON body expected by the assistant service."""
        return {
            "messages": [m.to_dict() for m in self.messages],
            "settings": {"tone": self.tone.value},
            "metadata": {"userName": self.user_name},
        }


@dataclass(frozen=True)
class AssistantReply:
    """Parsed assistant response."""
    reply: Optional[str] = None
    flagged: bool = False


# =============================================================================
# Session Snapshot
# =============================================================================

@dataclass(frozen=True)
class SessionSnapshot:
    """
    Point-in-time view of a chat session for collaborators.

    Everything a UI needs to render: the conversation, input disabling,
    crisis modal visibility and the inline error.
    """
    session_id: str
    messages: Tuple[Turn, ...]
    pending: bool
    crisis_flag_active: bool
    last_error: Optional[str]
    settings: ChatSettings
    consent_granted: bool
    input_text: str
    phase: SessionPhase
    created_at: datetime


@dataclass(frozen=True)
class SubmitResult:
    """Result of a submit call, with the turns it appended."""
    outcome: SubmitOutcome
    appended: Tuple[Turn, ...] = ()
    error: Optional[str] = None
