"""
Mindful Companion - API Schemas

Pydantic models for request/response validation.
These define the contract between the chat UI and the backend.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ===========================================
# Enums
# ===========================================

class Role(str, Enum):
    """Author of a conversation turn."""
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"


class Tone(str, Enum):
    """Assistant persona tone."""
    COMPASSIONATE = "compassionate"
    PRACTICAL = "practical"
    CURIOUS = "curious"


class SubmitOutcome(str, Enum):
    """How a send attempt ended."""
    REJECTED = "rejected"
    REPLIED = "replied"
    FAILED = "failed"


# ===========================================
# Conversation Schemas
# ===========================================

class TurnSchema(BaseModel):
    """A single message in the conversation."""

    id: int
    role: Role
    text: str
    timestamp: datetime


class SettingsSchema(BaseModel):
    """Session settings."""

    tone: Tone
    user_name: str = Field(description="Optional display name, may be empty")


class SessionState(BaseModel):
    """Everything the UI renders for a session."""

    session_id: str
    messages: List[TurnSchema]
    pending: bool = Field(description="True while a round trip is in flight (disable input)")
    crisis_flag_active: bool = Field(description="Show crisis resources until dismissed")
    last_error: Optional[str] = Field(default=None, description="Inline error text")
    settings: SettingsSchema
    consent_granted: bool
    input_text: str = Field(description="Draft input buffer")
    phase: str
    created_at: datetime


# ===========================================
# Command Schemas
# ===========================================

class SubmitRequest(BaseModel):
    """Send a message. When text is omitted the draft input buffer is sent."""

    text: Optional[str] = Field(default=None, max_length=10000)


class SubmitResponse(BaseModel):
    """Outcome of a send together with the updated session."""

    outcome: SubmitOutcome
    error: Optional[str] = None
    appended: List[TurnSchema] = Field(default=[])
    session: SessionState


class InputUpdateRequest(BaseModel):
    """Replace the draft input buffer."""

    text: str = Field(max_length=10000)


class SettingsUpdateRequest(BaseModel):
    """Partial settings update; omitted fields are left unchanged."""

    tone: Optional[Tone] = None
    user_name: Optional[str] = Field(default=None, max_length=200)


class ConsentRequest(BaseModel):
    """Grant or withdraw consent to processing."""

    granted: bool


# ===========================================
# Misc Schemas
# ===========================================

class ToneOption(BaseModel):
    """A selectable tone with its display label."""

    value: Tone
    label: str


class HealthResponse(BaseModel):
    """System health check response."""

    status: str = Field(description="healthy | degraded | unhealthy")
    version: str = Field(default="0.1.0")
    components: Dict[str, str] = Field(
        default={},
        description="Status of individual components"
    )
