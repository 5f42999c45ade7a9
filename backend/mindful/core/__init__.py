"""
Mindful Companion - Core Package

Contains the conversation session engine and domain types:
- crisis: crisis-language classifier
- message_log: ordered conversation log
- payload: outbound payload windowing
- session: round-trip state machine
- session_store: registry of live sessions
- transcript: text export
"""

from .types import (
    Role,
    Tone,
    Turn,
    ChatSettings,
    Payload,
    PayloadMessage,
    AssistantReply,
    SessionPhase,
    SessionSnapshot,
    SubmitOutcome,
    SubmitResult,
)
from .crisis import classify, find_crisis_phrases
from .message_log import MessageLog
from .payload import PAYLOAD_WINDOW, build_payload
from .session import ChatSession
from .session_store import ChatSessionStore
from .transcript import render_transcript, export_transcript_file, write_transcript

__all__ = [
    # Types
    "Role",
    "Tone",
    "Turn",
    "ChatSettings",
    "Payload",
    "PayloadMessage",
    "AssistantReply",
    "SessionPhase",
    "SessionSnapshot",
    "SubmitOutcome",
    "SubmitResult",
    # Engine
    "classify",
    "find_crisis_phrases",
    "MessageLog",
    "PAYLOAD_WINDOW",
    "build_payload",
    "ChatSession",
    "ChatSessionStore",
    "render_transcript",
    "export_transcript_file",
    "write_transcript",
]
