"""
Mindful Companion - Payload Windowing

Builds the bounded request body sent to the assistant for one round trip.

The window is a fixed policy: only the most recent PAYLOAD_WINDOW entries
are sent, oldest first. The system instructions therefore drop out of the
payload once a conversation is long enough.
"""

from __future__ import annotations

from typing import Sequence

from .types import ChatSettings, Payload, PayloadMessage, Role, Turn


PAYLOAD_WINDOW = 20


def build_payload(
    turns: Sequence[Turn],
    settings: ChatSettings,
    candidate_user_text: str,
) -> Payload:
    """
    Compose the outbound payload.

    Accepts the log either before or after the candidate user turn was
    appended. In both cases the candidate appears exactly once, as the most
    recent entry.

    Args:
        turns: Log snapshot, oldest first
        settings: Current session settings (tone, user name)
        candidate_user_text: Trimmed text being sent

    Returns:
        Payload with at most PAYLOAD_WINDOW messages
    """
    messages = [PayloadMessage(role=t.role, text=t.text) for t in turns]

    candidate = PayloadMessage(role=Role.USER, text=candidate_user_text)
    if not messages or messages[-1] != candidate:
        messages.append(candidate)

    return Payload(
        messages=tuple(messages[-PAYLOAD_WINDOW:]),
        tone=settings.tone,
        user_name=settings.user_name,
    )
