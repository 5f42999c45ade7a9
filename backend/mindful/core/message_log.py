"""
Mindful Companion - Message Log

Ordered, append-only record of a conversation. The log is the source of
truth for rendering, payload windowing and transcript export.

Invariants:
    - Never empty: starts with the system instructions (id 0) and the
      assistant greeting (id 1).
    - Ids strictly increase in append order and are never reused.
    - Timestamps never decrease, even if the wall clock steps backwards.
    - Turns are immutable; reset() replaces the whole sequence.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .types import Role, Turn


SYSTEM_INSTRUCTIONS = (
    "You are a compassionate, nonjudgmental mental health assistant. Provide "
    "psychoeducation, empathic reflections, coping strategies, and encourage users "
    "to seek professional help when appropriate. If the user describes imminent "
    "danger or self-harm, immediately display crisis resources and encourage "
    "contacting local emergency services."
)

GREETING = (
    "Hi — I'm here to listen and to help you understand what's going on. You can "
    "share whatever you feel comfortable with. If this is an emergency or you're "
    "thinking of harming yourself, please tell me and I'll help you find immediate "
    "support."
)

FIRST_FREE_ID = 2


def _local_now() -> datetime:
    return datetime.now().astimezone()


class MessageLog:
    """
    In-memory conversation log owned by a single session.

    Usage:
        log = MessageLog()
        turn = log.append(Role.USER, "I feel anxious today")
        turns = log.snapshot()
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            clock: Returns the current timezone-aware time (injectable for tests)
        """
        self._clock = clock or _local_now
        self._turns: List[Turn] = []
        self._next_id = 0
        self.reset()

    def append(self, role: Role, text: str) -> Turn:
        """Append a turn with the next id and the current time."""
        timestamp = self._clock()
        if self._turns and timestamp < self._turns[-1].timestamp:
            timestamp = self._turns[-1].timestamp

        turn = Turn(id=self._next_id, role=Role(role), text=text or "", timestamp=timestamp)
        self._next_id += 1
        self._turns.append(turn)
        return turn

    def snapshot(self) -> Tuple[Turn, ...]:
        """Immutable point-in-time copy of the log."""
        return tuple(self._turns)

    def reset(self) -> None:
        """Replace the contents with the two-turn seed."""
        now = self._clock()
        self._turns = [
            Turn(id=0, role=Role.SYSTEM, text=SYSTEM_INSTRUCTIONS, timestamp=now),
            Turn(id=1, role=Role.ASSISTANT, text=GREETING, timestamp=now),
        ]
        self._next_id = FIRST_FREE_ID

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return len(self._turns)
