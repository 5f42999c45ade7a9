"""
Mindful Companion - Transcript Export

One-way text rendering of a conversation for download. Export never mutates
the log and the file is only written when explicitly requested.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from .types import Turn

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def render_turn(turn: Turn) -> str:
    local_time = turn.timestamp.astimezone().strftime(TIMESTAMP_FORMAT)
    return f"[{local_time}] {turn.role.value.upper()}: {turn.text}"


def render_transcript(turns: Sequence[Turn]) -> str:
    """Render one block per turn, in log order, separated by a blank line."""
    return "\n\n".join(render_turn(t) for t in turns)


def transcript_filename(now: Optional[datetime] = None) -> str:
    """File name with an embedded timestamp, e.g. chat-transcript-2024-05-01T10-15-00.txt"""
    now = now or datetime.now().astimezone()
    stamp = now.isoformat(timespec="seconds").replace(":", "-")
    return f"chat-transcript-{stamp}.txt"


def export_transcript_file(
    turns: Sequence[Turn],
    directory: Union[str, Path],
    now: Optional[datetime] = None,
) -> Path:
    """
    Write the rendered transcript to directory.

    Returns:
        Path of the written file
    """
    return write_transcript(render_transcript(turns), directory, now)


def write_transcript(
    content: str,
    directory: Union[str, Path],
    now: Optional[datetime] = None,
) -> Path:
    """Write already rendered transcript text to a timestamped file in directory."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)

    path = target_dir / transcript_filename(now)
    path.write_text(content, encoding="utf-8")

    logger.info("Transcript exported: %s (%d chars)", path.name, len(content))
    return path
