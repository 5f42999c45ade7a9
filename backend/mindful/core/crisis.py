"""
Mindful Companion - Crisis Language Classifier

Flags self-harm and crisis language in user text.

Safety Notes:
    - Matching is a broad, case-insensitive substring test. A phrase inside a
      longer word or sentence still matches.
    - False negatives are the dangerous failure mode; false positives only
      surface the crisis resources unnecessarily and are acceptable.
    - The classifier runs locally on every user turn, before any network
      call. An upstream "flagged" signal from the assistant is OR'd in by the
      session; assistant replies are never reclassified here.
"""

from __future__ import annotations

from typing import List, Optional


CRISIS_PHRASES = (
    "suicide",
    "kill myself",
    "end my life",
    "want to die",
    "hurt myself",
    "harm myself",
    "violent",
    "no reason to live",
)


def find_crisis_phrases(text: Optional[str]) -> List[str]:
    """Return the crisis phrases contained in text, in phrase-list order."""
    if not text:
        return []
    lowered = text.lower()
    return [phrase for phrase in CRISIS_PHRASES if phrase in lowered]


def classify(text: Optional[str]) -> bool:
    """True if text contains any crisis phrase. Empty or None is never a crisis."""
    return bool(find_crisis_phrases(text))
