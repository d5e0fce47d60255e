"""Offline emergency keyword screen for symptom descriptions."""

from __future__ import annotations

from typing import List, Optional

from guidance.schema import GuidanceResult

__all__ = ["EMERGENCY_KEYWORDS", "pre_screen", "matched_keywords", "show_emergency_banner"]

EMERGENCY_KEYWORDS = (
    "chest pain",
    "severe bleeding",
    "fainting",
    "difficulty breathing",
    "loss of consciousness",
    "seizure",
    "heavy bleeding",
    "shortness of breath",
    "numbness",
    "slurred speech",
)


def matched_keywords(text: Optional[str]) -> List[str]:
    """Return the emergency keywords contained in ``text``, in list order."""

    if not text:
        return []
    lower = text.lower()
    return [kw for kw in EMERGENCY_KEYWORDS if kw in lower]


def pre_screen(text: Optional[str]) -> bool:
    """True iff the lowercased text contains at least one emergency keyword.

    Plain substring containment: "numbness" matches "numbness in fingers".
    """

    if not text:
        return False
    lower = text.lower()
    return any(kw in lower for kw in EMERGENCY_KEYWORDS)


def show_emergency_banner(description: Optional[str], result: Optional[GuidanceResult] = None) -> bool:
    """Banner decision: local keyword screen OR the model's emergency flag."""

    if pre_screen(description):
        return True
    return bool(result is not None and result.is_emergency)
