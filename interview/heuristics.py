"""Answer heuristics used by the interview flow."""
from __future__ import annotations

import re
from typing import Optional

IDK_PHRASES = (
    "i dont know",
    "i do not know",
    "idk",
    "no idea",
    "not sure",
    "im not sure",
    "i am not sure",
    "i have no idea",
    "no clue",
    "cant answer",
    "skip",
    "pass",
    "dont remember",
    "i forgot",
)
IDK_MAX_LENGTH = 30
LOW_QUALITY_THRESHOLD = 2
NEUTRAL_QUALITY = 5

_NON_LETTERS = re.compile(r"[^a-z\s]")


def normalize_answer(answer: str) -> str:
    return _NON_LETTERS.sub("", answer.lower().strip())


def detect_dont_know(answer: Optional[str]) -> bool:
    """True when the whole answer is essentially "I don't know"."""

    if not answer:
        return False
    normalized = normalize_answer(answer)
    if len(normalized) >= IDK_MAX_LENGTH:
        return False
    return any(phrase in normalized for phrase in IDK_PHRASES)


def should_skip_follow_ups(answer: Optional[str], last_quality: Optional[int]) -> bool:
    quality = NEUTRAL_QUALITY if last_quality is None else last_quality
    return detect_dont_know(answer) or quality <= LOW_QUALITY_THRESHOLD


__all__ = ["IDK_PHRASES", "detect_dont_know", "normalize_answer", "should_skip_follow_ups"]
