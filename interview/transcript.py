"""Transcript and summary views over a session."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .models import ScoreReport, Session, SpokenSlot


class TranscriptSummary(BaseModel):
    total_slots: int
    answered: int
    skipped: int
    average_quality: float
    duration_ms: Optional[int] = None
    duration_formatted: str = "N/A"


class Transcript(BaseModel):
    id: str
    role: str
    candidate_name: str
    difficulty: str
    state: str
    start_time: datetime
    end_time: Optional[datetime] = None
    covered_topics: List[str] = Field(default_factory=list)
    slots: List[Dict[str, Any]] = Field(default_factory=list)
    behavior_signals: List[Dict[str, Any]] = Field(default_factory=list)
    summary: TranscriptSummary
    score: Optional[ScoreReport] = None


def format_duration(duration_ms: Optional[int]) -> str:
    if duration_ms is None:
        return "N/A"
    minutes, remainder = divmod(duration_ms, 60000)
    return f"{minutes}m {remainder // 1000}s"


def _slot_average(slot: SpokenSlot) -> float:
    scores = [slot.evaluation.quality if slot.evaluation else 0]
    scores.extend(fu.evaluation.quality if fu.evaluation else 0 for fu in slot.follow_ups)
    return sum(scores) / len(scores)


def build_summary(session: Session) -> TranscriptSummary:
    spoken = [slot for slot in session.slots if isinstance(slot, SpokenSlot) and not slot.skipped]
    average = sum(_slot_average(slot) for slot in spoken) / len(spoken) if spoken else 0.0
    skipped = sum(1 for slot in session.slots if slot.skipped)
    duration = session.duration_ms
    return TranscriptSummary(
        total_slots=len(session.slots),
        answered=len(session.slots) - skipped,
        skipped=skipped,
        average_quality=round(average, 1),
        duration_ms=duration,
        duration_formatted=format_duration(duration),
    )


def build_transcript(session: Session) -> Transcript:
    return Transcript(
        id=session.id,
        role=session.role,
        candidate_name=session.candidate_name,
        difficulty=session.difficulty,
        state=session.state.value,
        start_time=session.start_time,
        end_time=session.end_time,
        covered_topics=list(session.covered_topics),
        slots=[slot.model_dump(mode="json") for slot in session.slots],
        behavior_signals=[signal.model_dump(mode="json") for signal in session.behavior_signals],
        summary=build_summary(session),
        score=session.score,
    )


__all__ = ["Transcript", "TranscriptSummary", "build_summary", "build_transcript", "format_duration"]
