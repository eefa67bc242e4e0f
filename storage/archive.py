"""Archive completed interviews to disk and SQLite."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from interview.models import CodingSlot, MCQSlot, Session, SpokenSlot
from interview.transcript import Transcript

from .interviews import delete_slots, insert_risk_flag, insert_slot, upsert_interview
from .migrate import migrate
from .transcripts import load_transcript, save_transcript

logger = logging.getLogger(__name__)


def _slot_row(slot) -> Tuple[str, Optional[str], Optional[float]]:
    if isinstance(slot, SpokenSlot):
        return slot.question, slot.answer, float(slot.evaluation.quality) if slot.evaluation else None
    if isinstance(slot, MCQSlot):
        quality = slot.justification_evaluation.quality if slot.justification_evaluation else None
        return slot.question, slot.selected_option, None if quality is None else float(quality)
    if isinstance(slot, CodingSlot):
        return slot.problem, slot.code, float(slot.evaluation.code_quality) if slot.evaluation else None
    raise TypeError(f"Unsupported slot type: {type(slot).__name__}")


class TranscriptArchive:
    """Writes the transcript snapshot and the SQLite rows for a completed session."""

    def __init__(self, *, use_database: bool = True) -> None:
        self._use_database = use_database
        if use_database:
            migrate()

    def save(self, session: Session, transcript: Transcript) -> str:
        path = save_transcript(session.id, transcript.model_dump(mode="json"))
        if self._use_database:
            self._write_rows(session)
        logger.info("Archived interview %s to %s", session.id, path)
        return path

    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        return load_transcript(session_id)

    def _write_rows(self, session: Session) -> None:
        report = session.score
        upsert_interview(
            id=session.id,
            candidate_name=session.candidate_name,
            role=session.role,
            difficulty=session.difficulty,
            state=session.state.value,
            start_time=session.start_time.isoformat(),
            end_time=session.end_time.isoformat() if session.end_time else None,
            duration_ms=session.duration_ms,
            overall=report.overall if report else None,
            grade=report.grade.letter if report else None,
            breakdown=report.breakdown.model_dump() if report else {},
            total_answered=report.total_answered if report else None,
            total_skipped=report.total_skipped if report else None,
        )
        delete_slots(session.id)
        for slot in session.slots:
            prompt, answer, quality = _slot_row(slot)
            insert_slot(
                interview_id=session.id,
                slot_index=slot.index,
                slot_type=slot.type,
                difficulty=slot.difficulty,
                prompt=prompt,
                answer=answer,
                quality=quality,
                skipped=slot.skipped,
                response_time_ms=slot.response_time_ms,
                payload=slot.model_dump(mode="json"),
            )
        for flag in report.risk_flags if report else []:
            insert_risk_flag(
                interview_id=session.id,
                flag_type=flag.type,
                severity=flag.severity,
                label=flag.label,
                detail=flag.detail,
            )


__all__ = ["TranscriptArchive"]
