"""Persistence helpers for completed interviews, slots and risk flags."""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn


class InterviewPayload(BaseModel):
    id: str
    candidate_name: str
    role: str
    difficulty: str
    state: str
    start_time: str
    end_time: Optional[str] = None
    duration_ms: Optional[int] = None
    overall: Optional[int] = None
    grade: Optional[str] = None
    breakdown: Dict[str, int] = Field(default_factory=dict)
    total_answered: Optional[int] = None
    total_skipped: Optional[int] = None


class SlotPayload(BaseModel):
    interview_id: str
    slot_index: int
    slot_type: str
    difficulty: str
    prompt: str
    answer: Optional[str] = None
    quality: Optional[float] = None
    skipped: bool = False
    response_time_ms: Optional[int] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


class RiskFlagPayload(BaseModel):
    interview_id: str
    flag_type: str
    severity: str
    label: str
    detail: str


def upsert_interview(**data: Any) -> str:
    """Insert or update the interview header row and return its id."""

    payload = InterviewPayload(**data)
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO interviews
               (id, candidate_name, role, difficulty, state, start_time, end_time, duration_ms,
                overall, grade, breakdown, total_answered, total_skipped)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                 candidate_name = excluded.candidate_name,
                 role = excluded.role,
                 difficulty = excluded.difficulty,
                 state = excluded.state,
                 start_time = excluded.start_time,
                 end_time = excluded.end_time,
                 duration_ms = excluded.duration_ms,
                 overall = excluded.overall,
                 grade = excluded.grade,
                 breakdown = excluded.breakdown,
                 total_answered = excluded.total_answered,
                 total_skipped = excluded.total_skipped""",
            (
                payload.id,
                payload.candidate_name,
                payload.role,
                payload.difficulty,
                payload.state,
                payload.start_time,
                payload.end_time,
                payload.duration_ms,
                payload.overall,
                payload.grade,
                json.dumps(payload.breakdown),
                payload.total_answered,
                payload.total_skipped,
            ),
        )
    return payload.id


def insert_slot(**data: Any) -> int:
    """Insert one slot row and return its primary key."""

    payload = SlotPayload(**data)
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO interview_slots
               (interview_id, slot_index, slot_type, difficulty, prompt, answer, quality,
                skipped, response_time_ms, payload)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                payload.interview_id,
                payload.slot_index,
                payload.slot_type,
                payload.difficulty,
                payload.prompt,
                payload.answer,
                payload.quality,
                int(payload.skipped),
                payload.response_time_ms,
                json.dumps(payload.payload, default=str),
            ),
        )
        return int(cur.lastrowid)


def insert_risk_flag(**data: Any) -> int:
    """Insert a risk flag row and return its primary key."""

    payload = RiskFlagPayload(**data)
    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO risk_flags
               (timestamp, interview_id, flag_type, severity, label, detail)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                timestamp,
                payload.interview_id,
                payload.flag_type,
                payload.severity,
                payload.label,
                payload.detail,
            ),
        )
        return int(cur.lastrowid)


def delete_slots(interview_id: str) -> None:
    with get_conn() as conn:
        conn.execute("DELETE FROM interview_slots WHERE interview_id = ?", (interview_id,))
        conn.execute("DELETE FROM risk_flags WHERE interview_id = ?", (interview_id,))


def recent_interviews(limit: int = 20) -> List[Dict[str, Any]]:
    with get_conn() as conn:
        rows = conn.execute(
            """SELECT id, candidate_name, role, difficulty, state, end_time, overall, grade,
                      total_answered, total_skipped
               FROM interviews ORDER BY start_time DESC LIMIT ?""",
            (limit,),
        ).fetchall()
    return [dict(row) for row in rows]


def recent_risk_flags(limit: int = 20) -> List[Dict[str, Any]]:
    with get_conn() as conn:
        rows = conn.execute(
            """SELECT timestamp, interview_id, flag_type, severity, label, detail
               FROM risk_flags ORDER BY id DESC LIMIT ?""",
            (limit,),
        ).fetchall()
    return [dict(row) for row in rows]


__all__ = [
    "delete_slots",
    "insert_risk_flag",
    "insert_slot",
    "recent_interviews",
    "recent_risk_flags",
    "upsert_interview",
]
