"""Pydantic schemas for the interview session API."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from config.interview import Difficulty
from interview.flow import StepResponse
from interview.models import BehaviorData, ScoreReport


class StartReq(BaseModel):
    role: str = Field(min_length=1)
    candidate_name: str = Field(min_length=1)
    difficulty: Difficulty = "medium"


class SessionReq(BaseModel):
    session_id: str


class AnswerReq(SessionReq):
    answer: str


class MCQAnswerReq(SessionReq):
    selected_option: str = Field(min_length=1)
    selection_time_ms: Optional[int] = Field(default=None, ge=0)


class MCQJustifyReq(SessionReq):
    justification: str


class CodeSubmitReq(SessionReq):
    code: str
    explanation: str = ""
    behavior_data: BehaviorData = Field(default_factory=BehaviorData)


class CodingInterruptReq(SessionReq):
    code: str = ""


class InterruptResponseReq(SessionReq):
    response: str


class SignalReq(SessionReq):
    type: str = Field(min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


class ApiResp(BaseModel):
    session_id: str
    step: Optional[StepResponse] = None


class SignalResp(BaseModel):
    session_id: str
    recorded: int


class SessionView(BaseModel):
    session_id: str
    role: str
    candidate_name: str
    difficulty: str
    state: str
    slot_number: int
    total_slots: int
    follow_up_depth: int
    covered_topics: List[str] = Field(default_factory=list)
    score: Optional[ScoreReport] = None
