from __future__ import annotations  # Interview session models, errors and result types

from .errors import InterviewError, InvalidInput, InvalidStateTransition, OracleFailure, SessionNotFound
from .models import (
    SKIPPED_ANSWER,
    AnswerEvaluation,
    BehaviorData,
    BehaviorSignal,
    CodingEvaluation,
    CodingSlot,
    FollowUp,
    InterviewState,
    MCQSlot,
    RiskFlag,
    ScoreReport,
    Session,
    SpokenSlot,
)
from .result import Err, Ok, Result
from .transcript import Transcript, TranscriptSummary, build_transcript

__all__ = [
    "SKIPPED_ANSWER",
    "AnswerEvaluation",
    "BehaviorData",
    "BehaviorSignal",
    "CodingEvaluation",
    "CodingSlot",
    "Err",
    "FollowUp",
    "InterviewError",
    "InterviewState",
    "InvalidInput",
    "InvalidStateTransition",
    "MCQSlot",
    "Ok",
    "OracleFailure",
    "Result",
    "RiskFlag",
    "ScoreReport",
    "Session",
    "SessionNotFound",
    "SpokenSlot",
    "Transcript",
    "TranscriptSummary",
    "build_transcript",
]
