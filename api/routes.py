"""FastAPI routes for interview session control."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request

from api.schemas import (
    AnswerReq,
    ApiResp,
    CodeSubmitReq,
    CodingInterruptReq,
    InterruptResponseReq,
    MCQAnswerReq,
    MCQJustifyReq,
    SessionReq,
    SessionView,
    SignalReq,
    SignalResp,
    StartReq,
)
from config.settings import settings
from interview.errors import InvalidStateTransition, SessionNotFound
from interview.flow import InterviewEngine
from interview.result import Result


router = APIRouter(prefix="/api/interview")

STATUS_BY_ERROR = {
    SessionNotFound: 404,
    InvalidStateTransition: 409,
}


def get_engine(request: Request) -> InterviewEngine:
    return request.app.state.engine


def _unwrap(result: Result) -> Any:
    if result.ok:
        return result.value
    status = STATUS_BY_ERROR.get(type(result.error), 400)
    raise HTTPException(status_code=status, detail={"kind": result.kind, "message": str(result.error)})


@router.post("/start", response_model=ApiResp)
def start(req: StartReq, engine: InterviewEngine = Depends(get_engine)) -> ApiResp:
    engine.evict_idle(settings.SESSION_IDLE_TIMEOUT_S)
    session = engine.create_session(req.role, req.candidate_name, req.difficulty)
    step = _unwrap(engine.start(session.id))
    return ApiResp(session_id=session.id, step=step)


@router.post("/answer", response_model=ApiResp)
def answer(req: AnswerReq, engine: InterviewEngine = Depends(get_engine)) -> ApiResp:
    step = _unwrap(engine.submit_spoken_answer(req.session_id, req.answer))
    return ApiResp(session_id=req.session_id, step=step)


@router.post("/mcq-answer", response_model=ApiResp)
def mcq_answer(req: MCQAnswerReq, engine: InterviewEngine = Depends(get_engine)) -> ApiResp:
    step = _unwrap(engine.submit_mcq_answer(req.session_id, req.selected_option, req.selection_time_ms))
    return ApiResp(session_id=req.session_id, step=step)


@router.post("/mcq-justify", response_model=ApiResp)
def mcq_justify(req: MCQJustifyReq, engine: InterviewEngine = Depends(get_engine)) -> ApiResp:
    step = _unwrap(engine.submit_mcq_justification(req.session_id, req.justification))
    return ApiResp(session_id=req.session_id, step=step)


@router.post("/code-submit", response_model=ApiResp)
def code_submit(req: CodeSubmitReq, engine: InterviewEngine = Depends(get_engine)) -> ApiResp:
    step = _unwrap(engine.submit_code(req.session_id, req.code, req.explanation, req.behavior_data))
    return ApiResp(session_id=req.session_id, step=step)


@router.post("/coding-interrupt", response_model=ApiResp)
def coding_interrupt(req: CodingInterruptReq, engine: InterviewEngine = Depends(get_engine)) -> ApiResp:
    # step stays empty when the slot has already been interrupted
    step = _unwrap(engine.trigger_coding_interruption(req.session_id, req.code))
    return ApiResp(session_id=req.session_id, step=step)


@router.post("/interrupt-response", response_model=ApiResp)
def interrupt_response(req: InterruptResponseReq, engine: InterviewEngine = Depends(get_engine)) -> ApiResp:
    step = _unwrap(engine.submit_interruption_response(req.session_id, req.response))
    return ApiResp(session_id=req.session_id, step=step)


@router.post("/skip", response_model=ApiResp)
def skip(req: SessionReq, engine: InterviewEngine = Depends(get_engine)) -> ApiResp:
    step = _unwrap(engine.skip(req.session_id))
    return ApiResp(session_id=req.session_id, step=step)


@router.post("/signal", response_model=SignalResp)
def signal(req: SignalReq, engine: InterviewEngine = Depends(get_engine)) -> SignalResp:
    _unwrap(engine.record_signal(req.session_id, req.type, req.data))
    session = engine.get_session(req.session_id)
    recorded = len(session.behavior_signals) if session is not None else 0
    return SignalResp(session_id=req.session_id, recorded=recorded)


@router.get("/{session_id}/transcript")
def transcript(session_id: str, engine: InterviewEngine = Depends(get_engine)) -> Dict[str, Any]:
    return _unwrap(engine.get_transcript(session_id))


@router.get("/{session_id}", response_model=SessionView)
def session_view(session_id: str, engine: InterviewEngine = Depends(get_engine)) -> SessionView:
    session = engine.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=404,
            detail={"kind": SessionNotFound.kind, "message": str(SessionNotFound(session_id))},
        )
    total = engine.plan.total_slots
    return SessionView(
        session_id=session.id,
        role=session.role,
        candidate_name=session.candidate_name,
        difficulty=session.difficulty,
        state=session.state.value,
        slot_number=min(session.current_slot_index, total - 1) + 1,
        total_slots=total,
        follow_up_depth=session.current_follow_up_depth,
        covered_topics=list(session.covered_topics),
        score=session.score,
    )
