"""FastAPI routes for interviewer turns and interview sessions."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from agents.types import TurnInput
from api.schemas import (
    AnswerReq,
    DiagramChangeReq,
    EnsureReq,
    SessionResp,
    SessionTurnResp,
    TurnReq,
    TurnResp,
)
from graph.build import step
from graph.state import SessionMemory, SessionRecord
from services.sessions import InterviewSessionService, SessionNotFound, SessionTurn

router = APIRouter(prefix="/api")

_SERVICE: Optional[InterviewSessionService] = None


def configure(service: Optional[InterviewSessionService]) -> None:
    global _SERVICE
    _SERVICE = service


def get_service() -> InterviewSessionService:
    if _SERVICE is None:
        raise HTTPException(status_code=503, detail="interview service not configured")
    return _SERVICE


def _session_resp(record: SessionRecord) -> SessionResp:
    return SessionResp(
        session_id=record.session_id,
        traffic_load=record.traffic_load,
        history=record.history,
        memory=record.memory.model_dump(by_alias=True),
    )


def _turn_resp(session_id: str, turn: Optional[SessionTurn]) -> SessionTurnResp:
    if turn is None:
        return SessionTurnResp(session_id=session_id)
    return SessionTurnResp.model_validate(turn.model_dump())


@router.post("/interview/turn", response_model=TurnResp)
def interview_turn(req: TurnReq, service: InterviewSessionService = Depends(get_service)) -> TurnResp:
    turn_input = TurnInput.model_validate(req.input)
    result = step(turn_input, SessionMemory.coerce(req.memory), service.deps, service.cfg)
    return TurnResp(output=result.output, memory=result.memory.model_dump(by_alias=True), mode=result.mode)


@router.post("/interview-sessions", response_model=SessionResp)
def ensure_session(req: EnsureReq, service: InterviewSessionService = Depends(get_service)) -> SessionResp:
    record = service.ensure_session(req.session_id, req.pack, req.traffic_load)
    return _session_resp(record)


@router.post("/interview-sessions/{session_id}/answer", response_model=SessionTurnResp)
def answer(
    session_id: str,
    req: AnswerReq,
    service: InterviewSessionService = Depends(get_service),
) -> SessionTurnResp:
    try:
        turn = service.on_user_answer(session_id, req.text, req.diagram_snapshot, req.traffic_load)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="session not found")
    return _turn_resp(session_id, turn)


@router.post("/interview-sessions/{session_id}/diagram-change", response_model=SessionTurnResp)
def diagram_change(
    session_id: str,
    req: DiagramChangeReq,
    service: InterviewSessionService = Depends(get_service),
) -> SessionTurnResp:
    try:
        turn = service.on_diagram_changed(session_id, req.diagram_snapshot, req.change_event)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="session not found")
    return _turn_resp(session_id, turn)


@router.post("/interview-sessions/{session_id}/reset", response_model=SessionResp)
def reset(session_id: str, service: InterviewSessionService = Depends(get_service)) -> SessionResp:
    try:
        record = service.reset(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="session not found")
    return _session_resp(record)
