"""Pydantic schemas for the interview dialogue API."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from agents.types import QuestionPackSummary, TranscriptTurn, TurnOutput, WireModel


class TurnReq(BaseModel):
    input: Dict[str, Any] = Field(default_factory=dict)
    memory: Optional[Dict[str, Any]] = None


class TurnResp(BaseModel):
    output: TurnOutput
    memory: Dict[str, Any]
    mode: str


class EnsureReq(WireModel):
    session_id: Optional[str] = None
    pack: Optional[QuestionPackSummary] = None
    traffic_load: Optional[float] = None


class AnswerReq(WireModel):
    text: str = ""
    diagram_snapshot: Optional[Dict[str, Any]] = None
    traffic_load: Optional[float] = None


class DiagramChangeReq(WireModel):
    diagram_snapshot: Dict[str, Any] = Field(default_factory=dict)
    change_event: Optional[Dict[str, Any]] = None


class SessionResp(WireModel):
    session_id: str
    traffic_load: float
    history: List[TranscriptTurn] = Field(default_factory=list)
    memory: Dict[str, Any] = Field(default_factory=dict)


class SessionTurnResp(WireModel):
    session_id: str
    interviewer_message: Optional[str] = None
    intent: Optional[str] = None
    mode: Optional[str] = None
    focus: str = ""
    output: Optional[TurnOutput] = None
    history: List[TranscriptTurn] = Field(default_factory=list)
