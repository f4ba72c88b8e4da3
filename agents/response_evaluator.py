"""Heuristic scoring of free-text answers: signal detection and quality bands."""
from __future__ import annotations

import re
from typing import List

from pydantic import BaseModel, Field

from agents.types import Evaluation, TurnOutput

_NUMBERS_RE = re.compile(r"\d+")
_TRADEOFF_RE = re.compile(r"vs|tradeoff|trade-off|consistency|latency|cost", re.I)
_FAILURE_RE = re.compile(r"fail|down|crash|stampede|dlq|retry", re.I)
_SUBSTANCE_RE = re.compile(r"\d|qps|ttl|partition|cache|replica|consistency|availability", re.I)

SUBSTANTIVE_MIN_CHARS = 30


class AnswerSignals(BaseModel):
    has_numbers: bool = False
    has_tradeoff: bool = False
    has_failure: bool = False
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return int(self.has_numbers) + int(self.has_tradeoff) + int(self.has_failure)


def detect_signals(answer: str) -> AnswerSignals:
    text = answer or ""
    signals = AnswerSignals(
        has_numbers=bool(_NUMBERS_RE.search(text)),
        has_tradeoff=bool(_TRADEOFF_RE.search(text)),
        has_failure=bool(_FAILURE_RE.search(text)),
    )
    for present, strength, gap in (
        (signals.has_numbers, "You included numbers", "Concrete numbers (QPS, TTL, p99)"),
        (signals.has_tradeoff, "You mentioned a tradeoff", "Explicit tradeoff (e.g. latency vs consistency)"),
        (signals.has_failure, "You addressed a failure mode", "Failure mode or containment"),
    ):
        (signals.strengths if present else signals.gaps).append(strength if present else gap)
    return signals


def sharper_question(signals: AnswerSignals) -> str:
    if not signals.has_numbers:
        return "What’s the ballpark QPS and p99 for this path?"
    if not signals.has_failure:
        return "What happens when this component fails—and how do you detect it?"
    return "What tradeoff are you explicitly accepting (cost, latency, consistency)?"


def evaluate_answer(answer: str) -> TurnOutput:
    """Strengths and gaps of a long answer, plus one sharper follow-up."""

    signals = detect_signals(answer)
    strong = signals.strengths or ["You engaged with the question"]
    missing = signals.gaps or ["Operational detail (metrics, alerting)"]
    message = (
        "Good. Here’s what’s strong / missing: "
        f"Strong: {'; '.join(strong[:2])}. "
        f"Missing: {'; '.join(missing[:2])}. "
        f"{sharper_question(signals)}"
    )
    return TurnOutput(
        interviewer_message=message,
        intent="drill_down" if signals.gaps else "validate",
        evaluation=Evaluation(answer_quality=2 + signals.count, issues=[], missing=signals.gaps[:2]),
    )


def answer_quality(answer: str) -> int:
    """4 for a substantive answer, else 3."""

    text = (answer or "").strip()
    if len(text) >= SUBSTANTIVE_MIN_CHARS and _SUBSTANCE_RE.search(text):
        return 4
    return 3


__all__ = ["AnswerSignals", "answer_quality", "detect_signals", "evaluate_answer", "sharper_question"]
