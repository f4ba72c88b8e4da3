"""Behavior monitor: factual corrections and off-topic redirects ahead of normal flow."""
from __future__ import annotations

from typing import Optional

from agents.types import Evaluation, TurnOutput
from config.misconceptions import MisconceptionEngine, misconception_engine

OFFTOPIC_REDIRECT = "Let's stay focused on the system design. What component did you add or change, and why?"


def check_misconception(text: Optional[str], engine: Optional[MisconceptionEngine] = None) -> Optional[TurnOutput]:
    """Challenge a known-wrong claim in ``text``; ``None`` when nothing matches."""

    hit = (engine or misconception_engine()).detect(text or "")
    if hit is None:
        return None
    return TurnOutput(
        interviewer_message=hit.correction,
        intent="challenge",
        evaluation=Evaluation(answer_quality=2, issues=["Incorrect"]),
    )


def offtopic_redirect() -> TurnOutput:
    return TurnOutput(
        interviewer_message=OFFTOPIC_REDIRECT,
        intent="clarify",
        evaluation=Evaluation(answer_quality=2, issues=["Off-topic"]),
    )


__all__ = ["OFFTOPIC_REDIRECT", "check_misconception", "offtopic_redirect"]
