"""Turn execution: optional generator first, heuristic orchestrator as the authority."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from agents.flow_manager import FlowConfig, FlowDeps, TurnResult, handle_turn
from agents.types import TurnInput, TurnOutput
from config.registry import GENERATOR_KEY, get_model, has_model
from observability.logger import log_event
from observability.tracing import span
from services.memory import record_question

from .state import SessionMemory


def _try_generator(
    turn_input: TurnInput,
    memory: SessionMemory,
    session_id: str,
    events: List[Dict[str, Any]],
) -> Optional[TurnOutput]:
    if not has_model(GENERATOR_KEY):
        return None
    generator = get_model(GENERATOR_KEY)
    with span(events, "generator"):
        try:
            raw = generator(turn_input, memory)
            output = raw if isinstance(raw, TurnOutput) else TurnOutput.model_validate(raw)
        except ValidationError as exc:
            log_event("generator.fallback", session_id, level=logging.WARNING, reason=f"invalid: {exc.error_count()} errors")
            return None
        except Exception as exc:  # noqa: BLE001
            log_event("generator.fallback", session_id, level=logging.WARNING, reason=type(exc).__name__)
            return None
    if not output.interviewer_message:
        log_event("generator.fallback", session_id, level=logging.WARNING, reason="empty message")
        return None
    return output


def step(
    turn_input: TurnInput,
    memory: Optional[SessionMemory] = None,
    deps: Optional[FlowDeps] = None,
    cfg: Optional[FlowConfig] = None,
    *,
    session_id: str = "-",
) -> TurnResult:
    """Run one interviewer turn for ``turn_input`` against ``memory``."""

    memory = SessionMemory.coerce(memory)
    events: List[Dict[str, Any]] = []
    log_event("step.start", session_id, node="turn")

    generated = _try_generator(turn_input, memory, session_id, events)
    if generated is not None:
        successor = record_question(memory, generated.interviewer_message, "generated")
        result = TurnResult(
            output=generated,
            memory=successor.model_copy(update={"mode": "GENERATED"}),
            mode="GENERATED",
            events=events,
        )
        log_event("step.end", session_id, mode=result.mode, intent=result.output.intent)
        return result

    with span(events, "flow_manager"):
        result = handle_turn(turn_input, memory, deps, cfg)
    result.events = events
    log_event(
        "step.end",
        session_id,
        mode=result.mode,
        intent=result.output.intent,
        topic=result.topic,
        attempt=result.attempts,
        outcome="forced" if result.forced else "ok",
    )
    return result


__all__ = ["step"]
