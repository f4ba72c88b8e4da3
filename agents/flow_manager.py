"""Turn orchestration: decide what the interviewer says next."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from agents.behavior_monitor import check_misconception, offtopic_redirect
from agents.coach_agent import clarify_reply, coach_reply
from agents.intent_classifier import classify_intent, is_start_sentinel
from agents.qg.common import ComposeContext, build_retrieval_query, extract_diagram_context
from agents.qg.composer import compose
from agents.qg.sections import next_section, opener
from agents.response_evaluator import answer_quality, evaluate_answer
from agents.topic_mapper import (
    COMPONENT_TOPICS,
    NoOpPolicy,
    action_summary,
    is_no_op,
    topic_tag,
    topics_for_action,
)
from agents.types import (
    AddNode,
    ComposedQuestion,
    Connect,
    Evaluation,
    Move,
    RetrievedChunk,
    Target,
    TurnInput,
    TurnMode,
    TurnOutput,
)
from graph.state import SessionMemory
from services.memory import is_repeat, mark_section, record_question, update_skill

NO_CHANGE_CHALLENGE = "That change doesn't alter the design—why did you do it?"
NO_OP_ESCALATION = (
    "This still looks unnecessary. Consider removing it and adding a component that clearly addresses "
    "latency, availability, or scalability. What would you add instead?"
)
FORCED_PREFIX = "Different angle: "


class FlowConfig(BaseModel):
    max_attempts: int = Field(default=5, ge=1)
    angles: List[str] = Field(default_factory=lambda: ["ops", "failure", "metrics", "tradeoff", "cost"], min_length=1)
    retrieval_k: int = Field(default=10, ge=1)
    chunk_window: int = Field(default=4, ge=1)
    no_op: NoOpPolicy = Field(default_factory=NoOpPolicy)


class FlowDeps(BaseModel):
    """Read-only collaborators; the corpus index is built once at startup and shared."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    retriever: Optional[Any] = None


class TurnResult(BaseModel):
    output: TurnOutput
    memory: SessionMemory
    mode: TurnMode
    topic: Optional[str] = None
    attempts: int = 0
    forced: bool = False
    events: List[Dict[str, Any]] = Field(default_factory=list)


def _result(output: TurnOutput, memory: SessionMemory, mode: TurnMode, **extra: Any) -> TurnResult:
    return TurnResult(output=output, memory=memory.model_copy(update={"mode": mode}), mode=mode, **extra)


def _retrieve(deps: FlowDeps, query: str, k: int) -> List[RetrievedChunk]:
    if deps.retriever is None:
        return []
    return list(deps.retriever.retrieve(query, k=k))


def _is_first_turn(turn_input: TurnInput, user_text: str) -> bool:
    return not turn_input.transcript.last_turns or is_start_sentinel(user_text)


def pick_next_question(
    ctx: ComposeContext,
    memory: SessionMemory,
    deps: FlowDeps,
    cfg: FlowConfig,
    topics: Sequence[str],
) -> Tuple[ComposedQuestion, int, bool]:
    """Compose until a question passes the anti-repeat checks, widening the angle each attempt.

    The first attempt has no angle; attempt ``i`` uses ``cfg.angles[(i - 1) % len(angles)]``,
    so every angle is tried only when ``max_attempts > len(angles)``. With the defaults the
    last angle is reached through the forced fallback.

    Returns ``(question, attempts_used, forced)``; ``forced`` marks the "Different angle"
    fallback taken once ``cfg.max_attempts`` candidates were all repeats.
    """

    query = build_retrieval_query(ctx.action_summary, ctx.user_answer, ctx.difficulty, topics)
    chunks = _retrieve(deps, query, cfg.retrieval_k)
    for attempt in range(cfg.max_attempts):
        lens = None if attempt == 0 else cfg.angles[(attempt - 1) % len(cfg.angles)]
        if lens:
            query = f"{query} {lens}"
            if attempt % 2 == 0:
                chunks = _retrieve(deps, query, cfg.retrieval_k)
        start = attempt * 2
        window = chunks[start : start + cfg.chunk_window] or chunks[: cfg.chunk_window]
        candidate = compose(ctx.model_copy(update={"lens": lens, "chunks": window}))
        if not is_repeat(memory, candidate.main):
            return candidate, attempt + 1, False

    lens = cfg.angles[len(memory.asked_question_hashes) % len(cfg.angles)]
    candidate = compose(ctx.model_copy(update={"lens": lens, "chunks": chunks[: cfg.chunk_window]}))
    return candidate.model_copy(update={"main": FORCED_PREFIX + candidate.main}), cfg.max_attempts, True


def _drill_quality(memory: SessionMemory) -> int:
    return max(1, min(5, memory.skill + 2))


def _event_node_ids(event: Any) -> List[str]:
    if isinstance(event, AddNode):
        return [event.node.id] if event.node.id else []
    if isinstance(event, Connect):
        return [node_id for node_id in (event.source, event.target) if node_id]
    return []


def _drill(
    turn_input: TurnInput,
    memory: SessionMemory,
    deps: FlowDeps,
    cfg: FlowConfig,
    *,
    event: Any,
    user_text: str,
    no_op: bool,
    mode: TurnMode,
    quality: Optional[int] = None,
) -> TurnResult:
    topic = topic_tag(event)
    added = event.node if isinstance(event, AddNode) else None
    snapshot = turn_input.diagram_snapshot
    ctx = ComposeContext(
        topic=topic,
        difficulty=memory.difficulty,
        is_no_op=no_op,
        user_answer=user_text or memory.last_user_answer,
        diagram_context=extract_diagram_context(snapshot.nodes, snapshot.edges, added),
        traffic_load=turn_input.traffic_load,
        action_summary=action_summary(event),
    )
    question, attempts, forced = pick_next_question(ctx, memory, deps, cfg, topics_for_action(event))
    memory = record_question(memory, question.main, topic)
    output = TurnOutput(
        interviewer_message=question.render(),
        intent="challenge" if no_op else "drill_down",
        target=Target(node_ids=_event_node_ids(event), requirement_tags=[topic]),
        evaluation=Evaluation(
            answer_quality=quality if quality is not None else _drill_quality(memory),
            issues=["Unnecessary component"] if no_op else [],
        ),
    )
    return _result(output, memory, mode, topic=topic, attempts=attempts, forced=forced)


def handle_turn(
    turn_input: TurnInput,
    memory: Optional[SessionMemory] = None,
    deps: Optional[FlowDeps] = None,
    cfg: Optional[FlowConfig] = None,
) -> TurnResult:
    """Pure turn function: the given memory is never modified; the result carries its successor."""

    memory = SessionMemory.coerce(memory)
    deps = deps or FlowDeps()
    cfg = cfg or FlowConfig()

    transcript = turn_input.transcript
    user_text = transcript.pending_user_text()
    last_question = transcript.last_text("interviewer")
    event = turn_input.last_change_event
    traffic = turn_input.traffic_load

    correction = check_misconception(user_text)
    if correction is not None:
        return TurnResult(output=correction, memory=memory, mode="MISCONCEPTION")

    mem = memory.model_copy(
        update={
            "last_action_summary": action_summary(event),
            "last_user_answer": user_text[:200] if user_text else memory.last_user_answer,
        }
    )
    if user_text and not is_start_sentinel(user_text):
        mem = update_skill(mem, user_text)

    intent = classify_intent(user_text)
    if intent == "OFFTOPIC":
        return _result(offtopic_redirect(), mem, "OFFTOPIC_REDIRECT")
    if intent == "COACH":
        message = coach_reply(last_question, traffic, mem.coach_follow_up_index)
        mem = mem.model_copy(update={"coach_follow_up_index": mem.coach_follow_up_index + 1})
        output = TurnOutput(interviewer_message=message, intent="clarify", evaluation=Evaluation(answer_quality=3))
        return _result(output, mem, "COACH")
    if intent == "CLARIFY":
        output = TurnOutput(
            interviewer_message=clarify_reply(last_question),
            intent="clarify",
            evaluation=Evaluation(answer_quality=3),
        )
        return _result(output, mem, "CLARIFY")
    if intent == "EVALUATE":
        return _result(evaluate_answer(user_text), mem, "EVALUATE")

    if isinstance(event, Move):
        output = TurnOutput(
            interviewer_message=NO_CHANGE_CHALLENGE,
            intent="challenge",
            target=Target(node_ids=[event.node_id] if event.node_id else []),
            evaluation=Evaluation(answer_quality=3, issues=["No meaningful change"]),
        )
        return _result(output, mem, "NOOP_CHALLENGE")

    if _is_first_turn(turn_input, user_text):
        text = opener("requirements")
        mem = mark_section(record_question(mem, text, "requirements"), "requirements")
        output = TurnOutput(
            interviewer_message=text,
            intent="clarify",
            target=Target(requirement_tags=["requirements"]),
            evaluation=Evaluation(answer_quality=3),
        )
        return _result(output, mem, "OPEN", topic="requirements")

    if isinstance(event, (AddNode, Connect)):
        no_op = is_no_op(event, turn_input.diagram_snapshot.nodes, cfg.no_op)
        if no_op:
            repeated = mem.no_op_justify_attempts >= 1
            mem = mem.model_copy(update={"no_op_justify_attempts": mem.no_op_justify_attempts + 1})
            if repeated:
                output = TurnOutput(
                    interviewer_message=NO_OP_ESCALATION,
                    intent="challenge",
                    target=Target(node_ids=_event_node_ids(event)),
                    evaluation=Evaluation(answer_quality=2, issues=["Unnecessary component"]),
                )
                return _result(output, mem, "NOOP_CHALLENGE", topic=topic_tag(event))
        return _drill(
            turn_input,
            mem,
            deps,
            cfg,
            event=event,
            user_text=user_text,
            no_op=no_op,
            mode="NOOP_CHALLENGE" if no_op else "DRILL_DOWN",
        )

    quality = answer_quality(user_text)
    was_drilling = any(topic in COMPONENT_TOPICS for topic in mem.topic_history)
    if quality >= 4 and not was_drilling:
        section = next_section(mem.covered_sections)
        text = opener(section)
        mem = mark_section(record_question(mem, text, section), section)
        output = TurnOutput(
            interviewer_message=text,
            intent="wrap_up" if section == "wrap_up" else "next_topic",
            target=Target(requirement_tags=[section]),
            evaluation=Evaluation(answer_quality=quality),
        )
        return _result(output, mem, "NEXT_TOPIC", topic=section)

    return _drill(
        turn_input,
        mem,
        deps,
        cfg,
        event=event,
        user_text=user_text,
        no_op=False,
        mode="FALLBACK_DRILL_DOWN",
        quality=quality,
    )


__all__ = ["FlowConfig", "FlowDeps", "TurnResult", "handle_turn", "pick_next_question"]
