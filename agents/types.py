"""Pydantic schemas shared by the dialogue engine agents."""
from __future__ import annotations

import math
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

Intent = Literal["clarify", "drill_down", "challenge", "validate", "next_topic", "wrap_up"]
VALID_INTENTS = ("clarify", "drill_down", "challenge", "validate", "next_topic", "wrap_up")

TurnMode = Literal[
    "OPEN",
    "OFFTOPIC_REDIRECT",
    "COACH",
    "CLARIFY",
    "EVALUATE",
    "MISCONCEPTION",
    "NOOP_CHALLENGE",
    "DRILL_DOWN",
    "NEXT_TOPIC",
    "FALLBACK_DRILL_DOWN",
    "GENERATED",
]

DEFAULT_TRAFFIC_LOAD = 1000.0


class WireModel(BaseModel):
    """Base for records exchanged with the UI: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def coerce_traffic(value: Any, default: float = DEFAULT_TRAFFIC_LOAD) -> float:
    """Requests per second as a finite, non-negative float; anything else becomes ``default``."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return float(default)
    try:
        traffic = float(value)
    except OverflowError:
        return float(default)
    if not math.isfinite(traffic) or traffic < 0:
        return float(default)
    return traffic


# ---------------------------------------------------------------------------
# Diagram
# ---------------------------------------------------------------------------


class DiagramNode(WireModel):
    id: str = ""
    label: str = ""
    type: str = ""

    @model_validator(mode="before")
    @classmethod
    def _lift_label(cls, raw: Any) -> Any:
        if not isinstance(raw, dict):
            return {}
        data = dict(raw)
        inner = data.get("data") if isinstance(data.get("data"), dict) else {}
        label = data.get("label") or inner.get("label") or data.get("id") or ""
        return {
            "id": str(data.get("id") or ""),
            "label": str(label),
            "type": str(data.get("type") or inner.get("type") or ""),
        }


class DiagramEdge(WireModel):
    id: str = ""
    source: str = ""
    target: str = ""

    @model_validator(mode="before")
    @classmethod
    def _stringify(cls, raw: Any) -> Any:
        if not isinstance(raw, dict):
            return {}
        return {key: str(raw.get(key) or "") for key in ("id", "source", "target")}


class DiagramSnapshot(WireModel):
    nodes: List[DiagramNode] = Field(default_factory=list)
    edges: List[DiagramEdge] = Field(default_factory=list)
    selected_node_ids: List[str] = Field(default_factory=list)
    highlighted_issues: List[str] = Field(default_factory=list)

    @field_validator("nodes", "edges", mode="before")
    @classmethod
    def _drop_junk(cls, value: Any) -> List[Any]:
        return [item for item in _as_list(value) if isinstance(item, dict)]

    @field_validator("selected_node_ids", "highlighted_issues", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> List[str]:
        return [str(item) for item in _as_list(value)]

    def label_for(self, node_id: str) -> str:
        for node in self.nodes:
            if node.id == node_id:
                return node.label
        return node_id


# ---------------------------------------------------------------------------
# Change events (tagged union on ``kind``)
# ---------------------------------------------------------------------------


class AddNode(WireModel):
    kind: Literal["addNode"] = "addNode"
    node: DiagramNode


class DeleteNode(WireModel):
    kind: Literal["deleteNode"] = "deleteNode"
    node_id: str = ""


class Connect(WireModel):
    kind: Literal["connect"] = "connect"
    source: str = ""
    target: str = ""
    source_label: str = ""
    target_label: str = ""


class DeleteEdge(WireModel):
    kind: Literal["deleteEdge"] = "deleteEdge"
    edge_id: str = ""
    source: str = ""
    target: str = ""


class Move(WireModel):
    kind: Literal["move"] = "move"
    node_id: str = ""


DiagramChangeEvent = Annotated[
    Union[AddNode, DeleteNode, Connect, DeleteEdge, Move],
    Field(discriminator="kind"),
]

_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(DiagramChangeEvent)


def parse_change_event(raw: Any) -> Optional[DiagramChangeEvent]:
    """Coerce a UI change record (``{type|kind, payload|details}``) into a typed event.

    Unknown kinds and unusable payloads yield ``None``.
    """

    if raw is None:
        return None
    if isinstance(raw, (AddNode, DeleteNode, Connect, DeleteEdge, Move)):
        return raw
    if not isinstance(raw, dict):
        return None
    kind = raw.get("kind") or raw.get("type") or raw.get("changeType")
    payload = raw.get("payload") or raw.get("details") or {}
    if not isinstance(payload, dict):
        payload = {}
    data: Dict[str, Any] = {"kind": kind}
    if kind == "addNode":
        node = payload.get("node") if isinstance(payload.get("node"), dict) else payload
        if not node:
            return None
        data["node"] = node
    elif kind in ("deleteNode", "move"):
        data["node_id"] = str(payload.get("id") or payload.get("nodeId") or payload.get("node_id") or "")
    elif kind == "connect":
        data.update(
            source=str(payload.get("source") or ""),
            target=str(payload.get("target") or ""),
            source_label=str(payload.get("sourceLabel") or payload.get("source_label") or ""),
            target_label=str(payload.get("targetLabel") or payload.get("target_label") or ""),
        )
    elif kind == "deleteEdge":
        data.update(
            edge_id=str(payload.get("id") or payload.get("edgeId") or ""),
            source=str(payload.get("source") or ""),
            target=str(payload.get("target") or ""),
        )
    else:
        return None
    try:
        return _EVENT_ADAPTER.validate_python(data)
    except ValidationError:
        return None


# ---------------------------------------------------------------------------
# Turn input
# ---------------------------------------------------------------------------


class QuestionPackSummary(WireModel):
    title: str = ""
    problem_statement: str = ""
    functional_requirements: List[str] = Field(default_factory=list)
    non_functional_requirements: List[str] = Field(default_factory=list)

    @field_validator("title", "problem_statement", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_str(value)

    @field_validator("functional_requirements", "non_functional_requirements", mode="before")
    @classmethod
    def _reqs(cls, value: Any) -> List[str]:
        return [str(item) for item in _as_list(value)]


class TranscriptTurn(WireModel):
    role: Literal["user", "interviewer"] = "user"
    text: str = ""

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, value: Any) -> str:
        return "interviewer" if value in ("interviewer", "assistant") else "user"

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _as_str(value)


class Transcript(WireModel):
    last_turns: List[TranscriptTurn] = Field(default_factory=list)

    @field_validator("last_turns", mode="before")
    @classmethod
    def _turns(cls, value: Any) -> List[Any]:
        return [item for item in _as_list(value) if isinstance(item, (dict, TranscriptTurn))]

    def last_text(self, role: str) -> str:
        for turn in reversed(self.last_turns):
            if turn.role == role:
                return turn.text.strip()
        return ""

    def pending_user_text(self) -> str:
        """The user's reply still awaiting a response: their text only if they spoke last."""

        if self.last_turns and self.last_turns[-1].role == "user":
            return self.last_turns[-1].text.strip()
        return ""


class TurnInput(WireModel):
    question_pack_summary: QuestionPackSummary = Field(default_factory=QuestionPackSummary)
    diagram_snapshot: DiagramSnapshot = Field(default_factory=DiagramSnapshot)
    last_change_event: Optional[DiagramChangeEvent] = None
    traffic_load: float = DEFAULT_TRAFFIC_LOAD
    transcript: Transcript = Field(default_factory=Transcript)

    @model_validator(mode="before")
    @classmethod
    def _defaults(cls, raw: Any) -> Any:
        if not isinstance(raw, dict):
            return {}
        data = dict(raw)
        for field, alias in (
            ("question_pack_summary", "questionPackSummary"),
            ("diagram_snapshot", "diagramSnapshot"),
            ("transcript", "transcript"),
        ):
            value = data.pop(alias, data.pop(field, None))
            data[field] = value if isinstance(value, (dict, BaseModel)) else {}
        event = data.pop("lastChangeEvent", data.pop("last_change_event", None))
        data["last_change_event"] = parse_change_event(event)
        data["traffic_load"] = coerce_traffic(data.pop("trafficLoad", data.pop("traffic_load", None)))
        return data

    @model_validator(mode="after")
    def _label_connection(self) -> "TurnInput":
        # Connect events from the canvas carry ids only; names come from the snapshot.
        event = self.last_change_event
        if isinstance(event, Connect) and not (event.source_label and event.target_label):
            snapshot = self.diagram_snapshot
            self.last_change_event = event.model_copy(
                update={
                    "source_label": event.source_label or (snapshot.label_for(event.source) if event.source else ""),
                    "target_label": event.target_label or (snapshot.label_for(event.target) if event.target else ""),
                }
            )
        return self


# ---------------------------------------------------------------------------
# Turn output
# ---------------------------------------------------------------------------


class Target(WireModel):
    node_ids: List[str] = Field(default_factory=list)
    requirement_tags: List[str] = Field(default_factory=list)


class Evaluation(WireModel):
    answer_quality: int = 3
    issues: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)

    @field_validator("answer_quality", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 3
        return max(1, min(5, int(round(value))))


class TurnOutput(WireModel):
    interviewer_message: str
    intent: Intent = "drill_down"
    target: Target = Field(default_factory=Target)
    evaluation: Evaluation = Field(default_factory=Evaluation)
    next_actions: List[str] = Field(default_factory=list)

    @field_validator("intent", mode="before")
    @classmethod
    def _known_intent(cls, value: Any) -> str:
        return value if value in VALID_INTENTS else "drill_down"

    @field_validator("interviewer_message", mode="before")
    @classmethod
    def _message(cls, value: Any) -> str:
        return _as_str(value).strip()


# ---------------------------------------------------------------------------
# Retrieval and composition
# ---------------------------------------------------------------------------


class RetrievedChunk(BaseModel):
    id: str
    doc_id: str = ""
    title: str = ""
    tags: List[str] = Field(default_factory=list)
    text: str = ""
    score: float = 0.0


class ComposedQuestion(BaseModel):
    """A question before rendering; ``scenario`` is the optional stress preamble."""

    main: str
    why: str = ""
    looking_for: List[str] = Field(default_factory=list)
    follow_up: Optional[str] = None
    scenario: Optional[str] = None

    def render(self) -> str:
        parts = [self.scenario or "", self.main, self.why]
        if self.looking_for:
            parts.append("I'm looking for: " + ", ".join(self.looking_for) + ".")
        parts.append(self.follow_up or "")
        return " ".join(part.strip() for part in parts if part and part.strip())
