"""Session bookkeeping around the turn engine: transcript, diagram hash, and per-session locking."""
from __future__ import annotations

import hashlib
import json
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field

from agents.flow_manager import NO_CHANGE_CHALLENGE, FlowConfig, FlowDeps
from agents.types import (
    DiagramSnapshot,
    Move,
    QuestionPackSummary,
    Transcript,
    TranscriptTurn,
    TurnInput,
    TurnOutput,
    coerce_traffic,
    parse_change_event,
)
from graph.build import step
from graph.checkpointer import delete_checkpoint, load_checkpoint, save_checkpoint
from graph.state import SessionMemory, SessionRecord
from observability.logger import log_event


class SessionNotFound(KeyError):
    """Raised for operations on a session id that was never created."""


class SessionTurn(BaseModel):
    """What the UI gets back after a session event."""

    session_id: str
    interviewer_message: str
    intent: str
    mode: str
    focus: str = ""
    output: Optional[TurnOutput] = None
    history: List[TranscriptTurn] = Field(default_factory=list)


def diagram_hash(snapshot: DiagramSnapshot) -> str:
    """Order-insensitive fingerprint of the diagram structure (16 hex chars)."""

    nodes = sorted([node.id, node.type, node.label] for node in snapshot.nodes)
    edges = sorted([edge.source, edge.target] for edge in snapshot.edges)
    blob = json.dumps({"nodes": nodes, "edges": edges}, separators=(",", ":"))
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()[:16]


def focus_of(output: TurnOutput) -> str:
    parts = list(output.target.requirement_tags) + [f"node:{node_id}" for node_id in output.target.node_ids]
    return ", ".join(parts)


class SessionStore:
    """In-memory session records; each session id has its own lock for read-modify-write."""

    def __init__(self, checkpoint_dir: str = ""):
        self.checkpoint_dir = checkpoint_dir
        self._records: Dict[str, SessionRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, session_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[session_id] = lock
        return lock

    def _load(self, session_id: str) -> Optional[SessionRecord]:
        record = self._records.get(session_id)
        if record is None and self.checkpoint_dir:
            record = load_checkpoint(session_id, self.checkpoint_dir)
            if record is not None:
                self._records[session_id] = record
        return record

    def _save(self, record: SessionRecord) -> None:
        self._records[record.session_id] = record
        if self.checkpoint_dir:
            save_checkpoint(record, self.checkpoint_dir)

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock_for(session_id):
            record = self._load(session_id)
            return record.model_copy(deep=True) if record is not None else None

    @contextmanager
    def session(
        self, session_id: str, *, create: bool = False, defaults: Optional[Dict[str, Any]] = None
    ) -> Iterator[SessionRecord]:
        """Hold the session lock and yield its record; changes are saved when the block exits cleanly."""

        with self._lock_for(session_id):
            record = self._load(session_id)
            if record is None:
                if not create:
                    raise SessionNotFound(session_id)
                record = SessionRecord(session_id=session_id, **(defaults or {}))
            working = record.model_copy(deep=True)
            yield working
            self._save(working)

    def drop(self, session_id: str) -> None:
        with self._lock_for(session_id):
            self._records.pop(session_id, None)
            if self.checkpoint_dir:
                delete_checkpoint(session_id, self.checkpoint_dir)
        with self._guard:
            self._locks.pop(session_id, None)


class InterviewSessionService:
    """Feeds UI events through the turn engine and keeps each session's transcript."""

    def __init__(
        self,
        store: SessionStore,
        deps: Optional[FlowDeps] = None,
        cfg: Optional[FlowConfig] = None,
        *,
        history_window: int = 10,
        default_traffic_load: float = 1000.0,
    ):
        self.store = store
        self.deps = deps or FlowDeps()
        self.cfg = cfg or FlowConfig()
        self.history_window = history_window
        self.default_traffic_load = default_traffic_load

    def ensure_session(
        self,
        session_id: Optional[str] = None,
        pack: Optional[Any] = None,
        traffic_load: Optional[float] = None,
    ) -> SessionRecord:
        session_id = session_id or uuid.uuid4().hex
        with self.store.session(
            session_id, create=True, defaults={"traffic_load": self.default_traffic_load}
        ) as record:
            if pack is not None:
                record.pack = QuestionPackSummary.model_validate(pack)
            if traffic_load is not None:
                record.traffic_load = coerce_traffic(traffic_load, record.traffic_load)
            snapshot = record.model_copy(deep=True)
        return snapshot

    def _run(self, record: SessionRecord, event: Any = None) -> SessionTurn:
        turn_input = TurnInput(
            question_pack_summary=record.pack,
            diagram_snapshot=record.snapshot,
            last_change_event=event,
            traffic_load=record.traffic_load,
            transcript=Transcript(last_turns=record.history[-self.history_window :]),
        )
        result = step(turn_input, record.memory, self.deps, self.cfg, session_id=record.session_id)
        record.memory = result.memory
        record.history.append(TranscriptTurn(role="interviewer", text=result.output.interviewer_message))
        record.last_focus = focus_of(result.output)
        return SessionTurn(
            session_id=record.session_id,
            interviewer_message=result.output.interviewer_message,
            intent=result.output.intent,
            mode=result.mode,
            focus=record.last_focus,
            output=result.output,
            history=list(record.history),
        )

    def on_user_answer(
        self,
        session_id: str,
        text: str,
        snapshot: Optional[Any] = None,
        traffic_load: Optional[float] = None,
    ) -> SessionTurn:
        with self.store.session(session_id) as record:
            if snapshot is not None:
                record.snapshot = DiagramSnapshot.model_validate(snapshot)
                record.last_diagram_hash = diagram_hash(record.snapshot)
            if traffic_load is not None:
                record.traffic_load = coerce_traffic(traffic_load, record.traffic_load)
            record.history.append(TranscriptTurn(role="user", text=text or ""))
            return self._run(record)

    def on_diagram_changed(self, session_id: str, snapshot: Any, change_event: Any) -> Optional[SessionTurn]:
        """React to a diagram edit; ``None`` when the edit is not one the interviewer comments on."""

        event = parse_change_event(change_event)
        with self.store.session(session_id) as record:
            new_snapshot = DiagramSnapshot.model_validate(snapshot or {})
            new_hash = diagram_hash(new_snapshot)
            unchanged = bool(record.last_diagram_hash) and new_hash == record.last_diagram_hash
            record.snapshot = new_snapshot
            record.last_diagram_hash = new_hash

            if isinstance(event, Move) or (event is not None and unchanged):
                log_event("session.diagram_unchanged", session_id, reason="move" if isinstance(event, Move) else "same hash")
                record.history.append(TranscriptTurn(role="interviewer", text=NO_CHANGE_CHALLENGE))
                return SessionTurn(
                    session_id=session_id,
                    interviewer_message=NO_CHANGE_CHALLENGE,
                    intent="challenge",
                    mode="NOOP_CHALLENGE",
                    focus=record.last_focus,
                    history=list(record.history),
                )
            if event is None:
                return None
            return self._run(record, event)

    def reset(self, session_id: str) -> SessionRecord:
        """Forget the transcript and memory; the question pack and traffic setting survive."""

        with self.store.session(session_id) as record:
            record.history = []
            record.memory = SessionMemory()
            record.snapshot = DiagramSnapshot()
            record.last_diagram_hash = ""
            record.last_focus = ""
            snapshot = record.model_copy(deep=True)
        return snapshot


__all__ = ["InterviewSessionService", "SessionNotFound", "SessionStore", "SessionTurn", "diagram_hash"]
