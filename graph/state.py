"""Per-session interviewer memory and the stored session record."""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from agents.types import DiagramSnapshot, QuestionPackSummary, TranscriptTurn

TOPIC_HISTORY_CAP = 5
ASKED_TOPICS_CAP = 20
LAST_ASKED_CAP = 3


def _strings(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


def _count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(0, int(value))


class SessionMemory(BaseModel):
    """Serializable interviewer memory; a turn returns a new value and never edits the old one."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    asked_question_hashes: List[str] = Field(default_factory=list)
    topic_history: List[str] = Field(default_factory=list)
    asked_topics: List[str] = Field(default_factory=list)
    difficulty: int = 1
    skill: int = 0
    last_asked_questions: List[str] = Field(default_factory=list)
    no_op_justify_attempts: int = 0
    coach_follow_up_index: int = 0
    covered_sections: Dict[str, bool] = Field(default_factory=dict)

    mode: str = ""
    last_user_answer: str = ""
    last_action_summary: str = ""
    last_question_hash: str = ""

    @field_validator("asked_question_hashes", mode="before")
    @classmethod
    def _unique_hashes(cls, value: Any) -> List[str]:
        return list(dict.fromkeys(_strings(value)))

    @field_validator("topic_history", mode="before")
    @classmethod
    def _topic_window(cls, value: Any) -> List[str]:
        return _strings(value)[-TOPIC_HISTORY_CAP:]

    @field_validator("asked_topics", mode="before")
    @classmethod
    def _asked_window(cls, value: Any) -> List[str]:
        return _strings(value)[-ASKED_TOPICS_CAP:]

    @field_validator("last_asked_questions", mode="before")
    @classmethod
    def _last_asked_window(cls, value: Any) -> List[str]:
        return _strings(value)[-LAST_ASKED_CAP:]

    @field_validator("difficulty", mode="before")
    @classmethod
    def _difficulty(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 1
        return max(1, min(5, int(value)))

    @field_validator("skill", "no_op_justify_attempts", "coach_follow_up_index", mode="before")
    @classmethod
    def _counters(cls, value: Any) -> int:
        return _count(value)

    @field_validator("covered_sections", mode="before")
    @classmethod
    def _sections(cls, value: Any) -> Dict[str, bool]:
        if not isinstance(value, dict):
            return {}
        return {str(key): bool(flag) for key, flag in value.items()}

    @field_validator("mode", "last_user_answer", "last_action_summary", "last_question_hash", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @classmethod
    def coerce(cls, raw: Any) -> "SessionMemory":
        """Accept whatever the caller stored; anything unusable becomes a fresh memory."""

        if isinstance(raw, SessionMemory):
            return raw
        if not isinstance(raw, dict):
            return cls()
        try:
            return cls.model_validate(raw)
        except ValidationError:
            return cls()


class SessionRecord(BaseModel):
    """Everything the session service keeps per interview."""

    session_id: str
    pack: QuestionPackSummary = Field(default_factory=QuestionPackSummary)
    history: List[TranscriptTurn] = Field(default_factory=list)
    memory: SessionMemory = Field(default_factory=SessionMemory)
    snapshot: DiagramSnapshot = Field(default_factory=DiagramSnapshot)
    traffic_load: float = 1000.0
    last_diagram_hash: str = ""
    last_focus: str = ""


__all__ = ["SessionMemory", "SessionRecord", "TOPIC_HISTORY_CAP", "ASKED_TOPICS_CAP", "LAST_ASKED_CAP"]
