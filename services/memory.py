"""Pure operations on ``SessionMemory``: skill tracking and the anti-repeat ledger."""
from __future__ import annotations

import hashlib
import re
from typing import Iterable

from graph.state import ASKED_TOPICS_CAP, LAST_ASKED_CAP, TOPIC_HISTORY_CAP, SessionMemory

_NUMBER_UNIT_RE = re.compile(r"\d+\s*(ms|qps|%|ttl|replicas?|rpo|rto|seconds?|mb|gb)", re.I)
_TRADEOFF_RE = re.compile(r"latency\s*vs|consistency\s*vs|cost\s*vs|tradeoff|trade-off", re.I)
_UNSURE_RE = re.compile(r"\b(idk|dont know|don't know|not sure)\b", re.I)

SIMILAR_PREFIX = 80
OVERLAP_PREFIX = 30
OVERLAP_MIN_LEN = 20


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").strip().lower())


def question_hash(text: str) -> str:
    """Stable hash of the first line (up to 100 chars) of a question, case and spacing folded."""

    first_line = (text or "").strip().split("\n", 1)[0].strip()[:100]
    return hashlib.sha1(_normalize(first_line).encode("utf-8")).hexdigest()[:16]


def first_sentence(text: str) -> str:
    return re.split(r"[.?!]", (text or "").strip(), maxsplit=1)[0].strip()


def was_asked(memory: SessionMemory, text: str) -> bool:
    return question_hash(text) in memory.asked_question_hashes


def is_similar(a: str, b: str) -> bool:
    left = _normalize(a)[:SIMILAR_PREFIX]
    right = _normalize(b)[:SIMILAR_PREFIX]
    if not left or not right:
        return False
    if left == right:
        return True
    if len(left) > OVERLAP_MIN_LEN and len(right) > OVERLAP_MIN_LEN:
        return right[:OVERLAP_PREFIX] in left or left[:OVERLAP_PREFIX] in right
    return False


def is_similar_to_recent(memory: SessionMemory, text: str) -> bool:
    line = first_sentence(text)
    return any(is_similar(line, prior) for prior in memory.last_asked_questions)


def is_repeat(memory: SessionMemory, text: str) -> bool:
    return was_asked(memory, text) or is_similar_to_recent(memory, text)


def _tail(items: Iterable[str], cap: int) -> list[str]:
    return list(items)[-cap:]


def record_question(memory: SessionMemory, main: str, topic: str) -> SessionMemory:
    """Return a copy of ``memory`` with ``main`` logged as asked under ``topic``."""

    digest = question_hash(main)
    hashes = list(memory.asked_question_hashes)
    if digest not in hashes:
        hashes.append(digest)
    return memory.model_copy(
        update={
            "asked_question_hashes": hashes,
            "asked_topics": _tail([*memory.asked_topics, topic], ASKED_TOPICS_CAP),
            "topic_history": _tail([*memory.topic_history, topic], TOPIC_HISTORY_CAP),
            "last_asked_questions": _tail([*memory.last_asked_questions, first_sentence(main)], LAST_ASKED_CAP),
            "last_question_hash": digest,
        }
    )


def difficulty_for(skill: int) -> int:
    return max(1, min(5, 1 + max(0, skill) // 2))


def update_skill(memory: SessionMemory, text: str) -> SessionMemory:
    """Nudge skill by the answer's signals and re-derive difficulty.

    Answers shorter than 5 characters are ignored entirely.
    """

    sample = (text or "").strip()
    if len(sample) < 5:
        return memory
    delta = 0
    if _NUMBER_UNIT_RE.search(sample):
        delta += 1
    if _TRADEOFF_RE.search(sample):
        delta += 1
    if len(sample) < 20 or _UNSURE_RE.search(sample):
        delta -= 1
    skill = max(0, memory.skill + delta)
    return memory.model_copy(update={"skill": skill, "difficulty": difficulty_for(skill)})


def mark_section(memory: SessionMemory, section: str) -> SessionMemory:
    covered = dict(memory.covered_sections)
    covered[section] = True
    return memory.model_copy(update={"covered_sections": covered})


__all__ = [
    "difficulty_for",
    "first_sentence",
    "is_repeat",
    "is_similar",
    "is_similar_to_recent",
    "mark_section",
    "question_hash",
    "record_question",
    "update_skill",
    "was_asked",
]
