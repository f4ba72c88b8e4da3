"""Rule-based classification of the user's latest reply."""
from __future__ import annotations

from typing import Literal, Optional, Tuple

Intent = Literal["OFFTOPIC", "COACH", "CLARIFY", "EVALUATE", "ASK"]
ReplyClass = Literal["OFFTOPIC", "CONFUSED_HELP", "ANSWER"]

START_SENTINELS: Tuple[str, ...] = ("[ready to start]", "[starting interview]")

OFFTOPIC_TRIGGERS: Tuple[str, ...] = (
    "weather",
    "lunch",
    "dinner",
    "joke",
    "tell me a joke",
    "unrelated",
    "off topic",
    "of topic",
    "wrong question",
    "different subject",
    "how are you",
    "what time",
    "weekend",
    "vacation",
    "movie",
)

COACH_TRIGGERS: Tuple[str, ...] = (
    "i don't know",
    "i dont know",
    "don't know",
    "dont know",
    "not sure",
    "teach",
    "teach me",
    "help",
    "what do you mean",
    "confused",
    "can you explain",
    "idk",
    "explain",
    "no idea",
    "help me",
)

CLARIFY_TRIGGERS: Tuple[str, ...] = ("yes", "ok", "done", "sure", "yep")

CLARIFY_MAX_WORDS = 4
EVALUATE_MIN_WORDS = 16


def is_start_sentinel(text: Optional[str]) -> bool:
    return (text or "").strip().lower() in START_SENTINELS


def classify_reply(text: Optional[str]) -> Optional[ReplyClass]:
    """Coarse bucket: off-topic, confused/asking for help, or an answer."""

    t = (text or "").strip().lower()
    if not t or t in START_SENTINELS:
        return None
    if any(trigger in t for trigger in OFFTOPIC_TRIGGERS):
        return "OFFTOPIC"
    if any(trigger in t for trigger in COACH_TRIGGERS):
        return "CONFUSED_HELP"
    return "ANSWER"


def _is_acknowledgement(t: str) -> bool:
    return any(t == ack or t.startswith(ack + " ") or t == ack + "." for ack in CLARIFY_TRIGGERS)


def classify_intent(text: Optional[str]) -> Optional[Intent]:
    """Ordered rules, first hit wins; ``None`` means there is nothing to classify."""

    reply = classify_reply(text)
    if reply is None:
        return None
    if reply == "OFFTOPIC":
        return "OFFTOPIC"
    if reply == "CONFUSED_HELP":
        return "COACH"
    t = (text or "").strip().lower()
    words = t.split()
    if len(words) <= CLARIFY_MAX_WORDS and _is_acknowledgement(t):
        return "CLARIFY"
    if len(words) >= EVALUATE_MIN_WORDS:
        return "EVALUATE"
    return "ASK"


__all__ = ["classify_intent", "classify_reply", "is_start_sentinel", "START_SENTINELS"]
