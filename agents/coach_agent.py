"""Coaching and clarification replies for users who are stuck or just acknowledging."""
from __future__ import annotations

from typing import Dict, List, Tuple

from agents.qg.common import STRESS_SCENARIO, format_rps

COACH_FOLLOWUPS: Dict[str, Tuple[str, ...]] = {
    "cache": (
        "If hit rate dropped from 90% to 70%, how much would DB QPS increase?",
        "What TTL would you use for user profiles vs trending content?",
        "How would you invalidate cache when data changes?",
        "What happens if Redis goes down—do you have a fallback?",
    ),
    "queue": (
        "If a message fails 5 times, where does it go and how do you handle it?",
        "At-least-once or exactly-once—which and why?",
        "How do you make duplicate processing safe?",
        "What metric would you alert on for consumer lag?",
    ),
    "shard": (
        "If one shard gets 3x the load of others, what would you do?",
        "How do you choose a partition key?",
        "What happens when you add a new shard—rebalancing?",
        "How would you handle a cross-shard query?",
    ),
    "component": (
        "What metric would you alert on first?",
        "What is your target p99 latency in ms?",
        "What tradeoff are you explicitly accepting?",
        "Describe one failure mode for this component.",
    ),
}

CONCEPTS: Dict[str, Tuple[str, Tuple[str, str, str]]] = {
    "cache": (
        "A cache sits between your app and DB to avoid hitting the database for repeated reads.",
        (
            "Think: what happens on cache miss vs hit?",
            "Consider: TTL (how stale is OK?) and invalidation on write",
            "Failure: if cache dies, all traffic hits DB—what’s the impact?",
        ),
    ),
    "queue": (
        "A message queue decouples producer and consumer; messages are buffered until consumed.",
        (
            "Think: at-least-once vs exactly-once—duplicates or drops?",
            "Consider: retries, DLQ for poison messages, backpressure",
            "Failure: consumer lag—queue grows; how do you alert?",
        ),
    ),
    "shard": (
        "Sharding splits data by partition key so each shard holds a subset; enables horizontal scale.",
        (
            "Think: partition key choice—avoid hot shards",
            "Consider: rebalancing when adding shards, cross-shard queries",
            "Failure: one shard down—that partition unavailable",
        ),
    ),
    "component": (
        "Each component has tradeoffs: latency vs consistency, cost vs performance.",
        (
            "State your choice clearly",
            "Give one number (QPS, TTL, p99)",
            "Describe one failure mode",
        ),
    ),
}

CLARIFY_PROMPTS: Dict[str, str] = {
    "cache": "Assume cache hit rate is 90%. If a cache node fails and hit rate drops to 70%, "
    "what happens to DB QPS? (Rough number is fine.)",
    "queue": "Assume at-least-once delivery. One message is processed twice. How do you make that safe?",
    "shard": "You have 4 shards. One user generates 40% of traffic. Which shard is hot and what’s the impact?",
    "component": "Pick one: what’s your target p99 latency in ms, or your expected QPS per component?",
}


def _topic_of(text: str) -> str:
    lowered = text.lower()
    for topic in ("cache", "queue", "shard"):
        if topic in lowered:
            return topic
    return "component"


def coach_topic(last_interviewer_message: str) -> str:
    """Topic of the question the user is stuck on, read from its first sentence."""

    message = (last_interviewer_message or "").strip()
    if message.startswith(STRESS_SCENARIO):
        message = message[len(STRESS_SCENARIO):].strip()
    return _topic_of(message.split(".", 1)[0])


def worked_example(topic: str, traffic: float) -> str:
    rps = format_rps(traffic)
    if topic == "cache":
        db_rps = format_rps(traffic * 0.1)
        return (
            f"At {rps} RPS with a 9:1 read ratio, a 90% hit rate leaves about {db_rps} RPS for the DB. "
            f"If the cache fails, the DB sees the full {rps} RPS."
        )
    if topic == "queue":
        return (
            f"At {rps} RPS, if consumers process 500/sec, lag grows by the difference every second. "
            "Scale consumers or apply backpressure."
        )
    if topic == "shard":
        return f"At {rps} RPS across 4 shards: ~{format_rps(traffic / 4)}/shard. A hot user could overload one shard."
    return f"At {rps} RPS, state expected p99 latency and one thing that could break."


def coach_reply(last_interviewer_message: str, traffic: float, follow_up_index: int) -> str:
    """Concept line, three bullets, a worked example, then one rotating practice question."""

    topic = coach_topic(last_interviewer_message)
    line, bullets = CONCEPTS[topic]
    follow_ups = COACH_FOLLOWUPS[topic]
    parts: List[str] = [line]
    parts.extend(f"• {bullet}" for bullet in bullets)
    parts.append(f"Worked example: {worked_example(topic, traffic)}")
    parts.append(f"Try this: {follow_ups[follow_up_index % len(follow_ups)]}")
    return " ".join(parts)


def clarify_reply(last_interviewer_message: str) -> str:
    return CLARIFY_PROMPTS[_topic_of(last_interviewer_message or "")]


__all__ = ["COACH_FOLLOWUPS", "clarify_reply", "coach_reply", "coach_topic"]
