"""Map diagram edits to interview topics, summaries, and no-op verdicts."""
from __future__ import annotations

import re
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from agents.types import AddNode, Connect, DeleteEdge, DeleteNode, DiagramNode, Move

LABEL_SYNONYMS: Dict[str, str] = {
    "load balancer": "lb",
    "load-balancer": "lb",
    "message queue": "queue",
    "message-queue": "queue",
    "object storage": "storage",
    "object-storage": "storage",
}

ACTION_TOPIC_MAP: Dict[str, Tuple[str, ...]] = {
    "cache": ("caching", "ttl", "invalidation", "stampede", "consistency", "write-through", "write-back"),
    "lb": ("load-balancing", "health-checks", "l4-vs-l7", "overload", "retries", "routing"),
    "queue": ("queue", "delivery-semantics", "dlq", "idempotency", "backpressure", "at-least-once"),
    "shard": ("sharding", "hot-partitions", "resharding", "partition-key", "replication-lag"),
    "database": ("sharding", "hot-partitions", "replication-lag", "failover", "primary-replica"),
    "storage": ("object-storage", "cdn", "cache-invalidation", "edge"),
    "cdn": ("cdn", "cache-invalidation", "edge", "origin"),
    "default": ("tradeoffs", "failure-modes", "metrics"),
}

CONNECT_TOPICS = ("consistency", "write-path", "ordering", "data-flow")
REMOVAL_TOPICS = ("failure-modes", "downtime", "migration")

COMPONENT_TOPICS: FrozenSet[str] = frozenset({"cache", "lb", "queue", "shard", "database", "storage", "cdn"})

# (topic, substrings) checked in order against the normalized label
_TOPIC_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("cache", ("cache",)),
    ("lb", ("load", "balancer")),
    ("queue", ("queue", "mq")),
    ("shard", ("shard",)),
    ("database", ("database", "db")),
    ("storage", ("storage", "s3")),
    ("cdn", ("cdn",)),
)

DUPLICATE_PRONE: Tuple[str, ...] = (
    "client",
    "cache",
    "database",
    "db",
    "load-balancer",
    "lb",
    "message-queue",
    "queue",
)


class NoOpPolicy(BaseModel):
    """When adding another node of a type counts as an unnecessary change."""

    default_threshold: int = Field(default=2, ge=1)
    thresholds: Dict[str, int] = Field(default_factory=dict)
    duplicate_prone: List[str] = Field(default_factory=lambda: list(DUPLICATE_PRONE))

    def threshold_for(self, label: str) -> int:
        for kind, limit in self.thresholds.items():
            norm_kind = normalize_label(kind)
            if norm_kind == label or norm_kind in label:
                return limit
        return self.default_threshold

    def is_duplicate_prone(self, label: str) -> bool:
        return any(d in label or label in d for d in self.duplicate_prone)


def normalize_label(label: Optional[str]) -> str:
    lowered = (label or "").strip().lower()
    if lowered in LABEL_SYNONYMS:
        return LABEL_SYNONYMS[lowered]
    return re.sub(r"\s+", "-", lowered)


def topic_from_label(label: Optional[str]) -> str:
    norm = normalize_label(label)
    if not norm:
        return "default"
    if norm == "lb":
        return "lb"
    for topic, needles in _TOPIC_RULES:
        if any(needle in norm for needle in needles):
            return topic
    return "default"


def topic_from_node(node: Optional[DiagramNode]) -> str:
    if node is None:
        return "default"
    return topic_from_label(node.label or node.type)


def topics_for_action(event) -> List[str]:
    """Keyword topics used to steer retrieval for a diagram edit."""

    if isinstance(event, AddNode):
        return list(ACTION_TOPIC_MAP[topic_from_node(event.node)])
    if isinstance(event, Connect):
        return list(CONNECT_TOPICS)
    if isinstance(event, (DeleteNode, DeleteEdge)):
        return list(REMOVAL_TOPICS)
    return list(ACTION_TOPIC_MAP["default"])


def topic_tag(event) -> str:
    """Single topic recorded in memory for a drill-down on ``event``."""

    if isinstance(event, AddNode):
        return topic_from_node(event.node)
    if isinstance(event, Connect):
        return "data-flow"
    return "default"


def action_summary(event) -> str:
    if isinstance(event, AddNode):
        return f"Added {event.node.label or 'node'}"
    if isinstance(event, Connect):
        source = event.source_label or event.source or "A"
        target = event.target_label or event.target or "B"
        return f"Connected {source} -> {target}"
    if isinstance(event, DeleteNode):
        return "Deleted node"
    if isinstance(event, DeleteEdge):
        return "Deleted edge"
    if isinstance(event, Move):
        return "Moved node"
    return "Diagram change"


def is_no_op(event, nodes: Sequence[DiagramNode], policy: Optional[NoOpPolicy] = None) -> bool:
    """True when an added node duplicates a type the diagram already has enough of.

    The added node itself is ignored if the snapshot already contains it.
    """

    if not isinstance(event, AddNode):
        return False
    policy = policy or NoOpPolicy()
    norm = normalize_label(event.node.label or event.node.type)
    if not norm:
        return False
    same_type = 0
    for node in nodes:
        if event.node.id and node.id == event.node.id:
            continue
        existing = normalize_label(node.label)
        if not existing:
            continue
        if existing == norm or (len(norm) >= 3 and (norm in existing or existing in norm)):
            same_type += 1
    return same_type >= policy.threshold_for(norm) and policy.is_duplicate_prone(norm)


__all__ = [
    "ACTION_TOPIC_MAP",
    "COMPONENT_TOPICS",
    "NoOpPolicy",
    "action_summary",
    "is_no_op",
    "normalize_label",
    "topic_from_label",
    "topic_from_node",
    "topic_tag",
    "topics_for_action",
]
