"""Shared utilities for question generators."""
from __future__ import annotations

import math
import re
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from agents.types import ComposedQuestion, DiagramEdge, DiagramNode, RetrievedChunk

Lens = str  # one of FlowConfig.angles: ops, failure, metrics, tradeoff, cost

DIFF_KEYWORDS: Dict[int, Tuple[str, ...]] = {
    1: ("definition", "when to use"),
    2: ("when to use", "tradeoffs"),
    3: ("tradeoffs", "failure modes", "metrics"),
    4: ("numbers", "qps", "latency", "metrics", "operational"),
    5: ("concrete numbers", "correctness", "edge cases", "rpo", "rto"),
}

NUMERIC_ASKS: Tuple[str, ...] = (
    "QPS per component",
    "p99 latency target in ms",
    "TTL in seconds",
    "replication lag in ms",
    "retry count and backoff",
    "RTO/RPO in seconds",
)

DEFAULT_LOOKING_FOR: Tuple[str, ...] = (
    "concrete numbers",
    "explicit tradeoff",
    "failure containment strategy",
    "operational awareness",
)

PATH_ORDER: Tuple[str, ...] = ("client", "load balancer", "lb", "app", "cache", "queue", "database", "db", "shard")

NUMBERS_THRESHOLD_RPS = 100_000
STRESS_THRESHOLD_RPS = 200_000
STRESS_SCENARIO = "Imagine traffic spikes 3x during a launch."
FOLLOW_UP_2X = "If you choose that approach, what about edge cases at 2x traffic?"

_CACHE_RE = re.compile(r"cache|redis|memcache", re.I)
_QUEUE_RE = re.compile(r"queue|kafka|sqs|rabbit|mq", re.I)
_SHARD_RE = re.compile(r"shard|partition", re.I)
_REPLICA_RE = re.compile(r"replica|replication|secondary|slave", re.I)


class DiagramContext(BaseModel):
    """What the current diagram contains, as far as question templates care."""

    has_cache: bool = False
    has_queue: bool = False
    shard_count: int = 0
    has_replica: bool = False
    path_desc: str = "app → db"
    labels: List[str] = Field(default_factory=list)


class ComposeContext(BaseModel):
    """Context passed into the topic templates."""

    topic: str = "default"
    chunks: List[RetrievedChunk] = Field(default_factory=list)
    difficulty: int = 3
    is_no_op: bool = False
    user_answer: str = ""
    diagram_context: DiagramContext = Field(default_factory=DiagramContext)
    traffic_load: float = 1000.0
    action_summary: str = ""
    lens: Optional[Lens] = None


def clamp_difficulty(value: int) -> int:
    return max(1, min(5, int(value or 3)))


def format_rps(traffic: float) -> str:
    """``12500`` -> ``"13K"``; values under 1000 print as integers."""

    if traffic >= 1000:
        return f"{int(math.floor(traffic / 1000 + 0.5))}K"
    return str(int(traffic))


def needs_numbers(ctx: ComposeContext) -> bool:
    return ctx.traffic_load > NUMBERS_THRESHOLD_RPS or clamp_difficulty(ctx.difficulty) >= 3


def _path_rank(label: str) -> int:
    for idx, anchor in enumerate(PATH_ORDER):
        if anchor in label or label in anchor:
            return idx
    return 99


def extract_diagram_context(
    nodes: Sequence[DiagramNode],
    edges: Sequence[DiagramEdge],
    added: Optional[DiagramNode] = None,
) -> DiagramContext:
    """Summarize the diagram, counting ``added`` too when the snapshot lacks it."""

    all_nodes = list(nodes)
    if added is not None and not any(node.id == added.id for node in all_nodes if added.id):
        all_nodes.append(added)
    labels = [(node.label or node.type or "").strip() for node in all_nodes]
    labels = [label for label in labels if label]
    by_id = {node.id: (node.label or node.id) for node in all_nodes if node.id}

    if edges:
        path_desc = ", ".join(
            f"{by_id.get(edge.source, edge.source)} → {by_id.get(edge.target, edge.target)}"
            for edge in edges
            if edge.source and edge.target
        )
    else:
        ordered = sorted((label.lower() for label in labels if len(label) > 1), key=_path_rank)
        path_desc = " → ".join(ordered)

    return DiagramContext(
        has_cache=any(_CACHE_RE.search(label) for label in labels),
        has_queue=any(_QUEUE_RE.search(label) for label in labels),
        shard_count=sum(1 for label in labels if _SHARD_RE.search(label)),
        has_replica=any(_REPLICA_RE.search(label) for label in labels),
        path_desc=path_desc or "app → db",
        labels=labels,
    )


def build_retrieval_query(action_summary: str, user_answer: str, difficulty: int, topics: Sequence[str]) -> str:
    focus = list(topics) + list(DIFF_KEYWORDS[clamp_difficulty(difficulty)])
    parts = [
        action_summary.strip(),
        f"user: {user_answer.strip()[:80]}" if user_answer and user_answer.strip() else "",
        f"focus: {', '.join(focus)}" if focus else "",
    ]
    return "; ".join(part for part in parts if part)


def looking_for(ctx: ComposeContext) -> List[str]:
    items = list(DEFAULT_LOOKING_FOR)
    if needs_numbers(ctx):
        items[0] = NUMERIC_ASKS[clamp_difficulty(ctx.difficulty) % len(NUMERIC_ASKS)]
    return items


def make_question(main: str, why: str, ctx: ComposeContext) -> ComposedQuestion:
    """Wrap template text with the difficulty and traffic decorations."""

    return ComposedQuestion(
        main=main.strip(),
        why=why.strip(),
        looking_for=looking_for(ctx),
        follow_up=FOLLOW_UP_2X if clamp_difficulty(ctx.difficulty) >= 3 else None,
        scenario=STRESS_SCENARIO if ctx.traffic_load > STRESS_THRESHOLD_RPS else None,
    )


__all__ = [
    "ComposeContext",
    "DIFF_KEYWORDS",
    "DiagramContext",
    "NUMERIC_ASKS",
    "build_retrieval_query",
    "clamp_difficulty",
    "extract_diagram_context",
    "format_rps",
    "make_question",
    "needs_numbers",
]
