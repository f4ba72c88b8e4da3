"""Component-drill question templates keyed by diagram context and topic."""
from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional, Tuple

from agents.types import ComposedQuestion

from .common import ComposeContext, clamp_difficulty, format_rps, make_question, needs_numbers

NO_OP_MAIN = "This change may be unnecessary — what problem does it solve?"
NO_OP_WHY = (
    "Every component should map to a requirement: latency, availability, scalability, cost, or simplicity."
)
NO_OP_LOOKING_FOR = [
    "which requirement it addresses",
    "how it differs from existing components",
    "concrete benefit with numbers if possible",
]

ESCALATION: Dict[int, str] = {
    1: "Explain your choice.",
    2: "What breaks first under load?",
    3: "What metric alerts you?",
    4: "What's your mitigation plan in under 5 minutes?",
    5: "What tradeoff are you explicitly accepting?",
}

NUMBERS_NUDGE = "Give me at least one number: QPS, p99, TTL, or RTO."
_QUANT_RE = re.compile(r"quantify|qps|p99|latency|numbers?|ttl|retry|rto|rpo|replication lag|failover time", re.I)

Variants = Dict[Optional[str], str]


def cache_variants(ctx: ComposeContext) -> Tuple[Variants, str]:
    rps = format_rps(ctx.traffic_load)
    sharded = ctx.diagram_context.shard_count > 0
    db = "sharded DB" if sharded else "DB"
    if sharded:
        base_tail = "If one cache node fails, what happens to your primary shard? Quantify the impact on DB QPS and p99 latency."
    elif needs_numbers(ctx):
        base_tail = "If one cache node fails, what happens? Give me DB QPS impact and p99."
    else:
        base_tail = "If one cache node fails, what happens to the database?"
    variants: Variants = {
        None: f"At {rps} RPS, your cache sits in front of {db}. {base_tail}",
        "ops": f"Walk me through day-2 operations for the cache tier at {rps} RPS. "
        "How do you warm it after a deploy, and who gets paged when hit rate drops?",
        "failure": f"Suppose a hot key expires during peak load at {rps} RPS. "
        f"How do you prevent a cache stampede on the {db}?",
        "metrics": f"Which three cache signals go on your dashboard at {rps} RPS? "
        "Give thresholds for hit rate, eviction rate, and p99.",
        "tradeoff": f"Cache-aside, write-through, or write-back for this path at {rps} RPS? "
        "What staleness window are you accepting?",
        "cost": f"How much memory does the cache need to hold the working set at {rps} RPS? "
        "Is the hit-rate gain worth the cluster cost?",
    }
    return variants, "Cache failures can cascade to the database."


def queue_variants(ctx: ComposeContext) -> Tuple[Variants, str]:
    rps = format_rps(ctx.traffic_load)
    if clamp_difficulty(ctx.difficulty) >= 3:
        base_tail = (
            "How do you handle idempotency and duplicate processing? "
            "What about poison messages — how do you detect and contain them?"
        )
    else:
        base_tail = "At-least-once or exactly-once? How do you handle duplicates?"
    variants: Variants = {
        None: f"You have a message queue in the path. {base_tail}",
        "ops": f"Consumers fall a full minute behind at {rps} RPS after a deploy. "
        "How do you drain the backlog without overloading downstream?",
        "failure": "A poison message keeps crashing your consumer. "
        "Where does it go after the final retry, and how do you replay it safely?",
        "metrics": f"What consumer-lag threshold pages you at {rps} RPS? "
        "Name the alert and the first action it triggers.",
        "tradeoff": "Do you need ordering per key or global ordering on this queue? "
        "What throughput do you give up for it?",
        "cost": f"How many partitions and consumers do you provision for {rps} RPS? "
        "What does over-provisioning cost versus added lag?",
    }
    return variants, "Delivery semantics affect correctness."


def shard_variants(ctx: ComposeContext) -> Tuple[Variants, str]:
    rps = format_rps(ctx.traffic_load)
    count = ctx.diagram_context.shard_count
    noun = "shard" if count == 1 else "shards"
    variants: Variants = {
        None: f"At {rps} RPS with {count} {noun}, describe a hot-partition scenario. "
        "How would you rebalance? What about cross-shard transactions?",
        "ops": f"You need to add a shard to the existing {count} while serving {rps} RPS. "
        "How do you move data without downtime?",
        "failure": f"One of your {count} {noun} goes offline. "
        "Which users are affected and how do you keep serving reads?",
        "metrics": "How would you detect a hot partition before users do? "
        "Name the per-shard metric and its alert threshold.",
        "tradeoff": "Hash or range partitioning for this key? What query patterns get harder with your choice?",
        "cost": f"How many shards does {rps} RPS actually need, given per-node capacity? "
        "What does each extra shard cost to operate?",
    }
    return variants, "Hot partitions limit scalability."


def replica_variants(ctx: ComposeContext) -> Tuple[Variants, str]:
    variants: Variants = {
        None: "With replicas in the path, what's your replication lag? "
        "When do you get stale reads? What's your failover time?",
        "ops": "Describe promoting a replica during a primary outage. What is manual and what is automated?",
        "failure": "The primary fails with writes in flight. How much data can you lose, and what RPO do you commit to?",
        "metrics": "Which replication metric would you alert on, and at what lag in ms?",
        "tradeoff": "Synchronous or asynchronous replication here? What latency do you pay for durability?",
        "cost": "How many read replicas does this read load justify? When does adding another stop paying off?",
    }
    return variants, "Replication lag affects consistency."


def lb_variants(ctx: ComposeContext) -> Tuple[Variants, str]:
    rps = format_rps(ctx.traffic_load)
    variants: Variants = {
        None: f"At {rps} RPS, L4 or L7? What routing strategy and health check interval?",
        "ops": "How do you roll out a new app version behind the load balancer without dropping connections?",
        "failure": "The load balancer itself fails. What is your redundancy, and how fast do clients fail over?",
        "metrics": f"Which load balancer metrics tell you a backend is unhealthy at {rps} RPS? Give the thresholds.",
        "tradeoff": "Round-robin, least-connections, or consistent hashing behind this load balancer? "
        "What do you lose with sticky sessions?",
        "cost": "Managed load balancer or self-hosted proxies for this traffic? What drives the cost difference?",
    }
    return variants, "Affects failover and load distribution."


def escalation_variants(ctx: ComposeContext) -> Tuple[Variants, str]:
    rps = format_rps(ctx.traffic_load)
    path = ctx.diagram_context.path_desc
    variants: Variants = {
        None: f"Path: {path}. {ESCALATION[clamp_difficulty(ctx.difficulty)]}",
        "ops": f"Picture running {path} in production. What runbook step comes first when p99 degrades?",
        "failure": f"Trace a failure along {path}. Which hop breaks first and how do you contain the blast radius?",
        "metrics": f"Which metric on {path} would page you first? Give the threshold.",
        "tradeoff": f"Name the main tradeoff in {path}. What are you explicitly giving up?",
        "cost": f"Where does {path} spend the most money at {rps} RPS? What would you cut first?",
    }
    return variants, "Shows operational depth."


def _wants_cache(ctx: ComposeContext) -> bool:
    return ctx.diagram_context.has_cache and ctx.topic in ("cache", "default")


def _wants_queue(ctx: ComposeContext) -> bool:
    return ctx.diagram_context.has_queue and ctx.topic in ("queue", "default")


def _wants_shard(ctx: ComposeContext) -> bool:
    return ctx.diagram_context.shard_count > 0 and ctx.topic in ("shard", "default")


def _wants_replica(ctx: ComposeContext) -> bool:
    return ctx.diagram_context.has_replica and ctx.topic in ("database", "default")


def _wants_lb(ctx: ComposeContext) -> bool:
    return ctx.topic == "lb"


# First match wins; the escalation ladder catches everything else.
ROUTER: List[Tuple[Callable[[ComposeContext], bool], Callable[[ComposeContext], Tuple[Variants, str]]]] = [
    (_wants_cache, cache_variants),
    (_wants_queue, queue_variants),
    (_wants_shard, shard_variants),
    (_wants_replica, replica_variants),
    (_wants_lb, lb_variants),
]


def _template_for(ctx: ComposeContext) -> Callable[[ComposeContext], Tuple[Variants, str]]:
    for matches, template in ROUTER:
        if matches(ctx):
            return template
    return escalation_variants


def compose(ctx: ComposeContext) -> ComposedQuestion:
    """Build one interview question for ``ctx``; ``ctx.lens`` selects the angle."""

    if ctx.is_no_op:
        return ComposedQuestion(main=NO_OP_MAIN, why=NO_OP_WHY, looking_for=list(NO_OP_LOOKING_FOR))

    variants, why = _template_for(ctx)(ctx)
    main = variants.get(ctx.lens) or variants[None]
    if needs_numbers(ctx) and not _QUANT_RE.search(main):
        main = f"{main} {NUMBERS_NUDGE}"
    return make_question(main, why, ctx)


__all__ = ["ESCALATION", "NO_OP_MAIN", "ROUTER", "compose"]
