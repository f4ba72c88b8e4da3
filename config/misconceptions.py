"""YAML-driven catalogue of factually wrong claims and their corrections."""
from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass
from typing import List, Optional

import yaml

CONFIG_PATH = os.environ.get(
    "MISCONCEPTIONS_CONFIG",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "misconceptions.yaml"),
)

DEFAULT_RULES = [
    {
        "id": "lb_controls_clients",
        "pattern": "lb controls client|load balancer controls",
        "correction": "LB routes requests; it doesn't control clients.",
    },
    {
        "id": "cache_always_consistent",
        "pattern": "cache is always consistent",
        "correction": "Caches introduce consistency challenges. What invalidation strategy?",
    },
    {
        "id": "mq_global_order",
        "pattern": "mq guarantees order",
        "correction": "Message queues often don't guarantee global ordering. How are you handling partitions?",
    },
]


@dataclass
class Misconception:
    """A matched wrong claim."""

    rule_id: str
    correction: str
    excerpt: str


def _load_yaml(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


class MisconceptionEngine:
    """Compile ordered regex rules from YAML; first matching rule wins."""

    def __init__(self, path: str = CONFIG_PATH):
        self.path = path
        self._mtime = 0.0
        self._normalizers: List[str] = []
        self._rules: List[tuple[str, re.Pattern[str], str]] = []
        self.reload_if_changed(force=True)

    def reload_if_changed(self, force: bool = False) -> None:
        """Reload YAML configuration when the file timestamp changes."""

        try:
            stat = os.stat(self.path)
            if not force and stat.st_mtime <= self._mtime:
                return
            cfg = _load_yaml(self.path)
            self._mtime = stat.st_mtime
        except FileNotFoundError:
            cfg = {"rules": DEFAULT_RULES, "normalizers": ["strip_whitespace", "collapse_spaces", "to_lower"]}
            self._mtime = time.time()

        self._normalizers = list(cfg.get("normalizers") or [])
        self._rules = [
            (str(rule.get("id") or f"rule_{idx}"), re.compile(rule["pattern"], re.I), str(rule.get("correction", "")))
            for idx, rule in enumerate(cfg.get("rules") or [])
            if rule.get("pattern")
        ]

    def _normalize(self, text: str) -> str:
        sample = text or ""
        if "strip_whitespace" in self._normalizers:
            sample = sample.strip()
        if "collapse_spaces" in self._normalizers:
            sample = re.sub(r"\s+", " ", sample)
        if "to_lower" in self._normalizers:
            sample = sample.lower()
        return sample

    def detect(self, text: str) -> Optional[Misconception]:
        self.reload_if_changed()
        sample = self._normalize(text)
        if not sample:
            return None
        for rule_id, pattern, correction in self._rules:
            match = pattern.search(sample)
            if match:
                start, end = match.span()
                return Misconception(
                    rule_id=rule_id,
                    correction=correction,
                    excerpt=sample[max(0, start - 20) : min(len(sample), end + 20)],
                )
        return None


_engine: Optional[MisconceptionEngine] = None


def misconception_engine() -> MisconceptionEngine:
    global _engine
    if _engine is None:
        _engine = MisconceptionEngine()
    return _engine


__all__ = ["Misconception", "MisconceptionEngine", "misconception_engine"]
