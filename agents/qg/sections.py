"""Interview sections and their opening prompts."""
from __future__ import annotations

from typing import Dict, Mapping, Tuple

SECTIONS: Tuple[str, ...] = (
    "requirements",
    "hld",
    "apis_data",
    "scaling",
    "consistency",
    "failure",
    "security",
    "wrap_up",
)

SECTION_OPENERS: Dict[str, str] = {
    "requirements": "Let's scope this. What are the core use cases and non-negotiables?",
    "hld": "Walk me through the high-level architecture and data flow.",
    "apis_data": "Define the main APIs and data model.",
    "scaling": "Given your traffic numbers, run the scaling math.",
    "consistency": "What consistency guarantees do you need?",
    "failure": "What are the failure modes? How do you detect, mitigate, and recover?",
    "security": "Security and privacy—auth, encryption, PII handling?",
    "wrap_up": "Summarize the strengths and risks. One improvement with more time?",
}


def opener(section: str) -> str:
    return SECTION_OPENERS.get(section, SECTION_OPENERS["wrap_up"])


def next_section(covered: Mapping[str, bool]) -> str:
    """First section not yet covered; ``wrap_up`` once everything is."""

    for section in SECTIONS:
        if not covered.get(section):
            return section
    return "wrap_up"


__all__ = ["SECTIONS", "SECTION_OPENERS", "next_section", "opener"]
