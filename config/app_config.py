"""JSON application config: generator routes and flow tuning."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=1, ge=0)
    api_key_env: str | None = None
    response_format: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    enforce_json: bool = True
    sequential: bool = False


class AppConfig(BaseModel):
    """Application configuration root."""

    llm_routes: Dict[str, LlmRoute] = Field(default_factory=dict)
    generator_route: Optional[str] = None
    flow: Dict[str, Any] = Field(default_factory=dict)

    def generator(self) -> Optional[LlmRoute]:
        """Return the route bound to the turn generator, if any."""

        if not self.generator_route:
            return None
        if self.generator_route not in self.llm_routes:
            raise KeyError(f"Route '{self.generator_route}' missing for generator")
        return self.llm_routes[self.generator_route]


def load_config(path: Path) -> AppConfig:
    """Load configuration from disk."""

    data = Path(path).read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)
