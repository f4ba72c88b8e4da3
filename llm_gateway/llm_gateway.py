"""HTTP gateway to an optional LLM that can author interviewer turns."""
from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from agents.types import TurnInput, TurnOutput
from config.app_config import LlmRoute
from graph.state import SessionMemory

logger = logging.getLogger(__name__)

_ROUTE_LOCKS: Dict[str, threading.Lock] = {}
_ROUTE_LOCKS_GUARD = threading.Lock()

SYSTEM_PROMPT = (
    "You are a senior system-design interviewer. Read the candidate's diagram, the recent transcript and "
    "the interviewer memory, then write the next interviewer turn. Ask exactly one focused question, never "
    "repeat a question listed in recentQuestions, and prefer concrete numbers, failure modes and tradeoffs."
)


class HttpClient(Protocol):
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...


class LlmGatewayError(RuntimeError):
    """Transport, status, payload or validation failure talking to the LLM."""


T = TypeVar("T", bound=BaseModel)


def _lock_for(cfg: LlmRoute) -> threading.Lock:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _ROUTE_LOCKS_GUARD:
        return _ROUTE_LOCKS.setdefault(key, threading.Lock())


def _headers(cfg: LlmRoute) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if cfg.api_key_env and os.getenv(cfg.api_key_env):
        headers["Authorization"] = f"Bearer {os.getenv(cfg.api_key_env)}"
    headers.update(cfg.extra_headers)
    return headers


def _send(cfg: LlmRoute, payload: Dict[str, Any], client: Optional[HttpClient]) -> Any:
    url = f"{cfg.base_url}{cfg.endpoint}"
    try:
        if client is not None:
            response = client.post(url, json=payload, headers=_headers(cfg), timeout=cfg.timeout_s)
        else:
            with httpx.Client(timeout=cfg.timeout_s) as http:
                response = http.post(url, json=payload, headers=_headers(cfg))
    except Exception as exc:  # noqa: BLE001
        logger.error("LLM transport failure route=%s: %s", cfg.name, exc)
        raise LlmGatewayError("LLM transport failed") from exc
    if response.status_code >= 400:
        logger.error("LLM error status route=%s status=%s", cfg.name, response.status_code)
        raise LlmGatewayError(f"LLM returned status {response.status_code}")
    try:
        return response.json()
    except Exception as exc:  # noqa: BLE001
        raise LlmGatewayError("LLM payload was not JSON") from exc


def _content(data: Any) -> str:
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")


def _strip_fences(text: str) -> str:
    body = text.strip()
    if not body.startswith("```"):
        return body
    lines = body.splitlines()[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _retry_hint(error_text: str) -> str:
    reason = error_text.splitlines()[0].strip()[:200] if error_text else ""
    hint = "The previous reply failed validation."
    if reason:
        hint += f" Reason: {reason}."
    return hint + " Return a single JSON object that matches the schema."


def chat(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Send ``messages`` and validate the reply against ``schema``, retrying on invalid output."""

    def _execute() -> T:
        base: List[Dict[str, str]] = []
        if cfg.enforce_json:
            schema_json = json.dumps(schema.model_json_schema(by_alias=True), indent=2)
            base.append({"role": "system", "content": "Reply with a single JSON object matching this schema:\n" + schema_json})
        base.extend({"role": str(m["role"]), "content": str(m.get("content", ""))} for m in messages)

        attempts = cfg.max_retries + 1
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            turn_messages = list(base)
            if last_error is not None:
                turn_messages.append({"role": "system", "content": _retry_hint(str(last_error))})
            payload: Dict[str, Any] = {"model": cfg.model, "messages": turn_messages, **(options or {})}
            if cfg.response_format:
                payload["response_format"] = {"type": cfg.response_format}
            logger.info("LLM request route=%s model=%s attempt=%d/%d", cfg.name, cfg.model, attempt + 1, attempts)
            content = _content(_send(cfg, payload, client))
            try:
                return schema.model_validate_json(_strip_fences(content))
            except (json.JSONDecodeError, ValidationError) as exc:
                logger.warning("LLM output validation failed route=%s: %s", cfg.name, exc)
                last_error = exc
        raise LlmGatewayError("LLM output validation failed") from last_error

    if cfg.sequential:
        with _lock_for(cfg):
            return _execute()
    return _execute()


def generate_turn(
    turn_input: TurnInput,
    memory: SessionMemory,
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
) -> TurnOutput:
    """Ask the configured LLM for the next interviewer turn.

    Raises:
        LlmGatewayError: On any transport or validation failure, or an empty message.
    """

    context = {
        "turn": turn_input.model_dump(by_alias=True, mode="json"),
        "memory": {
            "difficulty": memory.difficulty,
            "recentQuestions": memory.last_asked_questions,
            "recentTopics": memory.topic_history,
            "coveredSections": sorted(k for k, v in memory.covered_sections.items() if v),
        },
    }
    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(context, ensure_ascii=False)},
    ]
    output = chat(messages, TurnOutput, cfg=cfg, client=client)
    if not output.interviewer_message:
        raise LlmGatewayError("LLM returned an empty interviewer message")
    return output


__all__ = ["HttpClient", "HttpResponse", "LlmGatewayError", "chat", "generate_turn"]
