import json

import httpx
import pytest

from agents.types import TurnInput, TurnOutput
from config.app_config import LlmRoute
from graph.state import SessionMemory
from llm_gateway import LlmGatewayError, chat, generate_turn


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload


class FakeClient:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, *, json, headers, timeout):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _route(**overrides):
    data = {
        "name": "generator",
        "base_url": "http://llm.local",
        "endpoint": "/v1/chat/completions",
        "model": "interviewer-small",
        "timeout_s": 5,
    }
    data.update(overrides)
    return LlmRoute(**data)


def _completion(content):
    return FakeResponse({"choices": [{"message": {"content": content}}]})


def test_generate_turn_parses_fenced_json(monkeypatch):
    monkeypatch.setenv("LLM_TEST_KEY", "secret")
    body = json.dumps({"interviewerMessage": "What is your p99 target?", "intent": "drill_down"})
    client = FakeClient(_completion(f"```json\n{body}\n```"))

    output = generate_turn(TurnInput(), SessionMemory(), cfg=_route(api_key_env="LLM_TEST_KEY"), client=client)

    assert output.interviewer_message == "What is your p99 target?"
    call = client.calls[0]
    assert call["url"] == "http://llm.local/v1/chat/completions"
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["timeout"] == 5
    assert call["json"]["model"] == "interviewer-small"
    assert call["json"]["messages"][0]["role"] == "system"


def test_chat_retries_after_invalid_output():
    good = json.dumps({"interviewerMessage": "Second try?"})
    client = FakeClient(_completion("not json at all"), _completion(good))

    output = chat([{"role": "user", "content": "hi"}], TurnOutput, cfg=_route(max_retries=1), client=client)

    assert output.interviewer_message == "Second try?"
    assert len(client.calls) == 2
    assert "failed validation" in client.calls[1]["json"]["messages"][-1]["content"]


def test_chat_gives_up_after_max_retries():
    client = FakeClient(_completion("{}"), _completion("{}"))
    with pytest.raises(LlmGatewayError):
        chat([{"role": "user", "content": "hi"}], TurnOutput, cfg=_route(max_retries=1), client=client)
    assert len(client.calls) == 2


def test_error_status_and_transport_failures_raise():
    with pytest.raises(LlmGatewayError):
        chat([], TurnOutput, cfg=_route(), client=FakeClient(FakeResponse({}, status_code=503)))
    with pytest.raises(LlmGatewayError):
        chat([], TurnOutput, cfg=_route(), client=FakeClient(httpx.ConnectError("refused")))
    with pytest.raises(LlmGatewayError):
        chat([], TurnOutput, cfg=_route(), client=FakeClient(FakeResponse({"unexpected": True})))


def test_empty_message_is_rejected():
    client = FakeClient(_completion(json.dumps({"interviewerMessage": "  "})))
    with pytest.raises(LlmGatewayError):
        generate_turn(TurnInput(), SessionMemory(), cfg=_route(max_retries=0), client=client)


def test_response_format_is_forwarded():
    client = FakeClient(_completion(json.dumps({"interviewerMessage": "Ok?"})))
    chat([], TurnOutput, cfg=_route(response_format="json_object", enforce_json=False), client=client)
    payload = client.calls[0]["json"]
    assert payload["response_format"] == {"type": "json_object"}
    assert payload["messages"] == []
