from agents.types import TurnInput, TurnOutput
from config.registry import GENERATOR_KEY, bind_model
from graph.build import step
from graph.state import SessionMemory
from llm_gateway import LlmGatewayError
from services.memory import question_hash


def _turn_input():
    return TurnInput.model_validate({"transcript": {"lastTurns": [{"role": "user", "text": "[ready to start]"}]}})


def test_heuristic_path_without_generator():
    result = step(_turn_input(), SessionMemory(), session_id="s-1")
    assert result.mode == "OPEN"
    assert [event["span"] for event in result.events] == ["flow_manager"]


def test_generator_output_is_used_and_recorded():
    seen = {}

    def generator(turn_input, memory):
        seen["memory"] = memory
        return {"interviewerMessage": "  How do you size the cache cluster?  ", "intent": "drill_down"}

    bind_model(GENERATOR_KEY, generator)
    memory = SessionMemory()
    result = step(_turn_input(), memory, session_id="s-2")

    assert result.mode == "GENERATED"
    assert result.output.interviewer_message == "How do you size the cache cluster?"
    assert question_hash("How do you size the cache cluster?") in result.memory.asked_question_hashes
    assert result.memory.topic_history == ["generated"]
    assert seen["memory"] == memory
    assert memory.asked_question_hashes == []
    assert [event["span"] for event in result.events] == ["generator"]


def test_generator_failure_falls_back_to_heuristics():
    def broken(turn_input, memory):
        raise LlmGatewayError("LLM transport failed")

    bind_model(GENERATOR_KEY, broken)
    result = step(_turn_input(), SessionMemory())
    assert result.mode == "OPEN"
    assert [event["span"] for event in result.events] == ["generator", "flow_manager"]


def test_invalid_or_empty_generator_output_falls_back():
    bind_model(GENERATOR_KEY, lambda turn_input, memory: {"intent": "drill_down"})
    assert step(_turn_input(), SessionMemory()).mode == "OPEN"

    bind_model(GENERATOR_KEY, lambda turn_input, memory: TurnOutput(interviewer_message="   "))
    assert step(_turn_input(), SessionMemory()).mode == "OPEN"


def test_generator_unknown_intent_is_coerced():
    bind_model(GENERATOR_KEY, lambda turn_input, memory: {"interviewerMessage": "Why?", "intent": "ramble",
                                                           "evaluation": {"answerQuality": 11}})
    result = step(_turn_input(), SessionMemory())
    assert result.output.intent == "drill_down"
    assert result.output.evaluation.answer_quality == 5
