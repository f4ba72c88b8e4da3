from graph.state import SessionMemory
from services.memory import (
    difficulty_for,
    first_sentence,
    is_repeat,
    is_similar,
    mark_section,
    question_hash,
    record_question,
    update_skill,
    was_asked,
)


def test_question_hash_folds_case_space_and_later_lines():
    assert question_hash("What  breaks FIRST?") == question_hash("what breaks first?")
    assert question_hash("Same first line\nsecond A") == question_hash("Same first line\nsecond B")
    assert len(question_hash("anything")) == 16


def test_first_sentence():
    assert first_sentence("At 10K RPS, L4 or L7? What routing.") == "At 10K RPS, L4 or L7"


def test_similarity_rules():
    assert is_similar("What breaks first under load", "what breaks first under load")
    assert is_similar(
        "Walk me through day-2 operations for the cache tier",
        "Walk me through day-2 operations for the queue tier",
    )
    assert not is_similar("Short one", "Other one")
    assert not is_similar("", "anything")


def test_record_question_is_pure_and_capped():
    memory = SessionMemory()
    updated = memory
    for idx in range(7):
        updated = record_question(updated, f"Question number {idx} about caching?", "cache")
    assert memory.asked_question_hashes == []
    assert len(updated.asked_question_hashes) == 7
    assert len(updated.topic_history) == 5
    assert len(updated.last_asked_questions) == 3
    assert updated.last_question_hash == question_hash("Question number 6 about caching?")
    assert was_asked(updated, "Question number 0 about caching?")


def test_record_question_keeps_hashes_unique():
    memory = record_question(SessionMemory(), "Same question?", "cache")
    memory = record_question(memory, "Same question?", "cache")
    assert len(memory.asked_question_hashes) == 1


def test_is_repeat_uses_hash_and_recent_sentences():
    memory = record_question(SessionMemory(), "Which metric pages you first? Give the threshold.", "default")
    assert is_repeat(memory, "Which metric pages you first? Give the threshold.")
    assert is_repeat(memory, "Which metric pages you first? Something else entirely.")
    assert not is_repeat(memory, "How do you shard the user table?")


def test_update_skill_signals():
    memory = SessionMemory()
    strong = update_skill(memory, "Keep p99 under 200 ms, accepting the latency vs consistency tradeoff")
    assert strong.skill == 2 and strong.difficulty == 2
    weak = update_skill(strong, "idk honestly, not sure what to do")
    assert weak.skill == 1
    assert update_skill(memory, "ok") is memory
    assert update_skill(memory, "no no no").skill == 0


def test_difficulty_is_clamped():
    assert difficulty_for(0) == 1
    assert difficulty_for(3) == 2
    assert difficulty_for(40) == 5


def test_mark_section_copies():
    memory = SessionMemory()
    marked = mark_section(memory, "hld")
    assert marked.covered_sections == {"hld": True}
    assert memory.covered_sections == {}


def test_malformed_memory_is_coerced():
    memory = SessionMemory.coerce(
        {
            "askedQuestionHashes": "nope",
            "topicHistory": ["a", 3, "b", "c", "d", "e", "f"],
            "difficulty": 99,
            "skill": -4,
            "coveredSections": ["x"],
            "mode": 5,
        }
    )
    assert memory.asked_question_hashes == []
    assert memory.topic_history == ["b", "c", "d", "e", "f"]
    assert memory.difficulty == 5
    assert memory.skill == 0
    assert memory.covered_sections == {}
    assert memory.mode == ""
    assert SessionMemory.coerce("garbage") == SessionMemory()
    assert SessionMemory.coerce(None) == SessionMemory()
