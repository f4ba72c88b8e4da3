from agents.coach_agent import COACH_FOLLOWUPS, clarify_reply, coach_reply, coach_topic, worked_example
from agents.qg.common import STRESS_SCENARIO


def test_coach_topic_reads_first_sentence_after_scenario():
    assert coach_topic(f"{STRESS_SCENARIO} At 250K RPS, your cache sits in front of DB. Then a queue.") == "cache"
    assert coach_topic("You have a message queue in the path. Cache later.") == "queue"
    assert coach_topic("Walk me through the architecture.") == "component"


def test_coach_reply_structure_and_rotation():
    question = "At 10K RPS, your cache sits in front of DB."
    first = coach_reply(question, 10000, 0)
    second = coach_reply(question, 10000, 1)
    assert first.startswith("A cache sits between your app and DB")
    assert first.count("•") == 3
    assert "Worked example: At 10K RPS" in first
    assert first.endswith(COACH_FOLLOWUPS["cache"][0])
    assert second.endswith(COACH_FOLLOWUPS["cache"][1])
    assert coach_reply(question, 10000, 4) == first


def test_worked_examples_use_traffic():
    assert "1K RPS for the DB" in worked_example("cache", 10000)
    assert "~3K/shard" in worked_example("shard", 12000)


def test_clarify_reply_by_topic():
    assert clarify_reply("How do you shard users?").startswith("You have 4 shards")
    assert clarify_reply("").startswith("Pick one")
