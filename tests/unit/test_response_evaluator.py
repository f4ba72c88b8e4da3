from agents.response_evaluator import answer_quality, detect_signals, evaluate_answer


def test_detect_signals():
    signals = detect_signals("At 5000 QPS we accept the latency tradeoff; if the cache is down we retry")
    assert signals.has_numbers and signals.has_tradeoff and signals.has_failure
    assert signals.count == 3
    assert signals.gaps == []


def test_complete_answer_is_validated():
    output = evaluate_answer("At 5000 QPS we accept the latency tradeoff; if the cache is down we retry")
    assert output.intent == "validate"
    assert output.evaluation.answer_quality == 5
    assert output.interviewer_message.startswith("Good. Here’s what’s strong / missing:")


def test_gaps_drive_drill_down():
    output = evaluate_answer("We put everything behind a gateway and call it a day for the first release")
    assert output.intent == "drill_down"
    assert output.evaluation.answer_quality == 2
    assert output.evaluation.missing == ["Concrete numbers (QPS, TTL, p99)", "Explicit tradeoff (e.g. latency vs consistency)"]
    assert output.interviewer_message.endswith("What’s the ballpark QPS and p99 for this path?")


def test_answer_quality_bands():
    assert answer_quality("We partition users across four replicas") == 4
    assert answer_quality("cache") == 3
    assert answer_quality("We would think about it more carefully later on") == 3
