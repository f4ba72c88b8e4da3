from agents.topic_mapper import (
    NoOpPolicy,
    action_summary,
    is_no_op,
    normalize_label,
    topic_from_label,
    topic_tag,
    topics_for_action,
)
from agents.types import AddNode, Connect, DeleteEdge, DeleteNode, DiagramNode, Move


def _node(node_id, label):
    return DiagramNode(id=node_id, label=label)


def test_labels_map_to_topics():
    assert normalize_label("  Load Balancer ") == "lb"
    assert topic_from_label("Redis Cache") == "cache"
    assert topic_from_label("Load Balancer") == "lb"
    assert topic_from_label("Kafka MQ") == "queue"
    assert topic_from_label("User DB") == "database"
    assert topic_from_label("Shard 1") == "shard"
    assert topic_from_label("S3") == "storage"
    assert topic_from_label("Web App") == "default"
    assert topic_from_label("") == "default"


def test_topics_and_tags_per_event_kind():
    add_cache = AddNode(node=_node("c1", "Cache"))
    connect = Connect(source="a", target="b")
    assert "caching" in topics_for_action(add_cache)
    assert topic_tag(add_cache) == "cache"
    assert "data-flow" in topics_for_action(connect)
    assert topic_tag(connect) == "data-flow"
    assert "failure-modes" in topics_for_action(DeleteNode(node_id="x"))
    assert topic_tag(DeleteEdge(edge_id="e1")) == "default"
    assert topics_for_action(None) == ["tradeoffs", "failure-modes", "metrics"]


def test_action_summaries():
    assert action_summary(AddNode(node=_node("c1", "Cache"))) == "Added Cache"
    assert action_summary(Connect(source="a", target="b", source_label="App", target_label="DB")) == "Connected App -> DB"
    assert action_summary(Connect()) == "Connected A -> B"
    assert action_summary(DeleteNode(node_id="x")) == "Deleted node"
    assert action_summary(DeleteEdge()) == "Deleted edge"
    assert action_summary(Move(node_id="x")) == "Moved node"
    assert action_summary(None) == "Diagram change"


def test_third_client_is_no_op_but_second_is_not():
    nodes = [_node("c1", "Client"), _node("c2", "Client"), _node("c3", "Client")]
    assert is_no_op(AddNode(node=nodes[2]), nodes)
    assert not is_no_op(AddNode(node=nodes[1]), nodes[:2])


def test_non_duplicate_prone_type_never_no_op():
    nodes = [_node("w1", "Worker"), _node("w2", "Worker"), _node("w3", "Worker")]
    assert not is_no_op(AddNode(node=nodes[2]), nodes)


def test_added_node_missing_from_snapshot_still_counts_existing():
    nodes = [_node("d1", "DB"), _node("d2", "DB")]
    assert is_no_op(AddNode(node=_node("d3", "DB")), nodes)


def test_per_type_threshold_override():
    policy = NoOpPolicy(thresholds={"cache": 3})
    nodes = [_node("c1", "Cache"), _node("c2", "Cache")]
    assert not is_no_op(AddNode(node=_node("c3", "Cache")), nodes, policy)
    assert is_no_op(AddNode(node=_node("c3", "Cache")), nodes)


def test_connect_and_move_are_not_no_ops():
    nodes = [_node("c1", "Client"), _node("c2", "Client")]
    assert not is_no_op(Connect(source="c1", target="c2"), nodes)
    assert not is_no_op(Move(node_id="c1"), nodes)
