import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agents.flow_manager import FlowDeps
from config.registry import GENERATOR_KEY, unbind_model
from retrieval.corpus import chunk_document
from retrieval.retriever import CorpusIndex


CACHE_DOC = """# Caching

## Cache-aside reads

Check the cache first and fall back to the database on a miss. A 90% hit ratio at 50K QPS leaves 5K QPS on the primary.

## Stampede protection

When a hot key expires many requests miss at once. Request coalescing and jittered TTL values smooth the refill.
"""

QUEUE_DOC = """# Messaging

## Delivery semantics

Brokers usually deliver at-least-once, so consumers must be idempotent. Poison messages go to a DLQ after retries.
"""

SHARD_DOC = """# Sharding

## Hot partitions

A celebrity key overloads one shard. Split the partition key or add a dedicated shard and watch per-shard QPS.
"""


@pytest.fixture(autouse=True)
def no_generator():
    unbind_model(GENERATOR_KEY)
    yield
    unbind_model(GENERATOR_KEY)


@pytest.fixture
def corpus_chunks():
    return (
        chunk_document("01_caching", CACHE_DOC)
        + chunk_document("05_messaging", QUEUE_DOC)
        + chunk_document("04_sharding", SHARD_DOC)
    )


@pytest.fixture
def corpus_index(corpus_chunks):
    return CorpusIndex(corpus_chunks)


@pytest.fixture
def flow_deps(corpus_index):
    return FlowDeps(retriever=corpus_index)


@pytest.fixture
def docs_dir(tmp_path):
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "01_caching.md").write_text(CACHE_DOC, encoding="utf-8")
    (docs / "05_messaging.md").write_text(QUEUE_DOC, encoding="utf-8")
    (docs / "04_sharding.md").write_text(SHARD_DOC, encoding="utf-8")
    return docs
