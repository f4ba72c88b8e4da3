"""Keyword-scored retrieval over the prebuilt corpus."""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Set, Tuple

from agents.types import RetrievedChunk
from config.settings import Settings

from .corpus import Chunk, build_chunks, load_chunks, tokenize

logger = logging.getLogger(__name__)

BODY_WEIGHT = 2
TAG_WEIGHT = 4
KEYWORD_WEIGHT = 6
DOMAIN_BOOST = 8
DEFAULT_K = 6

# Insertion order is the tie-break when a query touches several domains.
DOMAIN_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "cache": ("cache", "ttl", "invalidation", "stampede", "write-through", "write-back"),
    "shard": ("shard", "sharding", "partition", "hot-partition", "resharding"),
    "queue": ("queue", "message", "dlq", "backpressure", "idempotency", "delivery"),
    "load-balancer": ("load", "balancer", "lb", "l4", "l7", "health-check"),
    "database": ("database", "db", "replication", "primary", "replica"),
}


def query_domain(tokens: Sequence[str]) -> Optional[str]:
    token_set = set(tokens)
    for domain, keywords in DOMAIN_KEYWORDS.items():
        for kw in keywords:
            if kw in token_set or any(kw in tok or tok in kw for tok in tokens):
                return domain
    return None


class CorpusIndex:
    """Read-only index built once from corpus chunks and shared across sessions."""

    def __init__(self, chunks: Sequence[Chunk]):
        self.chunks: Tuple[Chunk, ...] = tuple(chunks)
        self._postings: Dict[str, List[Tuple[int, int]]] = defaultdict(list)
        self._keywords: List[Set[str]] = []
        self._tags: List[Tuple[str, ...]] = []
        self._tag_words: List[Set[str]] = []
        self._haystacks: List[str] = []
        for pos, chunk in enumerate(self.chunks):
            for token, tf in Counter(tokenize(chunk.text)).items():
                self._postings[token].append((pos, tf))
            tags = tuple(tag.lower() for tag in chunk.tags)
            words: Set[str] = set()
            for tag in tags:
                words.update(part for part in tag.replace("-", " ").split() if part)
            self._keywords.append({kw.lower() for kw in chunk.keywords})
            self._tags.append(tags)
            self._tag_words.append(words)
            self._haystacks.append(" ".join([chunk.text.lower(), " ".join(tags), " ".join(self._keywords[-1])]))

    def __len__(self) -> int:
        return len(self.chunks)

    def _in_domain(self, pos: int, domain: str) -> bool:
        haystack = self._haystacks[pos]
        return any(kw in haystack for kw in DOMAIN_KEYWORDS[domain])

    def retrieve(self, query: str, k: int = DEFAULT_K) -> List[RetrievedChunk]:
        """Return the top ``k`` chunks for ``query``; ties keep corpus order."""

        if not self.chunks or k <= 0 or not (query or "").strip():
            return []
        tokens = list(dict.fromkeys(tokenize(query)))
        if not tokens:
            return []

        scores = [0.0] * len(self.chunks)
        for token in tokens:
            for pos, _tf in self._postings.get(token, ()):
                scores[pos] += BODY_WEIGHT
            for pos in range(len(self.chunks)):
                if token in self._keywords[pos]:
                    scores[pos] += KEYWORD_WEIGHT
                if token in self._tag_words[pos] or any(token in tag for tag in self._tags[pos]):
                    scores[pos] += TAG_WEIGHT

        domain = query_domain(tokens)
        if domain:
            for pos in range(len(self.chunks)):
                if self._in_domain(pos, domain):
                    scores[pos] += DOMAIN_BOOST

        ranked = sorted((pos for pos, score in enumerate(scores) if score > 0), key=lambda pos: -scores[pos])
        return [
            RetrievedChunk(
                id=self.chunks[pos].id,
                doc_id=self.chunks[pos].doc_id,
                title=self.chunks[pos].title,
                tags=list(self.chunks[pos].tags),
                text=self.chunks[pos].text,
                score=scores[pos],
            )
            for pos in ranked[:k]
        ]


def load_index(settings: Settings) -> CorpusIndex:
    """Build the shared index from the chunk file, else from the docs dir, else empty."""

    chunks = load_chunks(settings.CORPUS_CHUNKS_PATH)
    if not chunks and settings.CORPUS_DOCS_DIR:
        chunks = build_chunks(settings.CORPUS_DOCS_DIR)
    logger.info("Corpus index ready chunks=%d", len(chunks))
    return CorpusIndex(chunks)


__all__ = ["CorpusIndex", "DOMAIN_KEYWORDS", "load_index", "query_domain"]
