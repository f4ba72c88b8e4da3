"""Knowledge corpus: chunk records, loading, and building from markdown docs."""
from __future__ import annotations

import json
import logging
import os
import re
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

MAX_CHUNK_CHARS = 900
KEYWORDS_PER_CHUNK = 12

STOPWORDS = frozenset(
    """
    a an the and or but if then else when at by for with about against between into through during
    before after above below to from up down in out on off over under again further once here there
    all any both each few more most other some such no nor not only own same so than too very can
    will just don should now is are was were be been being have has had having do does did doing
    this that these those what which who whom its it they them their we you your our his her
    how why where also use used using like via per each one two get gets into onto
    user ask deep followup
    """.split()
)

DOC_ID_TO_TOPIC: Dict[str, str] = {
    "caching": "caching",
    "load-balancing": "load-balancing",
    "load_balancing": "load-balancing",
    "databases": "databases",
    "sharding": "sharding",
    "messaging": "messaging",
    "queues": "messaging",
    "cdn": "cdn",
    "storage": "storage",
    "replication": "replication",
}

TOPIC_TO_COMPONENT: Dict[str, str] = {
    "caching": "cache",
    "load-balancing": "lb",
    "databases": "database",
    "sharding": "shard",
    "messaging": "queue",
    "cdn": "cdn",
    "storage": "storage",
    "replication": "database",
}


class Chunk(BaseModel):
    """One retrievable passage of the corpus."""

    id: str
    doc_id: str = ""
    title: str = ""
    text: str = ""
    tags: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    topic: str = ""
    component: str = ""


def tokenize(text: str) -> List[str]:
    """Lowercase, strip punctuation except hyphens, drop short tokens and stop words."""

    cleaned = re.sub(r"[^\w\s-]", " ", (text or "").lower())
    return [tok for tok in cleaned.split() if len(tok) >= 3 and tok not in STOPWORDS]


def extract_keywords(text: str, limit: int = KEYWORDS_PER_CHUNK) -> List[str]:
    counts = Counter(tokenize(text))
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [word for word, _ in ranked[:limit]]


def load_chunks(path: str | os.PathLike[str]) -> List[Chunk]:
    """Load a prebuilt ``chunks.json``; a missing or unreadable file yields no chunks."""

    target = Path(path)
    if not target.exists():
        logger.warning("Corpus file not found: %s", target)
        return []
    try:
        raw = json.loads(target.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Corpus file unreadable: %s (%s)", target, exc)
        return []
    chunks: List[Chunk] = []
    for item in raw if isinstance(raw, list) else []:
        try:
            chunks.append(Chunk.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed chunk: %s", exc.errors()[:1])
    return chunks


def _doc_topic(doc_id: str) -> str:
    # "07_sharding" -> "sharding"
    stem = re.sub(r"^\d+[_-]", "", doc_id.lower())
    return DOC_ID_TO_TOPIC.get(stem, stem.replace("_", "-"))


def _split_sections(markdown: str) -> List[Tuple[str, str]]:
    sections: List[Tuple[str, str]] = []
    heading = ""
    doc_title = ""
    buffer: List[str] = []
    for line in markdown.splitlines():
        match = re.match(r"^(#{1,3})\s+(.*)$", line)
        if match:
            if len(match.group(1)) == 1:
                doc_title = match.group(2).strip()
                continue
            if buffer and "".join(buffer).strip():
                sections.append((heading or doc_title, "\n".join(buffer).strip()))
            heading = match.group(2).strip()
            buffer = []
        else:
            buffer.append(line)
    if buffer and "".join(buffer).strip():
        sections.append((heading or doc_title, "\n".join(buffer).strip()))
    return sections


def _split_long(text: str, limit: int = MAX_CHUNK_CHARS) -> List[str]:
    if len(text) <= limit:
        return [text]
    pieces: List[str] = []
    current = ""
    for para in re.split(r"\n\s*\n", text):
        para = para.strip()
        if not para:
            continue
        if current and len(current) + len(para) + 2 > limit:
            pieces.append(current)
            current = para
        else:
            current = f"{current}\n\n{para}" if current else para
    if current:
        pieces.append(current)
    return pieces


def chunk_document(doc_id: str, markdown: str, doc_tags: Optional[Iterable[str]] = None) -> List[Chunk]:
    topic = _doc_topic(doc_id)
    component = TOPIC_TO_COMPONENT.get(topic, "")
    chunks: List[Chunk] = []
    for title, body in _split_sections(markdown):
        heading_words = [word for word in tokenize(title)]
        for piece in _split_long(body):
            tags: List[str] = []
            for tag in [*(doc_tags or []), topic, component, *heading_words]:
                if tag and tag not in tags:
                    tags.append(tag)
            chunks.append(
                Chunk(
                    id=f"{doc_id}#{len(chunks)}",
                    doc_id=doc_id,
                    title=title,
                    text=piece,
                    tags=tags,
                    keywords=extract_keywords(f"{title} {piece}"),
                    topic=topic,
                    component=component,
                )
            )
    return chunks


def build_chunks(docs_dir: str | os.PathLike[str]) -> List[Chunk]:
    """Chunk every ``*.md`` file under ``docs_dir`` in filename order."""

    root = Path(docs_dir)
    chunks: List[Chunk] = []
    for path in sorted(root.glob("*.md")):
        chunks.extend(chunk_document(path.stem, path.read_text(encoding="utf-8")))
    return chunks


def write_chunks(chunks: List[Chunk], out_dir: str | os.PathLike[str]) -> Path:
    """Persist chunks as ``chunks.json`` + ``chunks.jsonl`` + ``meta.json``; returns the json path."""

    target = Path(out_dir)
    target.mkdir(parents=True, exist_ok=True)
    rows = [chunk.model_dump() for chunk in chunks]
    json_path = target / "chunks.json"
    json_path.write_text(json.dumps(rows, ensure_ascii=False, indent=2), encoding="utf-8")
    with open(target / "chunks.jsonl", "w", encoding="utf-8") as handle:
        for row in rows:
            handle.write(json.dumps(row, ensure_ascii=False) + "\n")
    meta = {
        "chunks": len(rows),
        "docs": sorted({chunk.doc_id for chunk in chunks}),
        "max_chunk_chars": MAX_CHUNK_CHARS,
    }
    (target / "meta.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")
    return json_path


__all__ = [
    "Chunk",
    "STOPWORDS",
    "build_chunks",
    "chunk_document",
    "extract_keywords",
    "load_chunks",
    "tokenize",
    "write_chunks",
]
