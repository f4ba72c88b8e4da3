import json

from retrieval.build_corpus import main
from retrieval.corpus import MAX_CHUNK_CHARS, build_chunks, chunk_document, extract_keywords, load_chunks, tokenize


def test_tokenize_drops_stopwords_and_short_tokens():
    assert tokenize("The user asks about a CDN, TTL and write-through!") == ["asks", "cdn", "ttl", "write-through"]


def test_extract_keywords_orders_by_frequency_then_alpha():
    assert extract_keywords("shard shard replica cache cache cache", limit=2) == ["cache", "shard"]


def test_chunk_document_sections_tags_and_component():
    chunks = chunk_document("07_sharding", "# Sharding\n\n## Hot keys\n\nOne key overloads a shard.\n\n## Rebalancing\n\nMove ranges.")
    assert [chunk.title for chunk in chunks] == ["Hot keys", "Rebalancing"]
    assert chunks[0].id == "07_sharding#0"
    assert chunks[0].topic == "sharding"
    assert chunks[0].component == "shard"
    assert "sharding" in chunks[0].tags and "hot" in chunks[0].tags
    assert chunks[0].keywords


def test_long_sections_are_split_on_paragraphs():
    para = "Replica lag grows under write bursts. " * 15
    body = "\n\n".join([para, para, para])
    chunks = chunk_document("03_databases", f"## Lag\n\n{body}")
    assert len(chunks) > 1
    assert all(len(chunk.text) <= MAX_CHUNK_CHARS for chunk in chunks)


def test_build_chunks_reads_docs_in_filename_order(docs_dir):
    chunks = build_chunks(docs_dir)
    assert [chunk.doc_id for chunk in chunks][0] == "01_caching"
    assert {chunk.doc_id for chunk in chunks} == {"01_caching", "04_sharding", "05_messaging"}


def test_cli_writes_loadable_chunks(docs_dir, tmp_path, capsys):
    out_dir = tmp_path / "build"
    main(["--docs", str(docs_dir), "--out", str(out_dir)])

    assert "chunks" in capsys.readouterr().out
    meta = json.loads((out_dir / "meta.json").read_text(encoding="utf-8"))
    loaded = load_chunks(out_dir / "chunks.json")
    assert meta["chunks"] == len(loaded) > 0
    lines = (out_dir / "chunks.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == len(loaded)


def test_load_chunks_tolerates_missing_and_malformed(tmp_path):
    assert load_chunks(tmp_path / "absent.json") == []
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert load_chunks(bad) == []
    mixed = tmp_path / "mixed.json"
    mixed.write_text(json.dumps([{"id": "ok#0", "text": "cache"}, {"text": "no id"}]), encoding="utf-8")
    assert [chunk.id for chunk in load_chunks(mixed)] == ["ok#0"]
