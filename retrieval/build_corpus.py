"""CLI that chunks the markdown knowledge docs into ``chunks.json``."""
from __future__ import annotations

import argparse
import os

from config.settings import settings

from .corpus import build_chunks, write_chunks


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Build the retrieval corpus from markdown docs")
    parser.add_argument("--docs", default=settings.CORPUS_DOCS_DIR, help="Directory of *.md knowledge docs")
    parser.add_argument("--out", default=None, help="Output directory (defaults to the chunks file's folder)")
    args = parser.parse_args(argv)

    out_dir = args.out or os.path.dirname(settings.CORPUS_CHUNKS_PATH) or "."
    chunks = build_chunks(args.docs)
    path = write_chunks(chunks, out_dir)
    print(f"wrote {len(chunks)} chunks from {args.docs} -> {path}")


if __name__ == "__main__":
    main()
