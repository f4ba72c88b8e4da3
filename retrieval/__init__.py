"""Corpus loading and keyword retrieval for question composition."""
from .corpus import Chunk, build_chunks, load_chunks, tokenize, write_chunks
from .retriever import CorpusIndex, load_index

__all__ = ["Chunk", "CorpusIndex", "build_chunks", "load_chunks", "load_index", "tokenize", "write_chunks"]
