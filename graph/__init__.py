"""Turn execution state and checkpoints for interview sessions."""
from .state import SessionMemory

__all__ = ["SessionMemory"]
