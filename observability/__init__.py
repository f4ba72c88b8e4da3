"""Turn event logging and span timings for the dialogue engine."""
from .logger import log_event
from .tracing import span

__all__ = ["log_event", "span"]
