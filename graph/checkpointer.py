"""Session checkpoint persistence as one JSON file per session."""
from __future__ import annotations

import json
import os
from typing import Optional

from .state import SessionRecord


def _checkpoint_path(base_dir: str, session_id: str) -> str:
    safe_id = "".join(ch for ch in session_id if ch.isalnum() or ch in "-_") or "session"
    return os.path.join(base_dir, f"{safe_id}.json")


def save_checkpoint(record: SessionRecord, base_dir: str) -> str:
    """Persist the session record atomically and return the file path."""
    os.makedirs(base_dir, exist_ok=True)
    path = _checkpoint_path(base_dir, record.session_id)
    tmp_path = path + ".tmp"
    with open(tmp_path, "w", encoding="utf-8") as handle:
        json.dump(record.model_dump(mode="json", by_alias=True), handle, ensure_ascii=False)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(tmp_path, path)
    return path


def load_checkpoint(session_id: str, base_dir: str) -> Optional[SessionRecord]:
    """Load a session record from disk if present."""
    path = _checkpoint_path(base_dir, session_id)
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as handle:
        return SessionRecord.model_validate(json.load(handle))


def delete_checkpoint(session_id: str, base_dir: str) -> None:
    path = _checkpoint_path(base_dir, session_id)
    if os.path.exists(path):
        os.remove(path)
