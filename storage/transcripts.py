"""Transcript snapshot persistence on disk."""
from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from config.settings import settings


def _transcript_path(session_id: str) -> str:
    return os.path.join(settings.TRANSCRIPTS_DIR, f"{session_id}.json")


def save_transcript(session_id: str, transcript: Dict[str, Any]) -> str:
    """Persist the transcript atomically and return the file path."""
    os.makedirs(settings.TRANSCRIPTS_DIR, exist_ok=True)
    path = _transcript_path(session_id)
    tmp_path = path + ".tmp"
    with open(tmp_path, "w", encoding="utf-8") as handle:
        json.dump(transcript, handle, ensure_ascii=False, indent=2, default=str)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(tmp_path, path)
    return path


def load_transcript(session_id: str) -> Optional[Dict[str, Any]]:
    """Load a transcript snapshot from disk if present."""
    path = _transcript_path(session_id)
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


__all__ = ["load_transcript", "save_transcript"]
