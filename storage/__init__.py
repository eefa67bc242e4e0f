"""Persistence layer for archived interviews."""
from .archive import TranscriptArchive
from .migrate import migrate

__all__ = ["TranscriptArchive", "migrate"]
