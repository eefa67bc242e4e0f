"""Session store holding active interview sessions."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, ContextManager, Dict, Iterator, List, Optional, Protocol

from interview.models import Session, utcnow


class SessionStore(Protocol):
    def add(self, session: Session) -> None: ...

    def get(self, session_id: str) -> Optional[Session]: ...

    def evict(self, session_id: str) -> Optional[Session]: ...

    def locked(self, session_id: str) -> ContextManager[None]: ...

    def evict_idle(self, max_idle_s: float) -> List[str]: ...


class InMemorySessionStore:
    """Process-local store with one re-entrant lock per session id."""

    def __init__(self, *, now: Callable[[], datetime] = utcnow) -> None:
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()
        self._now = now

    def add(self, session: Session) -> None:
        with self._guard:
            self._sessions[session.id] = session
            self._locks.setdefault(session.id, threading.RLock())

    def get(self, session_id: str) -> Optional[Session]:
        with self._guard:
            return self._sessions.get(session_id)

    def evict(self, session_id: str) -> Optional[Session]:
        with self._guard:
            self._locks.pop(session_id, None)
            return self._sessions.pop(session_id, None)

    def ids(self) -> List[str]:
        with self._guard:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def _lock_for(self, session_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[session_id] = lock
            return lock

    @contextmanager
    def locked(self, session_id: str) -> Iterator[None]:
        """Serialize operations against one session while others proceed."""

        lock = self._lock_for(session_id)
        with lock:
            yield

    def evict_idle(self, max_idle_s: float) -> List[str]:
        """Drop sessions whose last activity is older than ``max_idle_s``."""

        cutoff = self._now() - timedelta(seconds=max_idle_s)
        with self._guard:
            stale = [sid for sid, session in self._sessions.items() if session.last_activity < cutoff]
        evicted: List[str] = []
        for session_id in stale:
            lock = self._lock_for(session_id)
            if not lock.acquire(blocking=False):
                continue
            try:
                session = self.get(session_id)
                if session is not None and session.last_activity < cutoff:
                    self.evict(session_id)
                    evicted.append(session_id)
            finally:
                lock.release()
        return evicted


__all__ = ["InMemorySessionStore", "SessionStore"]
