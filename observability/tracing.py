"""Span helper recording oracle timings on the session audit trail."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator


@contextmanager
def span(session, name: str, **fields) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        session.events.append({"span": name, "ms": elapsed_ms, **fields})


__all__ = ["span"]
