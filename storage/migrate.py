"""SQLite schema migrations."""
from __future__ import annotations

from typing import Iterable, Optional

from .sqlite import get_conn

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS interviews (
  id TEXT PRIMARY KEY,
  candidate_name TEXT NOT NULL,
  role TEXT NOT NULL,
  difficulty TEXT NOT NULL,
  state TEXT NOT NULL,
  start_time TEXT NOT NULL,
  end_time TEXT,
  duration_ms INTEGER,
  overall INTEGER,
  grade TEXT,
  breakdown TEXT,
  total_answered INTEGER,
  total_skipped INTEGER
);
""",
    """
CREATE TABLE IF NOT EXISTS interview_slots (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  interview_id TEXT NOT NULL,
  slot_index INTEGER NOT NULL,
  slot_type TEXT NOT NULL,
  difficulty TEXT NOT NULL,
  prompt TEXT NOT NULL,
  answer TEXT,
  quality REAL,
  skipped INTEGER NOT NULL DEFAULT 0,
  response_time_ms INTEGER,
  payload TEXT NOT NULL,
  FOREIGN KEY (interview_id) REFERENCES interviews(id) ON DELETE CASCADE
);
""",
    """
CREATE TABLE IF NOT EXISTS risk_flags (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  interview_id TEXT NOT NULL,
  flag_type TEXT NOT NULL,
  severity TEXT NOT NULL,
  label TEXT NOT NULL,
  detail TEXT NOT NULL,
  FOREIGN KEY (interview_id) REFERENCES interviews(id) ON DELETE CASCADE
);
""",
]


def migrate(db_path: Optional[str] = None) -> None:
    """Apply schema migrations to the SQLite database."""

    with get_conn(db_path) as conn:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)


if __name__ == "__main__":
    migrate()
