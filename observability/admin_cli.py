"""Lightweight CLI helpers for inspecting archived interviews."""
from __future__ import annotations

import argparse
from typing import Optional, Sequence

from storage.interviews import recent_interviews, recent_risk_flags
from storage.migrate import migrate


def tail_interviews(limit: int = 20) -> None:
    for row in recent_interviews(limit):
        print(
            f"[{row['end_time'] or '-'}] {row['id']} {row['candidate_name']} ({row['role']}, {row['difficulty']}) "
            f"-> {row['state']} overall={row['overall']} grade={row['grade']} "
            f"answered={row['total_answered']} skipped={row['total_skipped']}"
        )


def tail_flags(limit: int = 20) -> None:
    for row in recent_risk_flags(limit):
        print(f"[{row['timestamp']}] {row['interview_id']} {row['flag_type']}/{row['severity']} {row['label']}: {row['detail']}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-interviews", type=int, help="Show the latest archived interviews")
    parser.add_argument("--tail-flags", type=int, help="Show the latest risk flags")
    args = parser.parse_args(argv)

    migrate()
    if args.tail_interviews:
        tail_interviews(args.tail_interviews)
    if args.tail_flags:
        tail_flags(args.tail_flags)


if __name__ == "__main__":
    main()
