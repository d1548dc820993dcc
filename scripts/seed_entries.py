#!/usr/bin/env python3
"""Seed the journal with sample entries for local testing.

Usage examples:
    # Ten entries spread over the last two weeks
    uv run python scripts/seed_entries.py

    # Thirty entries over the last 60 days in a scratch database
    uv run python scripts/seed_entries.py --count 30 --days 60 --db data/dev.db
"""

import argparse
import asyncio
import random
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from notetoself.journal.models import JournalEntry
from notetoself.journal.store import EntryStore

SAMPLES = [
    ("calm", "Slow morning with coffee on the balcony."),
    ("anxious", "Presentation tomorrow, couldn't focus on anything else."),
    ("happy", "Dinner with old friends, laughed a lot."),
    ("tired", "Long day, skipped the gym."),
    ("grateful", "Mom called just to check in."),
    ("frustrated", "Train delayed again, missed the start of the meeting."),
    ("content", "Finished the book I started last month."),
    (None, "Nothing special today."),
]


async def seed(count: int, days: int, db_path: Path | None) -> int:
    store = EntryStore(db_path=db_path)
    now = datetime.now(UTC)
    for _ in range(count):
        mood, text = random.choice(SAMPLES)
        when = now - timedelta(days=random.uniform(0, days))
        await store.add(JournalEntry(timestamp=when, mood=mood, text=text))
    return await store.count()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--count", type=int, default=10, help="entries to add")
    parser.add_argument("--days", type=int, default=14, help="spread entries over this many days")
    parser.add_argument("--db", type=Path, default=None, help="database file (default: settings)")
    args = parser.parse_args()

    total = asyncio.run(seed(args.count, args.days, args.db))
    print(f"Added {args.count} entries ({total} total).")


if __name__ == "__main__":
    main()
