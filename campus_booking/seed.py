"""Load classrooms into the configured booking store.

Usage:
    # Seed the bundled sample rooms (default)
    python -m campus_booking.seed

    # Seed from your own file
    python -m campus_booking.seed --data rooms.json

    # Seed a different database
    DATABASE_URL=sqlite+aiosqlite:///./other.db python -m campus_booking.seed
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from campus_booking.config import settings
from campus_booking.models.classroom import Classroom
from campus_booking.stores import BookingStore, create_store

log = logging.getLogger("campus_booking.seed")

SAMPLE_CLASSROOMS = Path(__file__).parent / "sample_data" / "classrooms.json"


def load_classrooms(data_path: str | Path | None = None) -> list[Classroom]:
    """Read a JSON list of classrooms."""
    path = Path(data_path) if data_path else SAMPLE_CLASSROOMS
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON list of classrooms")
    return [Classroom(**item) for item in raw]


async def seed_classrooms(
    store: BookingStore,
    data_path: str | Path | None = None,
    only_if_empty: bool = False,
) -> int:
    """Insert (or replace) classrooms; returns how many were written."""
    if only_if_empty and await store.list_classrooms():
        return 0

    classrooms = load_classrooms(data_path)
    for classroom in classrooms:
        await store.add_classroom(classroom)
    log.info("Seeded %d classroom(s) from %s", len(classrooms), data_path or SAMPLE_CLASSROOMS)
    return len(classrooms)


async def _run(data_path: str | None) -> None:
    store = create_store(settings)
    await store.init()
    try:
        count = await seed_classrooms(store, data_path)
    finally:
        await store.close()
    print(f"Done: {count} classroom(s) written to {settings.storage_backend} store")


def main():
    parser = argparse.ArgumentParser(
        description="Seed classrooms into the booking store",
        prog="python -m campus_booking.seed",
    )
    parser.add_argument(
        "--data",
        help="Path to classrooms JSON file (default: sample_data/classrooms.json)",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s")
    asyncio.run(_run(args.data))


if __name__ == "__main__":
    main()
