"""Tests for classroom seeding."""

import json

import pytest

from campus_booking.seed import load_classrooms, seed_classrooms
from campus_booking.stores import MemoryBookingStore


class TestLoadClassrooms:
    def test_bundled_sample(self):
        rooms = load_classrooms()
        assert [c.id for c in rooms] == ["CR-101", "CR-204", "LAB-3"]
        assert all(c.is_active for c in rooms)

    def test_custom_file(self, tmp_path):
        path = tmp_path / "rooms.json"
        path.write_text(json.dumps([{"id": "HALL-1", "name": "Great Hall", "capacity": 300}]))
        rooms = load_classrooms(path)
        assert rooms[0].id == "HALL-1"
        assert rooms[0].features == []

    def test_rejects_non_list(self, tmp_path):
        path = tmp_path / "rooms.json"
        path.write_text(json.dumps({"id": "HALL-1"}))
        with pytest.raises(ValueError, match="JSON list"):
            load_classrooms(path)


class TestSeedClassrooms:
    async def test_writes_all(self):
        store = MemoryBookingStore()
        assert await seed_classrooms(store) == 3
        assert len(await store.list_classrooms()) == 3

    async def test_only_if_empty_skips(self):
        store = MemoryBookingStore()
        await seed_classrooms(store)
        assert await seed_classrooms(store, only_if_empty=True) == 0

    async def test_reseed_replaces(self, tmp_path):
        store = MemoryBookingStore()
        await seed_classrooms(store)
        path = tmp_path / "rooms.json"
        path.write_text(json.dumps([{"id": "LAB-3", "name": "Lab 3", "is_active": False}]))

        await seed_classrooms(store, path)
        room = await store.get_classroom("LAB-3")
        assert room.is_active is False
        assert len(await store.list_classrooms()) == 3
