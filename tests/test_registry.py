import threading
import time

from holdem.models import TableConfig
from holdem.table import Table
from rooms.registry import RoomRegistry

from .helpers import ManualScheduler, RecordingTransport


def make_registry(created):
    transport = RecordingTransport()
    scheduler = ManualScheduler()

    def factory(room_id):
        created.append(room_id)
        time.sleep(0.01)
        return Table(room_id, TableConfig(), transport, scheduler)

    return RoomRegistry(factory)


def test_get_or_create_returns_same_table():
    created = []
    registry = make_registry(created)

    first = registry.get_or_create("room1")
    assert registry.get_or_create("room1") is first
    assert created == ["room1"]
    assert "room1" in registry
    assert registry.get("room2") is None
    assert len(registry) == 1


def test_rooms_are_independent():
    registry = make_registry([])
    one = registry.get_or_create("room1")
    two = registry.get_or_create("room2")

    one.join("a", "Ann")
    assert two.seats == []
    assert sorted(registry.room_ids()) == ["room1", "room2"]


def test_concurrent_lookups_create_one_table():
    created = []
    registry = make_registry(created)
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(registry.get_or_create("busy"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert created == ["busy"]
    assert all(table is results[0] for table in results)
