from datetime import timedelta

import pytest

from advisor_bot.errors import StorageError
from advisor_bot.memory.advisor_memory import AdvisorMemoryStore
from advisor_bot.memory.database import utc_now


async def test_store_and_get(db):
    store = AdvisorMemoryStore(db)

    await store.store("north", "last_topic", {"topic": "pricing"})

    assert await store.get("north", "last_topic") == {"topic": "pricing"}
    assert await store.get("north", "missing") is None


async def test_store_overwrites(db):
    store = AdvisorMemoryStore(db)

    await store.store("north", "last_topic", {"topic": "pricing"})
    await store.store("north", "last_topic", {"topic": "hiring"})

    assert await store.get("north", "last_topic") == {"topic": "hiring"}


async def test_entries_are_per_advisor(db):
    store = AdvisorMemoryStore(db)

    await store.store("north", "last_topic", "pricing")
    await store.store("ops", "last_topic", "staffing")

    assert await store.get("north", "last_topic") == "pricing"
    assert await store.get("ops", "last_topic") == "staffing"


async def test_expired_entries_are_never_returned(db):
    store = AdvisorMemoryStore(db)

    await store.store("north", "temp", "stale", expires_at=utc_now() - timedelta(seconds=1))
    await store.store("north", "fresh", "ok", expires_at=utc_now() + timedelta(hours=1))

    assert await store.get("north", "temp") is None
    entry = await store.get_entry("north", "fresh")
    assert entry.value == "ok"
    assert entry.expires_at > utc_now()


async def test_purge_removes_only_expired_entries(db):
    store = AdvisorMemoryStore(db)

    await store.store("north", "temp", "stale", expires_at=utc_now() - timedelta(minutes=5))
    await store.store("north", "fresh", "ok", expires_at=utc_now() + timedelta(hours=1))
    await store.store("north", "forever", "kept")

    assert await store.purge_expired() == 1
    assert await store.purge_expired() == 0
    assert await store.get("north", "fresh") == "ok"
    assert await store.get("north", "forever") == "kept"


async def test_unserializable_value_raises_storage_error(db):
    with pytest.raises(StorageError):
        await AdvisorMemoryStore(db).store("north", "bad", object())
