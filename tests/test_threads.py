import asyncio

import pytest

from advisor_bot.errors import StorageError
from advisor_bot.memory.database import to_timestamp, utc_now
from advisor_bot.memory.threads import ThreadMapper

from conftest import FakeSessionClient


async def test_first_contact_creates_a_session(db, sessions):
    mapper = ThreadMapper(db, sessions)

    session_id = await mapper.resolve("north", "1706700000.000100")

    assert session_id == "session_1"
    mapping = await mapper.get("north", "1706700000.000100")
    assert mapping.session_id == "session_1"
    assert mapping.conversation_context == {}
    assert mapping.created_at is not None


async def test_resolve_is_idempotent(db, sessions):
    mapper = ThreadMapper(db, sessions)

    first = await mapper.resolve("north", "T1")
    second = await mapper.resolve("north", "T1")

    assert first == second
    assert sessions.created == ["session_1"]


async def test_advisors_get_separate_sessions_per_thread(db, sessions):
    mapper = ThreadMapper(db, sessions)

    north = await mapper.resolve("north", "T1")
    ops = await mapper.resolve("ops", "T1")
    other_thread = await mapper.resolve("north", "T2")

    assert len({north, ops, other_thread}) == 3


async def test_concurrent_first_messages_create_one_session(db, sessions):
    mapper = ThreadMapper(db, sessions)

    results = await asyncio.gather(*(mapper.resolve("north", "T1") for _ in range(5)))

    assert set(results) == {"session_1"}
    assert sessions.created == ["session_1"]


async def test_mapping_survives_a_new_mapper(db, sessions):
    session_id = await ThreadMapper(db, sessions).resolve("content", "T1")

    assert await ThreadMapper(db, FakeSessionClient()).resolve("content", "T1") == session_id


async def test_race_loser_discards_its_session(db):
    class RacingSessions(FakeSessionClient):
        """Another process maps the thread while we create our session."""

        async def create_session(self):
            session_id = await super().create_session()
            await db.connection.execute(
                """INSERT INTO thread_mappings
                   (advisor_id, external_thread_id, session_id, conversation_context, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                ("north", "T1", "winner", "{}", to_timestamp(utc_now()))
            )
            await db.connection.commit()
            return session_id

    sessions = RacingSessions()
    mapper = ThreadMapper(db, sessions)

    assert await mapper.resolve("north", "T1") == "winner"
    assert sessions.deleted == ["session_1"]


async def test_failed_save_deletes_the_new_session(db, sessions, monkeypatch):
    mapper = ThreadMapper(db, sessions)

    async def failing_insert(*args):
        raise StorageError("disk full")

    monkeypatch.setattr(mapper, "_insert_if_absent", failing_insert)

    with pytest.raises(StorageError):
        await mapper.resolve("north", "T1")

    assert sessions.deleted == ["session_1"]
    assert await mapper.get("north", "T1") is None


async def test_unknown_thread_has_no_mapping(db, sessions):
    assert await ThreadMapper(db, sessions).get("north", "nope") is None
