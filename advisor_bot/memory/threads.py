"""
Thread Mapping
==============

Maps a Slack conversation thread (per advisor) to the LLM session that
holds its history.

Each advisor keeps its own session per thread, so asking @ops and @content
in the same Slack thread produces two independent conversations.

Get-or-create is atomic per (advisor_id, external_thread_id):
- Inside the process, a per-key asyncio.Lock means only one coroutine looks
  up and creates the session for a given thread at a time
- Across processes, the mapping is written with INSERT OR IGNORE on the
  primary key; the loser of a race discards the session it created and
  adopts the winner's

A session created remotely whose mapping cannot be saved is deleted again
(best-effort) before the StorageError propagates, so failures do not leave
orphaned sessions behind.
"""

import asyncio
import json
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from advisor_bot.errors import BotError, StorageError
from advisor_bot.memory.database import (
    MemoryDatabase,
    from_timestamp,
    storage_errors,
    to_timestamp,
    utc_now,
)
from advisor_bot.utils.logger import Logger

if TYPE_CHECKING:
    from advisor_bot.agent.assistant import SessionClient

logger = Logger("ThreadMapper")


@dataclass
class ThreadMapping:
    """
    A Slack thread's session for one advisor.

    The session_id never changes once the mapping exists.
    """
    advisor_id: str
    external_thread_id: str
    session_id: str
    conversation_context: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


class ThreadMapper:
    """
    Resolves (advisor, Slack thread) pairs to LLM session ids.

    Example:
        mapper = ThreadMapper(db, sessions)

        session_id = await mapper.resolve("north", "1706700000.123456")
        same_id = await mapper.resolve("north", "1706700000.123456")
        assert session_id == same_id
    """

    def __init__(self, db: MemoryDatabase, sessions: "SessionClient"):
        """
        Args:
            db: Initialized memory database
            sessions: Client that creates and deletes LLM sessions
        """
        self.db = db
        self.sessions = sessions
        # Entries vanish once no coroutine holds the lock
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, advisor_id: str, external_thread_id: str) -> asyncio.Lock:
        key = (advisor_id, external_thread_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def get(self, advisor_id: str, external_thread_id: str) -> ThreadMapping | None:
        """
        Look up an existing mapping by exact key.

        Raises:
            StorageError: If the lookup fails
        """
        with storage_errors("read thread mapping"):
            cursor = await self.db.connection.execute(
                """SELECT session_id, conversation_context, created_at
                   FROM thread_mappings
                   WHERE advisor_id = ? AND external_thread_id = ?""",
                (advisor_id, external_thread_id)
            )
            row = await cursor.fetchone()

            if row is None:
                return None

            return ThreadMapping(
                advisor_id=advisor_id,
                external_thread_id=external_thread_id,
                session_id=row[0],
                conversation_context=json.loads(row[1]),
                created_at=from_timestamp(row[2]),
            )

    async def resolve(self, advisor_id: str, external_thread_id: str) -> str:
        """
        Return the thread's session id, creating the session on first contact.

        Args:
            advisor_id: The advisor handling the thread
            external_thread_id: Slack thread timestamp (or channel id for slash commands)

        Returns:
            The session id, identical on every call for the same pair

        Raises:
            UpstreamServiceError: If a new session cannot be created
            StorageError: If the mapping cannot be read or saved
        """
        async with self._lock_for(advisor_id, external_thread_id):
            existing = await self.get(advisor_id, external_thread_id)
            if existing is not None:
                logger.debug(f"Found existing session for {advisor_id}:{external_thread_id}")
                return existing.session_id

            logger.info(f"Creating new session for {advisor_id}")
            session_id = await self.sessions.create_session()

            try:
                inserted = await self._insert_if_absent(advisor_id, external_thread_id, session_id)
            except StorageError:
                await self._discard_session(session_id)
                raise

            if inserted:
                logger.info(f"New thread mapping created for {advisor_id}")
                return session_id

            # Another process mapped this thread first; use its session
            await self._discard_session(session_id)
            winner = await self.get(advisor_id, external_thread_id)
            if winner is None:
                raise StorageError(
                    f"Thread mapping for {advisor_id}:{external_thread_id} vanished after conflict"
                )
            return winner.session_id

    async def _insert_if_absent(
        self,
        advisor_id: str,
        external_thread_id: str,
        session_id: str
    ) -> bool:
        """Insert the mapping unless one exists; True if this call inserted it."""
        with storage_errors("save thread mapping"):
            cursor = await self.db.connection.execute(
                """INSERT OR IGNORE INTO thread_mappings
                   (advisor_id, external_thread_id, session_id, conversation_context, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (advisor_id, external_thread_id, session_id, "{}", to_timestamp(utc_now()))
            )
            await self.db.connection.commit()
            return cursor.rowcount == 1

    async def _discard_session(self, session_id: str) -> None:
        try:
            await self.sessions.delete_session(session_id)
        except BotError as e:
            logger.error(f"Could not delete unused session {session_id}", e)
