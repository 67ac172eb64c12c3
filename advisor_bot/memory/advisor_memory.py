"""
Advisor Memory
==============

Small per-advisor key/value memory, e.g. the last topic each advisor
discussed. Values are any JSON-serializable object.

- One entry per (advisor_id, key); writes are upserts, last write wins
- An entry may expire: once expires_at has passed it is never returned,
  and purge_expired() deletes it
- Conflicts are resolved by SQLite's ON CONFLICT clause, not by locks
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from advisor_bot.memory.database import (
    MemoryDatabase,
    from_timestamp,
    storage_errors,
    to_timestamp,
    utc_now,
)
from advisor_bot.utils.logger import Logger

logger = Logger("AdvisorMemory")


@dataclass
class AdvisorMemory:
    advisor_id: str
    key: str
    value: Any
    expires_at: datetime | None = None
    updated_at: datetime | None = None


class AdvisorMemoryStore:
    """
    Per-advisor key/value memory backed by SQLite.

    Example:
        store = AdvisorMemoryStore(db)

        await store.store("north", "last_topic", {"topic": "pricing"})
        await store.get("north", "last_topic")   # {"topic": "pricing"}
    """

    def __init__(self, db: MemoryDatabase):
        self.db = db

    async def store(
        self,
        advisor_id: str,
        key: str,
        value: Any,
        expires_at: datetime | None = None
    ) -> AdvisorMemory:
        """
        Create or replace a memory entry.

        Args:
            advisor_id: Owning advisor
            key: Memory key, unique per advisor
            value: JSON-serializable value
            expires_at: When the entry stops being readable (None = never)

        Returns:
            The stored entry

        Raises:
            StorageError: If the value cannot be serialized or written
        """
        now = utc_now()
        with storage_errors(f"store advisor memory {advisor_id}:{key}"):
            await self.db.connection.execute(
                """INSERT INTO advisor_memory
                   (advisor_id, memory_key, memory_value, expires_at, updated_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(advisor_id, memory_key) DO UPDATE SET
                       memory_value = excluded.memory_value,
                       expires_at = excluded.expires_at,
                       updated_at = excluded.updated_at""",
                (
                    advisor_id,
                    key,
                    json.dumps(value),
                    to_timestamp(expires_at) if expires_at else None,
                    to_timestamp(now),
                )
            )
            await self.db.connection.commit()

        logger.debug(f"Memory stored for {advisor_id}: {key}")
        return AdvisorMemory(
            advisor_id=advisor_id,
            key=key,
            value=value,
            expires_at=from_timestamp(to_timestamp(expires_at)) if expires_at else None,
            updated_at=now,
        )

    async def get_entry(self, advisor_id: str, key: str) -> AdvisorMemory | None:
        """
        Fetch a live (unexpired) entry with its timestamps.

        Raises:
            StorageError: If the read fails
        """
        with storage_errors(f"read advisor memory {advisor_id}:{key}"):
            cursor = await self.db.connection.execute(
                """SELECT memory_value, expires_at, updated_at
                   FROM advisor_memory
                   WHERE advisor_id = ? AND memory_key = ?
                     AND (expires_at IS NULL OR expires_at > ?)""",
                (advisor_id, key, to_timestamp(utc_now()))
            )
            row = await cursor.fetchone()

            if row is None:
                return None

            return AdvisorMemory(
                advisor_id=advisor_id,
                key=key,
                value=json.loads(row[0]),
                expires_at=from_timestamp(row[1]),
                updated_at=from_timestamp(row[2]),
            )

    async def get(self, advisor_id: str, key: str) -> Any | None:
        """Return the live value for a key, or None if absent or expired."""
        entry = await self.get_entry(advisor_id, key)
        return entry.value if entry else None

    async def purge_expired(self) -> int:
        """
        Delete every entry whose expiry has passed.

        Returns:
            Number of entries deleted
        """
        with storage_errors("purge expired advisor memory"):
            cursor = await self.db.connection.execute(
                "DELETE FROM advisor_memory WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (to_timestamp(utc_now()),)
            )
            await self.db.connection.commit()
            deleted = cursor.rowcount

        if deleted > 0:
            logger.info(f"Cleaned up {deleted} expired memory entries")
        return deleted
