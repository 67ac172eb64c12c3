"""
Memory Database
===============

One SQLite database (via aiosqlite) holds the bot's durable session state:

    thread_mappings       (advisor_id, external_thread_id) -> session_id
    advisor_memory        (advisor_id, memory_key) -> JSON value, optional expiry
    conversation_history  per-session turns for the chat-completion LLM mode

The connection is opened once at startup, shared by the stores that need it,
and closed on shutdown.

Timestamps are stored as UTC ISO-8601 strings with a fixed format, so string
comparison in SQL orders them correctly.

Usage:
    db = MemoryDatabase(Path("data/advisor_bot.db"))
    await db.initialize()
    ...
    await db.close()
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from advisor_bot.errors import StorageError
from advisor_bot.utils.logger import Logger

logger = Logger("MemoryDB")

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS thread_mappings (
        advisor_id TEXT NOT NULL,
        external_thread_id TEXT NOT NULL,
        session_id TEXT NOT NULL,
        conversation_context TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL,
        PRIMARY KEY (advisor_id, external_thread_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS advisor_memory (
        advisor_id TEXT NOT NULL,
        memory_key TEXT NOT NULL,
        memory_value TEXT NOT NULL,
        expires_at TEXT,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (advisor_id, memory_key)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_advisor_memory_expires_at
    ON advisor_memory(expires_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS conversation_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_conversation_history_session
    ON conversation_history(session_id, id)
    """,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime) -> str:
    """
    Serialize a datetime as a sortable UTC string.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@contextmanager
def storage_errors(action: str):
    """Convert sqlite failures inside the block into StorageError."""
    try:
        yield
    except (aiosqlite.Error, TypeError, ValueError) as e:
        raise StorageError(f"Failed to {action}: {e}") from e


class MemoryDatabase:
    """
    Owns the shared aiosqlite connection and the schema.

    Stores call `db.connection` for queries; it raises StorageError if the
    database was never initialized (or was already closed).
    """

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """
        Open the connection and create tables if needed.

        Raises:
            StorageError: If the database cannot be opened or migrated
        """
        if self._db is not None:
            return

        if self.db_path != ":memory:":
            try:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Cannot create database directory: {e}") from e

        with storage_errors("open memory database"):
            self._db = await aiosqlite.connect(self.db_path)
            for statement in SCHEMA:
                await self._db.execute(statement)
            await self._db.commit()

        logger.info(f"Memory database initialized at {self.db_path}")

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError("Memory database is not initialized")
        return self._db

    async def close(self) -> None:
        """Close the database connection."""
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.debug("Memory database closed")
