"""
Conversation History
====================

Per-session message history for the chat-completion LLM mode, where the
provider keeps no server-side session and the bot must replay recent turns
itself. (In assistant mode the provider's thread holds the history.)
"""

from dataclasses import dataclass
from datetime import datetime

from advisor_bot.memory.database import (
    MemoryDatabase,
    from_timestamp,
    storage_errors,
    to_timestamp,
    utc_now,
)
from advisor_bot.utils.logger import Logger

logger = Logger("History")


@dataclass
class ConversationTurn:
    """One message in a session."""
    session_id: str
    role: str
    content: str
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to the message format used by chat completion APIs."""
        return {"role": self.role, "content": self.content}


class ConversationHistory:
    """
    SQLite-backed message history keyed by session id.

    Example:
        history = ConversationHistory(db)
        await history.append_exchange("chat_abc", "Hi", "Hello!")
        turns = await history.recent("chat_abc", limit=10)
    """

    def __init__(self, db: MemoryDatabase):
        self.db = db

    async def append_exchange(self, session_id: str, user_message: str, response: str) -> None:
        """
        Record a user message and the reply to it.

        Raises:
            StorageError: If the write fails
        """
        created_at = to_timestamp(utc_now())
        with storage_errors(f"store conversation for session {session_id}"):
            await self.db.connection.executemany(
                """INSERT INTO conversation_history (session_id, role, content, created_at)
                   VALUES (?, ?, ?, ?)""",
                [
                    (session_id, "user", user_message, created_at),
                    (session_id, "assistant", response, created_at),
                ]
            )
            await self.db.connection.commit()

        logger.debug(f"Conversation stored for session {session_id}")

    async def recent(self, session_id: str, limit: int = 10) -> list[ConversationTurn]:
        """
        Get the most recent turns of a session, oldest first.

        Raises:
            StorageError: If the read fails
        """
        with storage_errors(f"read conversation for session {session_id}"):
            cursor = await self.db.connection.execute(
                """SELECT role, content, created_at FROM conversation_history
                   WHERE session_id = ?
                   ORDER BY id DESC
                   LIMIT ?""",
                (session_id, limit)
            )
            rows = await cursor.fetchall()

        return [
            ConversationTurn(
                session_id=session_id,
                role=row[0],
                content=row[1],
                created_at=from_timestamp(row[2]),
            )
            for row in reversed(rows)
        ]

    async def delete(self, session_id: str) -> None:
        """Remove all turns of a session."""
        with storage_errors(f"delete conversation for session {session_id}"):
            await self.db.connection.execute(
                "DELETE FROM conversation_history WHERE session_id = ?",
                (session_id,)
            )
            await self.db.connection.commit()
