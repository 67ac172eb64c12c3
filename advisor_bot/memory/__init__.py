"""
Session Memory
==============

Durable state the advisors keep between messages:

1. THREADS: Slack thread -> LLM session, one per advisor (thread_mappings)
2. ADVISOR MEMORY: Per-advisor key/value entries with optional expiry
3. HISTORY: Replayed conversation turns for the chat-completion mode
4. PROFILES: Advisor personas and mention-based persona detection

All SQLite-backed stores share one MemoryDatabase connection.

Usage:
    from advisor_bot.memory import MemoryDatabase, ThreadMapper, AdvisorMemoryStore

    db = MemoryDatabase(config.storage.database_path)
    await db.initialize()

    threads = ThreadMapper(db, sessions)
    session_id = await threads.resolve("north", thread_ts)

    advisor_memory = AdvisorMemoryStore(db)
    await advisor_memory.store("north", "last_topic", {"topic": "pricing"})
"""

from advisor_bot.memory.database import MemoryDatabase
from advisor_bot.memory.threads import ThreadMapper, ThreadMapping
from advisor_bot.memory.advisor_memory import AdvisorMemory, AdvisorMemoryStore
from advisor_bot.memory.history import ConversationHistory, ConversationTurn
from advisor_bot.memory.profile import AdvisorProfile, AdvisorRegistry, DEFAULT_PROFILES
from advisor_bot.memory.detector import extract_payload, is_memory_request, strip_mentions
from advisor_bot.memory.maintenance import MemoryJanitor


__all__ = [
    "MemoryDatabase",
    "ThreadMapper",
    "ThreadMapping",
    "AdvisorMemory",
    "AdvisorMemoryStore",
    "ConversationHistory",
    "ConversationTurn",
    "AdvisorProfile",
    "AdvisorRegistry",
    "DEFAULT_PROFILES",
    "MemoryJanitor",
    "extract_payload",
    "is_memory_request",
    "strip_mentions",
]
