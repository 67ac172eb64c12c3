"""Shared fixtures: deterministic fakes for the external services."""

import re

import pytest

from advisor_bot.agent.assistant import SessionClient
from advisor_bot.errors import EmbeddingError
from advisor_bot.memory.database import MemoryDatabase
from advisor_bot.memory.profile import AdvisorRegistry
from advisor_bot.rag import KnowledgeBase
from advisor_bot.rag.vectorstore import VectorStore

_WORD = re.compile(r"[a-z0-9']+")


class FakeEmbeddings:
    """
    Bag-of-words embedder: each distinct lowercase word gets its own axis.

    Texts sharing words get positive cosine similarity; texts sharing none
    are orthogonal.
    """

    DIMENSION = 256

    def __init__(self):
        self.vocabulary: dict[str, int] = {}
        self.calls: list[str] = []
        self.fail = False

    async def generate(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding service unavailable")
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        vector = [0.0] * self.DIMENSION
        for word in _WORD.findall(text.lower()):
            index = self.vocabulary.setdefault(word, len(self.vocabulary) % self.DIMENSION)
            vector[index] += 1.0
        return vector


class FakeSessionClient(SessionClient):
    """In-memory SessionClient recording every call."""

    def __init__(self, response: str = "Here is my advice."):
        self.response = response
        self.created: list[str] = []
        self.deleted: list[str] = []
        self.completions: list[dict] = []
        self.exchanges: list[tuple[str, str, str]] = []
        self.complete_error: Exception | None = None
        self.record_error: Exception | None = None

    async def create_session(self) -> str:
        session_id = f"session_{len(self.created) + 1}"
        self.created.append(session_id)
        return session_id

    async def delete_session(self, session_id: str) -> None:
        self.deleted.append(session_id)

    async def complete(self, session_id, instructions, question, profile) -> str:
        self.completions.append({
            "session_id": session_id,
            "instructions": instructions,
            "question": question,
            "advisor_id": profile.advisor_id,
        })
        if self.complete_error is not None:
            raise self.complete_error
        return self.response

    async def record_exchange(self, session_id, question, response) -> None:
        if self.record_error is not None:
            raise self.record_error
        self.exchanges.append((session_id, question, response))


@pytest.fixture
def embeddings():
    return FakeEmbeddings()


@pytest.fixture
def vectorstore(tmp_path):
    return VectorStore(tmp_path / "vectorstore")


@pytest.fixture
def knowledge(embeddings, vectorstore):
    return KnowledgeBase(embeddings, vectorstore, match_threshold=0.5, match_count=3)


@pytest.fixture
def sessions():
    return FakeSessionClient()


@pytest.fixture
def registry():
    return AdvisorRegistry()


@pytest.fixture
async def db(tmp_path):
    database = MemoryDatabase(tmp_path / "advisor_bot.db")
    await database.initialize()
    yield database
    await database.close()

