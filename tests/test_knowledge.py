import asyncio

import pytest

from advisor_bot.errors import EmbeddingError, StorageError
from advisor_bot.rag import KnowledgeBase, RetrievedChunk
from advisor_bot.rag.vectorstore import VectorDocument, VectorStore


async def test_store_keeps_content_and_metadata(knowledge, vectorstore):
    stored = await knowledge.store("Our office is in Denver", {"source": "mention"})

    kept = vectorstore.get(stored.id)
    assert kept.content == "Our office is in Denver"
    assert kept.metadata["source"] == "mention"
    assert "stored_at" in kept.metadata
    assert len(knowledge) == 1


async def test_concurrent_stores_are_all_persisted(knowledge, vectorstore):
    await asyncio.gather(*(knowledge.store(f"fact number {i}") for i in range(5)))

    assert len(knowledge) == 5
    assert len(VectorStore(vectorstore.storage_path)) == 5


async def test_retrieve_finds_the_relevant_chunk(knowledge):
    await knowledge.store("Evernorth's mission is simple healthcare", {"source": "evernorth"})
    await knowledge.store("The office is in Denver", {"source": "evernorth"})

    chunks = await knowledge.retrieve("What is Evernorth's mission?")

    assert [c.content for c in chunks] == ["Evernorth's mission is simple healthcare"]
    assert chunks[0].similarity >= 0.5
    assert chunks[0].metadata["source"] == "evernorth"


async def test_retrieve_respects_count_and_threshold(knowledge):
    for i in range(5):
        await knowledge.store(f"pricing plan tier {i}")

    chunks = await knowledge.retrieve("pricing plan", threshold=0.1, count=2)
    assert len(chunks) == 2
    assert chunks[0].similarity >= chunks[1].similarity

    assert await knowledge.retrieve("pricing plan", threshold=0.99) == []


async def test_retrieve_on_empty_knowledge_base(knowledge):
    assert await knowledge.retrieve("anything at all") == []


async def test_retrieve_fails_open_on_embedding_error(knowledge, embeddings):
    await knowledge.store("The office is in Denver")
    embeddings.fail = True

    assert await knowledge.retrieve("Where is the office?") == []


async def test_retrieve_fails_open_on_index_error(knowledge, vectorstore):
    # A vector of another dimension makes every query mismatch
    vectorstore.add(VectorDocument(id="odd", content="odd", embedding=[1.0, 0.0, 0.0]))

    assert await knowledge.retrieve("Where is the office?") == []


async def test_store_propagates_embedding_errors(knowledge, embeddings):
    embeddings.fail = True

    with pytest.raises(EmbeddingError):
        await knowledge.store("The office is in Denver")

    assert len(knowledge) == 0


async def test_store_propagates_storage_errors(knowledge, vectorstore):
    vectorstore.add(VectorDocument(id="odd", content="odd", embedding=[1.0, 0.0, 0.0]))

    with pytest.raises(StorageError):
        await knowledge.store("The office is in Denver")


def test_format_context_numbers_chunks():
    chunks = [RetrievedChunk("First fact", 0.9), RetrievedChunk("Second fact", 0.8)]

    assert KnowledgeBase.format_context(chunks) == "1. First fact\n2. Second fact"
    assert KnowledgeBase.format_context([]) == ""
