"""
Knowledge Base (RAG)
====================

The shared knowledge base every advisor draws on. Facts arrive either from
document ingestion (see indexer.py) or from users asking the bot to
"remember" something, and are retrieved by semantic similarity when a
question comes in.

Components:
- chunker.py: Split documents into sentence-aligned chunks
- embeddings.py: Generate vector embeddings from text
- vectorstore.py: Store vectors and search them by cosine similarity
- indexer.py: Ingest files into the knowledge base

How retrieval works:
1. The question is embedded with the same model as the stored chunks
2. The vector store returns chunks whose similarity clears the threshold
3. The best few are numbered and placed into the advisor's prompt

Failure policy:
    Storing knowledge fails loudly (the user asked for it and must know).
    Retrieval fails open: if the embedding call or the index errors, the
    error is logged and the question is answered without context.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from advisor_bot.errors import BotError
from advisor_bot.rag.chunker import split_into_chunks, DEFAULT_CHUNK_SIZE
from advisor_bot.rag.embeddings import EmbeddingGenerator
from advisor_bot.rag.vectorstore import VectorStore, VectorDocument
from advisor_bot.utils.logger import Logger

logger = Logger("KnowledgeBase")

DEFAULT_MATCH_THRESHOLD = 0.7
DEFAULT_MATCH_COUNT = 3


@dataclass
class RetrievedChunk:
    """
    A single retrieval result.

    Attributes:
        content: The chunk text
        similarity: Cosine similarity to the query (higher is closer)
        metadata: Provenance stored with the chunk
    """
    content: str
    similarity: float
    metadata: dict[str, Any] = field(default_factory=dict)


class KnowledgeBase:
    """
    Main interface for storing and retrieving knowledge.

    Example:
        kb = KnowledgeBase(embeddings, vectorstore)

        await kb.store("Our office is in Denver", {"source": "mention"})

        for chunk in await kb.retrieve("Where is the office?"):
            print(f"{chunk.similarity:.2f} {chunk.content}")
    """

    def __init__(
        self,
        embeddings: EmbeddingGenerator,
        vectorstore: VectorStore,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
        match_count: int = DEFAULT_MATCH_COUNT
    ):
        """
        Args:
            embeddings: Embedding generator shared by storage and queries
            vectorstore: Vector index holding the chunks
            match_threshold: Default minimum similarity for retrieve()
            match_count: Default maximum results for retrieve()
        """
        self.embeddings = embeddings
        self.vectorstore = vectorstore
        self.match_threshold = match_threshold
        self.match_count = match_count
        # Serializes writes; each one rewrites the store files in a worker thread
        self._write_lock = asyncio.Lock()

        logger.info(
            "Knowledge base initialized",
            {"chunks": len(vectorstore), "threshold": match_threshold, "count": match_count}
        )

    async def store(
        self,
        content: str,
        metadata: dict[str, Any] | None = None
    ) -> VectorDocument:
        """
        Embed and persist one chunk of knowledge.

        Args:
            content: The text to store
            metadata: Provenance to keep with it

        Returns:
            The stored document

        Raises:
            EmbeddingError: If the embedding call fails
            StorageError: If the write fails
        """
        logger.info(f"Storing knowledge: {content[:100]}")

        embedding = await self.embeddings.generate(content)

        document = VectorDocument(
            id=str(uuid.uuid4()),
            content=content,
            embedding=embedding,
            metadata={
                **(metadata or {}),
                "stored_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        async with self._write_lock:
            await asyncio.to_thread(self.vectorstore.add, document)

        logger.debug(f"Stored knowledge chunk {document.id}")
        return document

    async def retrieve(
        self,
        query: str,
        threshold: float | None = None,
        count: int | None = None
    ) -> list[RetrievedChunk]:
        """
        Find stored chunks relevant to a query.

        Never raises: any failure yields an empty list (fail-open).

        Args:
            query: The user's question
            threshold: Minimum similarity, inclusive (default from config)
            count: Maximum results (default from config)

        Returns:
            At most `count` chunks with similarity >= threshold, best first
        """
        threshold = self.match_threshold if threshold is None else threshold
        count = self.match_count if count is None else count

        logger.debug(f"Retrieving knowledge for: '{query[:50]}'")
        chunks = await self._retrieve_or_empty(query, threshold, count)
        logger.debug(f"Found {len(chunks)} relevant chunks")
        return chunks

    async def _retrieve_or_empty(
        self,
        query: str,
        threshold: float,
        count: int
    ) -> list[RetrievedChunk]:
        # Fail-open policy point: retrieval errors become "no context"
        try:
            query_embedding = await self.embeddings.generate(query)
            documents = self.vectorstore.search(
                query_vector=query_embedding,
                top_k=count,
                threshold=threshold
            )
        except BotError as e:
            logger.error("Knowledge retrieval failed, continuing without context", e)
            return []

        return [
            RetrievedChunk(content=doc.content, similarity=doc.score or 0.0, metadata=doc.metadata)
            for doc in documents
        ]

    @staticmethod
    def format_context(chunks: list[RetrievedChunk]) -> str:
        """
        Format retrieved chunks as a numbered list for the prompt.

        Returns:
            "1. first chunk\\n2. second chunk", or "" when there are none
        """
        return "\n".join(f"{i}. {chunk.content}" for i, chunk in enumerate(chunks, start=1))

    def __len__(self) -> int:
        return len(self.vectorstore)


__all__ = [
    "KnowledgeBase",
    "RetrievedChunk",
    "EmbeddingGenerator",
    "VectorStore",
    "VectorDocument",
    "split_into_chunks",
    "DEFAULT_CHUNK_SIZE",
]
