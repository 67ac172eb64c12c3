"""
Document Indexer
================

Ingests text documents into the shared knowledge base.

The indexer:
1. Reads a UTF-8 text file
2. Splits it into sentence-aligned chunks
3. Embeds and stores each chunk with provenance metadata

Ingestion Strategy:
- Chunks are stored one at a time, with a short pause between them to stay
  under the embedding API's rate limits (a throttle, not a retry)
- A chunk that fails is logged and counted; the rest of the file continues
- Every chunk carries its source file, position and size, so answers can be
  traced back to the document they came from
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from advisor_bot.errors import BotError, NotFoundError, StorageError
from advisor_bot.rag import KnowledgeBase
from advisor_bot.rag.chunker import split_into_chunks, DEFAULT_CHUNK_SIZE
from advisor_bot.utils.logger import Logger

logger = Logger("Indexer")


@dataclass
class IngestReport:
    """Outcome of ingesting one document."""
    source_file: str
    total_chunks: int = 0
    stored: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class DocumentIndexer:
    """
    Indexes documents into the knowledge base.

    Example:
        indexer = DocumentIndexer(knowledge_base, chunk_size=800, delay_seconds=0.1)

        report = await indexer.ingest_file(
            Path("evernorth-company-data.txt"),
            {"source": "evernorth", "advisor_access": "all"}
        )
        print(f"Stored {report.stored}/{report.total_chunks} chunks")
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        delay_seconds: float = 0.1
    ):
        """
        Args:
            knowledge_base: Where chunks are stored
            chunk_size: Maximum characters per chunk
            delay_seconds: Pause between successive chunks
        """
        self.knowledge_base = knowledge_base
        self.chunk_size = chunk_size
        self.delay_seconds = delay_seconds

    async def ingest_file(
        self,
        path: Path,
        metadata: dict[str, Any] | None = None
    ) -> IngestReport:
        """
        Ingest a single text file.

        Args:
            path: The file to read
            metadata: Metadata applied to every chunk (source, access scope...)

        Returns:
            IngestReport with stored/failed counts

        Raises:
            NotFoundError: If the file does not exist
            StorageError: If the file cannot be read
        """
        logger.info(f"Reading file: {path}")

        if not path.is_file():
            raise NotFoundError(f"File not found: {path}")

        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

        logger.info(f"File size: {len(content)} characters")
        return await self.ingest_text(content, str(path), metadata)

    async def ingest_text(
        self,
        content: str,
        source_file: str,
        metadata: dict[str, Any] | None = None
    ) -> IngestReport:
        """
        Chunk and store raw text.

        Args:
            content: The document text
            source_file: Name recorded in each chunk's metadata
            metadata: Metadata applied to every chunk

        Returns:
            IngestReport with stored/failed counts
        """
        chunks = split_into_chunks(content, self.chunk_size)
        report = IngestReport(source_file=source_file, total_chunks=len(chunks))
        ingested_at = datetime.now(timezone.utc).isoformat()

        logger.info(f"Split into {len(chunks)} chunks")

        for i, chunk in enumerate(chunks):
            logger.debug(f"Processing chunk {i + 1}/{len(chunks)} ({len(chunk)} chars)")

            chunk_metadata = {
                **(metadata or {}),
                "chunk_index": i,
                "total_chunks": len(chunks),
                "source_file": source_file,
                "chunk_size": len(chunk),
                "ingested_at": ingested_at,
            }

            try:
                await self.knowledge_base.store(chunk, chunk_metadata)
                report.stored += 1
            except BotError as e:
                logger.error(f"Error storing chunk {i + 1}", e)
                report.failed += 1
                report.errors.append(f"chunk {i + 1}: {e}")

            if self.delay_seconds > 0 and i < len(chunks) - 1:
                await asyncio.sleep(self.delay_seconds)

        logger.info(
            f"Ingestion complete for {source_file}",
            {"stored": report.stored, "failed": report.failed}
        )
        return report
