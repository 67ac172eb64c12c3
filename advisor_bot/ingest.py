"""
Knowledge Ingestion CLI
=======================

Loads a text document into the shared knowledge base, then runs a few test
retrievals to show what the advisors will find.

Run with:
    python -m advisor_bot.ingest evernorth-company-data.txt

    python -m advisor_bot.ingest handbook.txt --source handbook \\
        --query "What is our vacation policy?"

Or after installing:
    advisor-bot-ingest FILE [--source NAME] [--query Q ...] [--skip-test]

Only OPENAI_API_KEY is required; Slack credentials are not needed.
"""

import argparse
import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

from openai import AsyncOpenAI

from advisor_bot.errors import BotError
from advisor_bot.rag import KnowledgeBase
from advisor_bot.rag.indexer import DocumentIndexer, IngestReport
from advisor_bot.utils.config import Config, load_config
from advisor_bot.utils.logger import Logger

logger = Logger("Ingest")

DEFAULT_FILE = "evernorth-company-data.txt"

DEFAULT_TEST_QUERIES = (
    "What is Evernorth's mission?",
    "What are our core values?",
    "Tell me about our services",
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="advisor-bot-ingest",
        description="Ingest a text document into the shared knowledge base",
    )
    parser.add_argument("file", nargs="?", default=DEFAULT_FILE, help="UTF-8 text file to ingest")
    parser.add_argument("--source", default="evernorth", help="Source name stored with every chunk")
    parser.add_argument(
        "--query",
        action="append",
        dest="queries",
        help="Test retrieval query (repeatable; defaults to a few sample questions)",
    )
    parser.add_argument("--skip-test", action="store_true", help="Skip the test retrievals")
    return parser.parse_args(argv)


def print_report(report: IngestReport) -> None:
    print(f"\nIngestion of {report.source_file} complete")
    print(f"  Stored: {report.stored}/{report.total_chunks} chunks")
    print(f"  Errors: {report.failed} chunks")


async def test_retrieval(knowledge: KnowledgeBase, query: str) -> None:
    """Print what the advisors would retrieve for a query."""
    print(f'\nTesting retrieval for: "{query}"')

    chunks = await knowledge.retrieve(query)
    print(f"Found {len(chunks)} relevant documents")

    for i, chunk in enumerate(chunks, start=1):
        print(f"\n--- Document {i} ---")
        print(f"Content: {chunk.content[:200]}...")
        print(f"Similarity: {chunk.similarity * 100:.2f}%")


async def ingest(config: Config, args: argparse.Namespace) -> IngestReport:
    # Imported here so the CLI module stays light for --help
    from advisor_bot.main import build_knowledge_base

    client = AsyncOpenAI(api_key=config.openai.api_key)
    try:
        knowledge = build_knowledge_base(config, client)
        indexer = DocumentIndexer(
            knowledge,
            chunk_size=config.knowledge.chunk_size,
            delay_seconds=config.knowledge.ingest_delay,
        )

        report = await indexer.ingest_file(Path(args.file), {
            "source": args.source,
            "type": "company_data",
            "advisor_access": "all",
            "ingested_at": datetime.now(timezone.utc).isoformat(),
        })
        print_report(report)

        if not args.skip_test:
            for query in args.queries or DEFAULT_TEST_QUERIES:
                await test_retrieval(knowledge, query)

        return report
    finally:
        await client.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = load_config(require_slack=False)
        report = asyncio.run(ingest(config, args))
    except BotError as e:
        logger.error("Ingestion failed", e)
        return 1

    return 0 if report.failed == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
