"""
Advisor Bot - Main Entry Point
==============================

This is the main entry point for the bot. It:
1. Loads configuration
2. Builds the services (knowledge base, session memory, LLM sessions, agent)
3. Sets up Slack handlers
4. Starts the maintenance scheduler and the Socket Mode connection

One entry point serves both deployments: with MULTI_ADVISOR=true the bot
answers as North, Strategist, Ops and Content; with MULTI_ADVISOR=false only
the default advisor answers.

Run with:
    python -m advisor_bot.main

Or after installing:
    advisor-bot
"""

import asyncio
import signal
import sys
from dataclasses import dataclass

from openai import AsyncOpenAI

from advisor_bot.agent import AdvisorAgent, AssistantSessionClient, ChatSessionClient, SessionClient
from advisor_bot.memory import (
    AdvisorMemoryStore,
    AdvisorRegistry,
    ConversationHistory,
    MemoryDatabase,
    MemoryJanitor,
    ThreadMapper,
)
from advisor_bot.rag import EmbeddingGenerator, KnowledgeBase, VectorStore
from advisor_bot.utils.config import Config, get_config
from advisor_bot.utils.logger import Logger

main_logger = Logger("Main")


@dataclass
class Services:
    """Everything the bot runs on, built once at startup and closed on shutdown."""
    config: Config
    openai: AsyncOpenAI
    db: MemoryDatabase
    knowledge: KnowledgeBase
    registry: AdvisorRegistry
    advisor_memory: AdvisorMemoryStore
    threads: ThreadMapper
    sessions: SessionClient
    agent: AdvisorAgent
    janitor: MemoryJanitor

    async def close(self) -> None:
        self.janitor.stop()
        await self.db.close()
        await self.openai.close()


def build_knowledge_base(config: Config, client: AsyncOpenAI) -> KnowledgeBase:
    """Knowledge base over the on-disk vector store."""
    embeddings = EmbeddingGenerator(model=config.openai.embedding_model, client=client)
    vectorstore = VectorStore(config.storage.vectorstore_path)
    return KnowledgeBase(
        embeddings,
        vectorstore,
        match_threshold=config.knowledge.match_threshold,
        match_count=config.knowledge.match_count,
    )


def build_session_client(config: Config, client: AsyncOpenAI, db: MemoryDatabase) -> SessionClient:
    """LLM session backend for the configured LLM_MODE."""
    if config.openai.llm_mode == "chat":
        return ChatSessionClient(client, config.openai.model, ConversationHistory(db))

    return AssistantSessionClient(
        client,
        config.openai.assistant_id,
        poll_interval=config.openai.poll_interval,
        run_timeout=config.openai.run_timeout,
    )


async def build_services(config: Config) -> Services:
    """
    Construct and wire all services.

    Raises:
        StorageError: If the memory database or vector store cannot be opened
        ConfigError: If the advisor profiles file is invalid
    """
    client = AsyncOpenAI(api_key=config.openai.api_key)

    main_logger.info("Initializing memory database...")
    db = MemoryDatabase(config.storage.database_path)
    await db.initialize()

    main_logger.info("Initializing knowledge base...")
    knowledge = build_knowledge_base(config, client)

    registry = AdvisorRegistry.from_file(
        config.advisors.profiles_file,
        default_advisor=config.advisors.default_advisor,
    )
    advisor_memory = AdvisorMemoryStore(db)
    sessions = build_session_client(config, client, db)
    threads = ThreadMapper(db, sessions)

    agent = AdvisorAgent(
        registry=registry,
        knowledge=knowledge,
        threads=threads,
        sessions=sessions,
        advisor_memory=advisor_memory,
        last_topic_max_length=config.advisors.last_topic_max_length,
    )
    janitor = MemoryJanitor(advisor_memory, config.storage.purge_interval_minutes)

    main_logger.info(
        "Services ready",
        {"llm_mode": config.openai.llm_mode, "advisors": registry.list_advisors()}
    )

    return Services(
        config=config,
        openai=client,
        db=db,
        knowledge=knowledge,
        registry=registry,
        advisor_memory=advisor_memory,
        threads=threads,
        sessions=sessions,
        agent=agent,
        janitor=janitor,
    )


async def main():
    """
    Main async entry point.

    Initializes all components and runs the bot until SIGINT/SIGTERM.
    """
    main_logger.info("Starting Advisor Bot...")

    services = None
    try:
        # 1. Load configuration
        # This validates that all required env vars are set
        main_logger.info("Loading configuration...")
        config = get_config()

        # 2. Build services
        services = await build_services(config)

        # 3. Create Slack app and register handlers
        main_logger.info("Creating Slack app...")
        from advisor_bot.slack import create_slack_app, create_socket_handler, register_handlers
        app = create_slack_app(config.slack)
        register_handlers(
            app,
            services.agent,
            services.registry,
            multi_advisor=config.advisors.multi_advisor,
        )

        # 4. Start the maintenance scheduler
        services.janitor.start()

        # 5. Connect via Socket Mode
        main_logger.info("Starting Socket Mode connection...")
        handler = await create_socket_handler(app, config.slack)

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        await handler.connect_async()
        main_logger.info("Advisor Bot is running! Press Ctrl+C to stop.")
        await stop.wait()

        main_logger.info("Shutting down...")
        await handler.close_async()

    except KeyboardInterrupt:
        main_logger.info("Received interrupt signal")
    except Exception as e:
        main_logger.error("Failed to start bot", e)
        sys.exit(1)
    finally:
        if services is not None:
            await services.close()
            main_logger.info("Shutdown complete")


def run():
    """
    Synchronous entry point.

    This is called when running with `advisor-bot` command.
    """
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
