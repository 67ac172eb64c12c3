"""
Advisor Agent
=============

Orchestrates one advisor's reply to one message.

Message flow:
    Message for advisor X
         │
         ▼
    Load X's profile ──── unknown ────► decline
         │
         ▼
    "remember this ..."? ── yes ──► store in shared knowledge ──► confirm
         │ no
         ▼
    Retrieve relevant knowledge (fail-open)
         │
         ▼
    Resolve X's session for this thread
         │
         ▼
    Build instructions, ask the LLM
         │
         ▼
    Record exchange + last topic (best-effort)
         │
         ▼
    Reply

Failure policy:
- Knowledge retrieval failures are absorbed by KnowledgeBase.retrieve
- Session resolution and LLM failures produce a generic apology; details
  only reach the log
- Failing to record the exchange or the last topic never changes the reply
"""

from advisor_bot.agent.assistant import SessionClient
from advisor_bot.agent.context import build_instructions
from advisor_bot.errors import BotError, StorageError, UpstreamServiceError
from advisor_bot.memory.advisor_memory import AdvisorMemoryStore
from advisor_bot.memory.database import to_timestamp, utc_now
from advisor_bot.memory.detector import extract_payload, is_memory_request
from advisor_bot.memory.profile import AdvisorProfile, AdvisorRegistry
from advisor_bot.memory.threads import ThreadMapper
from advisor_bot.rag import KnowledgeBase
from advisor_bot.utils.logger import Logger

logger = Logger("Agent")

PROFILE_MISSING_MESSAGE = "Sorry, I couldn't find my profile. Please contact support."

TROUBLE_MESSAGE = (
    "Sorry, I'm having trouble processing your request right now. Please try again later."
)

REMEMBER_PROMPT_MESSAGE = (
    "I'd be happy to remember something for you! "
    "Please tell me what you'd like me to remember."
)

STORE_FAILED_MESSAGE = (
    "Sorry, I couldn't save that to our shared knowledge base right now. "
    "Please try again later."
)

LAST_TOPIC_KEY = "last_topic"


def stored_confirmation(knowledge: str) -> str:
    return (
        f'✅ I\'ve stored that in our shared knowledge base: "{knowledge}"\n\n'
        "All advisors will now have access to this information!"
    )


class AdvisorAgent:
    """
    Answers messages on behalf of the advisors.

    Example:
        agent = AdvisorAgent(registry, knowledge, threads, sessions, advisor_memory)

        reply = await agent.handle(
            advisor_id="ops",
            message="How should we staff the Q3 launch?",
            thread_id="1706700000.123456",
            source="mention"
        )
    """

    def __init__(
        self,
        registry: AdvisorRegistry,
        knowledge: KnowledgeBase,
        threads: ThreadMapper,
        sessions: SessionClient,
        advisor_memory: AdvisorMemoryStore,
        last_topic_max_length: int = 100
    ):
        """
        Args:
            registry: Advisor profiles
            knowledge: Shared knowledge base
            threads: Slack thread to session mapping
            sessions: LLM session client
            advisor_memory: Per-advisor key/value memory
            last_topic_max_length: Characters of the message kept as last topic
        """
        self.registry = registry
        self.knowledge = knowledge
        self.threads = threads
        self.sessions = sessions
        self.advisor_memory = advisor_memory
        self.last_topic_max_length = last_topic_max_length

    async def handle(
        self,
        advisor_id: str,
        message: str,
        thread_id: str,
        source: str = "mention"
    ) -> str:
        """
        Produce an advisor's reply to a message.

        Args:
            advisor_id: The advisor addressed
            message: The user's message
            thread_id: Slack thread timestamp (channel id for slash commands)
            source: Where the message came from ("mention", "dm", "slash")

        Returns:
            The reply text. Never raises for service failures.
        """
        logger.info(f"Processing {source} message for {advisor_id}", {"thread_id": thread_id})

        profile = self.registry.get_profile(advisor_id)
        if profile is None:
            logger.error(f"Advisor profile not found for: {advisor_id}")
            return PROFILE_MISSING_MESSAGE

        if is_memory_request(message):
            return await self._remember(advisor_id, message, thread_id, source)

        try:
            session_id, response = await self._answer(profile, message, thread_id)
        except (UpstreamServiceError, StorageError) as e:
            logger.error(f"Failed to answer for {advisor_id}", e, {"thread_id": thread_id})
            return TROUBLE_MESSAGE

        await self._record_exchange(session_id, message, response)
        await self._remember_topic(advisor_id, message)

        logger.info(f"Generated response ({len(response)} chars)")
        return response

    async def _answer(
        self,
        profile: AdvisorProfile,
        message: str,
        thread_id: str
    ) -> tuple[str, str]:
        """Returns the session used and the LLM response."""
        chunks = await self.knowledge.retrieve(message)
        session_id = await self.threads.resolve(profile.advisor_id, thread_id)
        instructions = build_instructions(profile, chunks)

        logger.debug(
            f"Asking LLM as {profile.advisor_id}",
            {"session_id": session_id, "context_chunks": len(chunks)}
        )
        response = await self.sessions.complete(session_id, instructions, message, profile)
        return session_id, response

    async def _remember(self, advisor_id: str, message: str, thread_id: str, source: str) -> str:
        knowledge = extract_payload(message)
        if not knowledge:
            return REMEMBER_PROMPT_MESSAGE

        try:
            await self.knowledge.store(knowledge, {
                "source": source,
                "advisor_id": advisor_id,
                "thread_id": thread_id,
                "user_request": True,
            })
        except BotError as e:
            logger.error("Failed to store shared knowledge", e)
            return STORE_FAILED_MESSAGE

        logger.info(f"Stored shared knowledge for {advisor_id}")
        return stored_confirmation(knowledge)

    async def _record_exchange(self, session_id: str, message: str, response: str) -> None:
        try:
            await self.sessions.record_exchange(session_id, message, response)
        except BotError as e:
            logger.warning(f"Could not record conversation: {e}")

    async def _remember_topic(self, advisor_id: str, message: str) -> None:
        try:
            await self.advisor_memory.store(advisor_id, LAST_TOPIC_KEY, {
                "topic": message[:self.last_topic_max_length],
                "timestamp": to_timestamp(utc_now()),
            })
        except BotError as e:
            logger.warning(f"Could not store last topic for {advisor_id}: {e}")
