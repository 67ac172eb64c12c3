"""
LLM Session Clients
===================

An advisor's conversation with the LLM lives in a "session". Two backends
implement the same SessionClient interface, selected by LLM_MODE:

    assistant   OpenAI Assistants API. A session is a remote thread; each
                question is appended to it and answered by a run that is
                polled until it reaches a terminal state.
    chat        Chat completions. A session is a local id; recent turns are
                kept in the conversation_history table and replayed with
                every request.

Run lifecycle (assistant mode):

    queued ──► in_progress ──► completed        → read newest message
                    │
                    ├──► failed / expired / cancelled / requires_action
                    │                             → RunFailedError
                    └──► still pending at deadline
                                                  → cancel run, RunTimeoutError
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from openai import AsyncOpenAI, OpenAIError

from advisor_bot.errors import RunFailedError, RunTimeoutError, UpstreamServiceError
from advisor_bot.utils.logger import Logger

if TYPE_CHECKING:
    from advisor_bot.memory.history import ConversationHistory
    from advisor_bot.memory.profile import AdvisorProfile

logger = Logger("Sessions")

EMPTY_RESPONSE = "I received your message but couldn't generate a response."

PENDING_RUN_STATUSES = frozenset({"queued", "in_progress", "cancelling"})


class SessionClient(ABC):
    """Creates LLM sessions and answers questions inside them."""

    @abstractmethod
    async def create_session(self) -> str:
        """Start a new session and return its id."""

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """Remove a session that will never be used."""

    @abstractmethod
    async def complete(
        self,
        session_id: str,
        instructions: str,
        question: str,
        profile: "AdvisorProfile"
    ) -> str:
        """
        Answer a question within a session.

        Args:
            session_id: Session from create_session
            instructions: Assembled system prompt (persona + knowledge context)
            question: The user's question
            profile: Advisor answering (sampling settings)

        Returns:
            The response text

        Raises:
            UpstreamServiceError: If the LLM call fails, times out or
                ends in a non-success state
        """

    @abstractmethod
    async def record_exchange(self, session_id: str, question: str, response: str) -> None:
        """Persist a question and its answer into the session history."""


# =============================================================================
# Assistants API
# =============================================================================

class AssistantSessionClient(SessionClient):
    """
    Sessions backed by OpenAI Assistants threads.

    Example:
        sessions = AssistantSessionClient(AsyncOpenAI(), "asst_123")
        thread_id = await sessions.create_session()
        answer = await sessions.complete(thread_id, prompt, "What's our runway?", profile)
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        assistant_id: str,
        poll_interval: float = 1.0,
        run_timeout: float = 60.0
    ):
        """
        Args:
            client: OpenAI client
            assistant_id: Assistant that runs on every thread
            poll_interval: Seconds between run status checks
            run_timeout: Seconds before a pending run is abandoned
        """
        self.client = client
        self.assistant_id = assistant_id
        self.poll_interval = poll_interval
        self.run_timeout = run_timeout

    async def create_session(self) -> str:
        try:
            thread = await self.client.beta.threads.create()
        except OpenAIError as e:
            raise UpstreamServiceError(f"Failed to create assistant thread: {e}") from e

        logger.debug(f"Created assistant thread {thread.id}")
        return thread.id

    async def delete_session(self, session_id: str) -> None:
        try:
            await self.client.beta.threads.delete(session_id)
        except OpenAIError as e:
            raise UpstreamServiceError(f"Failed to delete assistant thread {session_id}: {e}") from e

        logger.debug(f"Deleted assistant thread {session_id}")

    async def complete(
        self,
        session_id: str,
        instructions: str,
        question: str,
        profile: "AdvisorProfile"
    ) -> str:
        try:
            await self.client.beta.threads.messages.create(
                session_id,
                role="user",
                content=f"Context: {instructions}\n\nUser Question: {question}"
            )
            run = await self.client.beta.threads.runs.create(
                thread_id=session_id,
                assistant_id=self.assistant_id
            )
            logger.debug(f"Started run {run.id} on thread {session_id}")

            status = await self._wait_for_run(session_id, run.id)
            if status != "completed":
                raise RunFailedError(status)

            messages = await self.client.beta.threads.messages.list(
                session_id,
                order="desc",
                limit=1
            )
        except OpenAIError as e:
            raise UpstreamServiceError(f"Assistant request failed: {e}") from e

        return self._latest_text(messages.data)

    async def _wait_for_run(self, session_id: str, run_id: str) -> str:
        """Poll a run until it leaves the pending states; returns the final status."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.run_timeout

        run = await self.client.beta.threads.runs.retrieve(run_id, thread_id=session_id)
        while run.status in PENDING_RUN_STATUSES:
            if loop.time() >= deadline:
                await self._cancel_run(session_id, run_id)
                raise RunTimeoutError(run_id, self.run_timeout)

            await asyncio.sleep(self.poll_interval)
            run = await self.client.beta.threads.runs.retrieve(run_id, thread_id=session_id)

        logger.debug(f"Run {run_id} finished with status {run.status}")
        return run.status

    async def _cancel_run(self, session_id: str, run_id: str) -> None:
        try:
            await self.client.beta.threads.runs.cancel(run_id, thread_id=session_id)
        except OpenAIError as e:
            logger.warning(f"Could not cancel run {run_id}: {e}")

    @staticmethod
    def _latest_text(messages: list) -> str:
        if not messages:
            return EMPTY_RESPONSE

        for part in messages[0].content or []:
            text = getattr(part, "text", None)
            if text is not None and text.value:
                return text.value

        return EMPTY_RESPONSE

    async def record_exchange(self, session_id: str, question: str, response: str) -> None:
        # The run already appended the question and its answer to the thread
        logger.debug(f"Exchange recorded on thread {session_id}")


# =============================================================================
# Chat Completions
# =============================================================================

class ChatSessionClient(SessionClient):
    """
    Sessions kept locally, answered with single chat completions.

    Each request sends the system prompt, the session's recent turns and
    the new question.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        history: "ConversationHistory",
        history_limit: int = 10
    ):
        self.client = client
        self.model = model
        self.history = history
        self.history_limit = history_limit

    async def create_session(self) -> str:
        return f"chat_{uuid.uuid4().hex}"

    async def delete_session(self, session_id: str) -> None:
        await self.history.delete(session_id)

    async def complete(
        self,
        session_id: str,
        instructions: str,
        question: str,
        profile: "AdvisorProfile"
    ) -> str:
        turns = await self.history.recent(session_id, limit=self.history_limit)

        messages = [{"role": "system", "content": instructions}]
        messages.extend(turn.to_dict() for turn in turns)
        messages.append({"role": "user", "content": question})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=profile.temperature,
                max_tokens=profile.max_tokens
            )
        except OpenAIError as e:
            raise UpstreamServiceError(f"Chat completion failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        return content or EMPTY_RESPONSE

    async def record_exchange(self, session_id: str, question: str, response: str) -> None:
        await self.history.append_exchange(session_id, question, response)
