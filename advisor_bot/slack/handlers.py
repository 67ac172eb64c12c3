"""
Slack Event Handlers
====================

Routes Slack events to the advisors.

Event Types:
- app_mention: "@north what's our pricing?" in a channel. With
  MULTI_ADVISOR on, the advisor is picked from the mention tokens
  (@strategist, @ops, @content, @north)
- message.im: Direct messages, always answered by the default advisor
- /<advisor>: One slash command per advisor (/north, /ops, ...)

Replies:
- Mentions are answered in the thread of the triggering message
- DMs are answered in the conversation
- Slash commands answer in_channel; greetings and errors are ephemeral

Sessions:
    Mentions and DMs key the advisor's session by Slack thread timestamp,
    so each thread is its own conversation. Slash commands have no thread
    and use the channel id instead.
"""

from slack_bolt.async_app import AsyncAck, AsyncApp, AsyncRespond, AsyncSay

from advisor_bot.agent.core import TROUBLE_MESSAGE, AdvisorAgent
from advisor_bot.memory.detector import strip_mentions
from advisor_bot.memory.profile import AdvisorRegistry
from advisor_bot.utils.logger import Logger

logger = Logger("Handlers")


def register_handlers(
    app: AsyncApp,
    agent: AdvisorAgent,
    registry: AdvisorRegistry,
    multi_advisor: bool = True
) -> None:
    """
    Register all event handlers with the Slack app.

    Args:
        app: The Bolt app instance
        agent: Agent answering on behalf of the advisors
        registry: Advisor profiles (persona detection, greetings)
        multi_advisor: Detect advisors from mentions and register one slash
            command per advisor; otherwise only the default advisor answers
    """

    async def handle_mention(event: dict, say: AsyncSay) -> None:
        text = event.get("text", "")
        thread_ts = event.get("thread_ts") or event.get("ts")

        advisor_id = registry.detect_advisor(text) if multi_advisor else registry.default_advisor
        question = strip_mentions(text)

        logger.info(f"Mention for {advisor_id} in {event.get('channel')}: {question[:50]}")

        if not question:
            await say(text=registry.greeting(advisor_id), thread_ts=thread_ts)
            return

        try:
            response = await agent.handle(advisor_id, question, thread_ts, source="mention")
            await say(text=response, thread_ts=thread_ts)
        except Exception as e:
            logger.error("Error handling mention", e)
            await say(text=TROUBLE_MESSAGE, thread_ts=thread_ts)

    async def handle_message(event: dict, say: AsyncSay) -> None:
        # Only handle DMs (channel_type == "im")
        if event.get("channel_type") != "im":
            return

        # Ignore bot messages (including our own) and subtypes (edits, deletes, ...)
        if event.get("bot_id") or event.get("subtype"):
            return

        advisor_id = registry.default_advisor
        question = (event.get("text") or "").strip()
        thread_ts = event.get("thread_ts") or event.get("ts")

        if not question:
            await say(text=registry.greeting(advisor_id))
            return

        logger.info(f"DM from {event.get('user')}: {question[:50]}")

        try:
            response = await agent.handle(advisor_id, question, thread_ts, source="dm")
            await say(text=response)
        except Exception as e:
            logger.error("Error handling DM", e)
            await say(text=TROUBLE_MESSAGE)

    app.event("app_mention")(handle_mention)
    app.event("message")(handle_message)

    advisor_ids = registry.list_advisors() if multi_advisor else [registry.default_advisor]
    for advisor_id in advisor_ids:
        app.command(f"/{advisor_id}")(_command_handler(agent, registry, advisor_id))

    logger.info("Registered Slack event handlers", {"commands": [f"/{a}" for a in advisor_ids]})


def _command_handler(agent: AdvisorAgent, registry: AdvisorRegistry, advisor_id: str):
    """Build the slash command handler for one advisor."""

    async def handle_command(ack: AsyncAck, command: dict, respond: AsyncRespond) -> None:
        # Acknowledge immediately (Slack requires it within 3 seconds)
        await ack()

        question = (command.get("text") or "").strip()

        if not question:
            await respond(text=registry.greeting(advisor_id), response_type="ephemeral")
            return

        logger.info(f"/{advisor_id} from {command.get('user_id')}: {question[:50]}")

        try:
            response = await agent.handle(
                advisor_id,
                question,
                command.get("channel_id"),
                source="slash"
            )
            await respond(text=response, response_type="in_channel")
        except Exception as e:
            logger.error(f"Error handling /{advisor_id} command", e)
            await respond(text=TROUBLE_MESSAGE, response_type="ephemeral")

    return handle_command
