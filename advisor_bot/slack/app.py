"""
Slack Bolt App
==============

Creates and configures the Slack Bolt application.

The bot connects over Socket Mode: a WebSocket opened from our side, so no
public URL or webhook is needed. Events (mentions, DMs, slash commands)
arrive on that socket and are dispatched to the handlers in handlers.py.
"""

from slack_bolt.async_app import AsyncApp
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler

from advisor_bot.utils.config import SlackConfig
from advisor_bot.utils.logger import Logger

logger = Logger("SlackApp")


def create_slack_app(config: SlackConfig) -> AsyncApp:
    """
    Create the Slack Bolt app.

    Args:
        config: Slack credentials

    Returns:
        Configured AsyncApp instance
    """
    app = AsyncApp(
        token=config.bot_token,
        signing_secret=config.signing_secret,
    )

    logger.info("Slack Bolt app created")

    return app


async def create_socket_handler(app: AsyncApp, config: SlackConfig) -> AsyncSocketModeHandler:
    """
    Create a Socket Mode handler for the app.

    Args:
        app: The Bolt app instance
        config: Slack credentials (the xapp- app token opens the socket)

    Returns:
        Configured socket handler
    """
    handler = AsyncSocketModeHandler(
        app=app,
        app_token=config.app_token
    )

    logger.info("Socket Mode handler created")

    return handler
