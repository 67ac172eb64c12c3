"""
Slack Integration
=================

Handles all Slack-related functionality:
- Bolt app and Socket Mode handler creation
- Event handlers (mentions, DMs, per-advisor slash commands)
"""

from advisor_bot.slack.app import create_slack_app, create_socket_handler
from advisor_bot.slack.handlers import register_handlers

__all__ = ["create_slack_app", "create_socket_handler", "register_handlers"]
