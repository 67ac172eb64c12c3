"""
Agent System
============

The advisors' brain. It:
1. Receives a message addressed to one advisor
2. Stores "remember this" requests in the shared knowledge base
3. Otherwise assembles instructions from the advisor's persona and
   retrieved knowledge
4. Asks the LLM within the advisor's session for the thread
5. Records the exchange

This module provides:
- AdvisorAgent: Orchestrates one advisor's reply
- SessionClient: LLM session backends (Assistants threads or chat completions)
- build_instructions: Builds the prompt from persona and knowledge
"""

from advisor_bot.agent.core import AdvisorAgent
from advisor_bot.agent.context import build_instructions
from advisor_bot.agent.assistant import (
    AssistantSessionClient,
    ChatSessionClient,
    SessionClient,
)

__all__ = [
    "AdvisorAgent",
    "build_instructions",
    "SessionClient",
    "AssistantSessionClient",
    "ChatSessionClient",
]
