"""
Prompt Assembly
===============

Builds the instructions an advisor answers with:

    {system_prompt}

    You are {display_name}, {description}

    Relevant information from our shared knowledge base:

    1. {chunk}
    2. {chunk}

    Use this information to provide accurate responses. If the user asks ...

The knowledge block (and the instruction that goes with it) only appears
when retrieval found something.
"""

from advisor_bot.memory.profile import AdvisorProfile
from advisor_bot.rag import KnowledgeBase, RetrievedChunk

KNOWLEDGE_HEADER = "Relevant information from our shared knowledge base:"

FALLBACK_INSTRUCTION = (
    "Use this information to provide accurate responses. If the user asks about "
    "something not covered in this context, use your general knowledge and expertise."
)


def build_instructions(profile: AdvisorProfile, chunks: list[RetrievedChunk]) -> str:
    """
    Combine an advisor's persona with retrieved knowledge.

    Args:
        profile: The answering advisor
        chunks: Retrieved knowledge, most relevant first (may be empty)

    Returns:
        The system prompt for the LLM
    """
    prompt = f"{profile.system_prompt}\n\nYou are {profile.display_name}, {profile.description}"

    if chunks:
        prompt += f"\n\n{KNOWLEDGE_HEADER}\n\n{KnowledgeBase.format_context(chunks)}"
        prompt += f"\n\n{FALLBACK_INSTRUCTION}"

    return prompt
