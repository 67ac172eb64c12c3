"""
Advisor Bot - Multi-Advisor Slack Assistant
===========================================

A Slack bot that answers questions with an LLM, grounded in a shared,
vector-searchable knowledge base and voiced by one of several advisor
personas (North, Strategist, Ops, Content).

This package provides:
- Knowledge base: sentence-aligned chunking, embeddings, similarity search
- Session memory: Slack thread -> assistant session mapping, advisor memory
- Advisor registry: persona profiles and mention-based persona detection
- Agent: prompt assembly, LLM calls and "remember this" handling
"""

__version__ = "1.0.0"
