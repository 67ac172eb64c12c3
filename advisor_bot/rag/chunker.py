"""
Text Chunking
=============

Splits documents into sentence-aligned chunks small enough to embed.

Strategy (greedy, single pass):
1. Split the text into sentences on runs of '.', '!' and '?'
2. Trim each sentence and drop empty fragments
3. Pack whole sentences into the current chunk, joined by a single space,
   until the next sentence would push it past max_chunk_size
4. Start a new chunk with that sentence

A sentence longer than max_chunk_size is never split; it becomes its own
oversized chunk. The sentence terminators themselves are not kept.

Example:
    >>> split_into_chunks("One. Two! Three?", max_chunk_size=8)
    ['One Two', 'Three']
"""

import re

from advisor_bot.errors import ValidationError

DEFAULT_CHUNK_SIZE = 800

_SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


def split_sentences(text: str) -> list[str]:
    """Split text on sentence terminators, returning trimmed non-empty sentences."""
    return [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]


def split_into_chunks(text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """
    Split text into chunks of at most max_chunk_size characters.

    Args:
        text: The raw document text
        max_chunk_size: Maximum characters per chunk

    Returns:
        Chunks in source order; empty list for empty input

    Raises:
        ValidationError: If max_chunk_size is not positive
    """
    if max_chunk_size < 1:
        raise ValidationError(f"max_chunk_size must be positive, got {max_chunk_size}")

    chunks: list[str] = []
    current = ""

    for sentence in split_sentences(text):
        if len(current) + len(sentence) + 1 <= max_chunk_size:
            current = f"{current} {sentence}" if current else sentence
        else:
            if current:
                chunks.append(current)
            current = sentence

    if current:
        chunks.append(current)

    return chunks
