"""
Embedding Generation
====================

Generates vector embeddings from text using OpenAI's embedding models.

Every chunk in the knowledge base and every query is embedded with the same
model, so their vectors are comparable by cosine similarity. Switching
OPENAI_EMBEDDING_MODEL therefore means re-ingesting the knowledge base.

Failures (rate limits, network errors, invalid input) surface as
EmbeddingError. There is no retry here: callers decide whether a failed
embedding aborts the operation (storing knowledge) or degrades it
(retrieval falls back to no context).

Caching:
    Embeddings are cached in memory, keyed by a hash of the text, so repeated
    queries do not cost another API call.
"""

import hashlib

from openai import AsyncOpenAI, OpenAIError

from advisor_bot.errors import EmbeddingError
from advisor_bot.utils.logger import Logger

logger = Logger("Embeddings")


class EmbeddingGenerator:
    """
    Generates text embeddings using OpenAI's API.

    Example:
        generator = EmbeddingGenerator(api_key="sk-...", model="text-embedding-3-small")

        vector = await generator.generate("What is Evernorth's mission?")
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        client: AsyncOpenAI | None = None
    ):
        """
        Initialize the embedding generator.

        Args:
            api_key: OpenAI API key (ignored when client is given)
            model: Embedding model to use
            client: Optional pre-built OpenAI client to share
        """
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model

        # Key: hash of text, Value: embedding vector
        self._cache: dict[str, list[float]] = {}

        logger.info(f"Embedding generator initialized with model: {model}")

    def _hash_text(self, text: str) -> str:
        return hashlib.md5(text.encode()).hexdigest()

    async def generate(self, text: str) -> list[float]:
        """
        Generate an embedding for a single text.

        Args:
            text: The text to embed

        Returns:
            Vector embedding as a list of floats

        Raises:
            EmbeddingError: If the text is empty or the API call fails
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        cache_key = self._hash_text(text)
        if cache_key in self._cache:
            logger.debug("Embedding cache hit")
            return self._cache[cache_key]

        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text
            )
        except OpenAIError as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        embedding = response.data[0].embedding
        self._cache[cache_key] = embedding

        logger.debug(f"Generated embedding (dim={len(embedding)})")
        return embedding
