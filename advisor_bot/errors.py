"""
Error Types
===========

Every failure the bot reasons about is one of these exceptions. Library
errors (openai, sqlite, file I/O) are converted at the module that talks to
the library, so callers only need to know this hierarchy:

    BotError
    ├── UpstreamServiceError     embedding / LLM / Slack call failed
    │   ├── EmbeddingError
    │   ├── RunFailedError       assistant run ended in a non-success state
    │   └── RunTimeoutError      assistant run did not finish before its deadline
    ├── StorageError             persistence read/write failed
    ├── NotFoundError            a required record or file is absent
    └── ValidationError          bad input or configuration
        └── ConfigError

Propagation policy:
- Retrieval failures degrade to "no context" (see KnowledgeBase.retrieve)
- Storage failures while handling "remember this" are shown to the user
- Conversation-history persistence failures are logged and swallowed
- LLM / session failures become a generic "trouble processing" reply
"""


class BotError(Exception):
    """Base class for all advisor bot errors."""


class UpstreamServiceError(BotError):
    """An external service call (OpenAI, Slack) failed."""


class EmbeddingError(UpstreamServiceError):
    """The embedding API could not produce a vector for the given text."""


class RunFailedError(UpstreamServiceError):
    """An assistant run reached a terminal status other than 'completed'."""

    def __init__(self, status: str, message: str | None = None):
        self.status = status
        super().__init__(message or f"Assistant run failed with status: {status}")


class RunTimeoutError(UpstreamServiceError):
    """An assistant run was still in progress when its deadline passed."""

    def __init__(self, run_id: str, timeout: float):
        self.run_id = run_id
        self.timeout = timeout
        super().__init__(f"Assistant run {run_id} did not finish within {timeout:.1f}s")


class StorageError(BotError):
    """A durable read or write failed."""


class NotFoundError(BotError):
    """A required record or file does not exist."""


class ValidationError(BotError):
    """Input was rejected before any side effect happened."""


class ConfigError(ValidationError):
    """Required configuration is missing or malformed."""
