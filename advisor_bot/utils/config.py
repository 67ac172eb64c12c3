"""
Configuration Management
========================

All environment variables the bot reads are validated and typed here.
Values are loaded from the process environment, with a `.env` file (located
by python-dotenv) filling in anything unset.

Only the entry points (main.py, ingest.py) call get_config(). Every service
receives the values it needs through its constructor, so tests can build
services directly without touching the environment.

Usage:
    from advisor_bot.utils.config import get_config

    config = get_config()
    print(config.openai.model)
    print(config.knowledge.match_threshold)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from advisor_bot.errors import ConfigError


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ConfigError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ConfigError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your .env file."
        )
    return value


def _optional(name: str, default: str) -> str:
    """Get an optional environment variable with a default."""
    return os.getenv(name, default)


def _optional_int(name: str, default: int) -> int:
    """
    Get an optional integer environment variable.

    Raises:
        ConfigError: If the variable is set but not an integer
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got: {value!r}") from None


def _optional_float(name: str, default: float) -> float:
    """
    Get an optional float environment variable.

    Raises:
        ConfigError: If the variable is set but not a number
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got: {value!r}") from None


def _optional_bool(name: str, default: bool) -> bool:
    """True if the value is 'true' (case-insensitive), False otherwise."""
    value = os.getenv(name)
    if not value:
        return default
    return value.lower() == "true"


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class SlackConfig:
    """Slack API configuration."""
    bot_token: str       # xoxb-... token for bot operations
    app_token: str       # xapp-... token for Socket Mode
    signing_secret: str  # For verifying Slack requests


@dataclass(frozen=True)
class OpenAIConfig:
    """OpenAI API configuration."""
    api_key: str
    model: str                 # Chat model (chat mode)
    embedding_model: str
    assistant_id: str | None   # Assistant to run (assistant mode)
    llm_mode: str              # "assistant" or "chat"
    poll_interval: float       # Seconds between run status checks
    run_timeout: float         # Deadline for a single assistant run


@dataclass(frozen=True)
class KnowledgeConfig:
    """Knowledge base configuration."""
    chunk_size: int            # Max characters per stored chunk
    match_threshold: float     # Minimum similarity to include a chunk
    match_count: int           # Max chunks returned per query
    ingest_delay: float        # Pause between ingested chunks (rate limiting)


@dataclass(frozen=True)
class AdvisorConfig:
    """Advisor persona configuration."""
    default_advisor: str
    multi_advisor: bool        # Detect personas and register per-advisor commands
    profiles_file: Path | None
    last_topic_max_length: int


@dataclass(frozen=True)
class StorageConfig:
    """Where durable state lives."""
    data_dir: Path
    purge_interval_minutes: int

    @property
    def database_path(self) -> Path:
        return self.data_dir / "advisor_bot.db"

    @property
    def vectorstore_path(self) -> Path:
        return self.data_dir / "vectorstore"


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

    `slack` is None when the configuration was loaded without Slack
    credentials (the ingestion CLI does not talk to Slack).
    """
    slack: SlackConfig | None
    openai: OpenAIConfig
    knowledge: KnowledgeConfig
    advisors: AdvisorConfig
    storage: StorageConfig


LLM_MODES = ("assistant", "chat")


def load_config(require_slack: bool = True) -> Config:
    """
    Load and validate all configuration from the environment.

    Args:
        require_slack: Whether Slack credentials must be present

    Returns:
        Config: The validated configuration

    Raises:
        ConfigError: If required configuration is missing or malformed
    """
    load_dotenv()

    slack = None
    if require_slack:
        slack = SlackConfig(
            bot_token=_required("SLACK_BOT_TOKEN"),
            app_token=_required("SLACK_APP_TOKEN"),
            signing_secret=_required("SLACK_SIGNING_SECRET"),
        )
        if not slack.app_token.startswith("xapp-"):
            raise ConfigError("SLACK_APP_TOKEN must be an app-level token (xapp-...) for Socket Mode")

    llm_mode = _optional("LLM_MODE", "assistant").lower()
    if llm_mode not in LLM_MODES:
        raise ConfigError(f"LLM_MODE must be one of {', '.join(LLM_MODES)}, got: {llm_mode!r}")

    assistant_id = os.getenv("OPENAI_ASSISTANT_ID")
    if llm_mode == "assistant" and require_slack and not assistant_id:
        raise ConfigError("OPENAI_ASSISTANT_ID is required when LLM_MODE=assistant")

    profiles_file = os.getenv("ADVISOR_PROFILES_FILE")

    return Config(
        slack=slack,
        openai=OpenAIConfig(
            api_key=_required("OPENAI_API_KEY"),
            model=_optional("OPENAI_MODEL", "gpt-4o-mini"),
            embedding_model=_optional("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
            assistant_id=assistant_id,
            llm_mode=llm_mode,
            poll_interval=_optional_float("OPENAI_POLL_INTERVAL_SECONDS", 1.0),
            run_timeout=_optional_float("OPENAI_RUN_TIMEOUT_SECONDS", 60.0),
        ),
        knowledge=KnowledgeConfig(
            chunk_size=_optional_int("KNOWLEDGE_CHUNK_SIZE", 800),
            match_threshold=_optional_float("KNOWLEDGE_MATCH_THRESHOLD", 0.7),
            match_count=_optional_int("KNOWLEDGE_MATCH_COUNT", 3),
            ingest_delay=_optional_float("KNOWLEDGE_INGEST_DELAY_SECONDS", 0.1),
        ),
        advisors=AdvisorConfig(
            default_advisor=_optional("DEFAULT_ADVISOR", "north").lower(),
            multi_advisor=_optional_bool("MULTI_ADVISOR", True),
            profiles_file=Path(profiles_file) if profiles_file else None,
            last_topic_max_length=_optional_int("LAST_TOPIC_MAX_LENGTH", 100),
        ),
        storage=StorageConfig(
            data_dir=Path(_optional("DATA_DIR", "data")),
            purge_interval_minutes=_optional_int("MEMORY_PURGE_INTERVAL_MINUTES", 60),
        ),
    )


# ==============================================================================
# Singleton
# ==============================================================================
# Entry points share one Config; services never call this.

_config_instance: Config | None = None


def get_config(require_slack: bool = True) -> Config:
    """
    Get the cached configuration, loading it on first access.

    Args:
        require_slack: Passed to load_config() on first load

    Returns:
        Config: The application configuration
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config(require_slack=require_slack)
    return _config_instance
