from pathlib import Path

import pytest

from advisor_bot.errors import ConfigError
from advisor_bot.utils.config import load_config

ENV_VARS = (
    "SLACK_BOT_TOKEN", "SLACK_APP_TOKEN", "SLACK_SIGNING_SECRET",
    "OPENAI_API_KEY", "OPENAI_MODEL", "OPENAI_EMBEDDING_MODEL", "OPENAI_ASSISTANT_ID",
    "LLM_MODE", "OPENAI_POLL_INTERVAL_SECONDS", "OPENAI_RUN_TIMEOUT_SECONDS",
    "KNOWLEDGE_CHUNK_SIZE", "KNOWLEDGE_MATCH_THRESHOLD", "KNOWLEDGE_MATCH_COUNT",
    "KNOWLEDGE_INGEST_DELAY_SECONDS", "DEFAULT_ADVISOR", "MULTI_ADVISOR",
    "ADVISOR_PROFILES_FILE", "DATA_DIR", "MEMORY_PURGE_INTERVAL_MINUTES",
    "LAST_TOPIC_MAX_LENGTH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


@pytest.fixture
def slack_env(monkeypatch):
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-1")
    monkeypatch.setenv("SLACK_APP_TOKEN", "xapp-1")
    monkeypatch.setenv("SLACK_SIGNING_SECRET", "secret")


def test_defaults_without_slack():
    config = load_config(require_slack=False)

    assert config.slack is None
    assert config.openai.model == "gpt-4o-mini"
    assert config.openai.embedding_model == "text-embedding-3-small"
    assert config.openai.llm_mode == "assistant"
    assert config.openai.poll_interval == 1.0
    assert config.openai.run_timeout == 60.0
    assert config.knowledge.chunk_size == 800
    assert config.knowledge.match_threshold == 0.7
    assert config.knowledge.match_count == 3
    assert config.knowledge.ingest_delay == 0.1
    assert config.advisors.default_advisor == "north"
    assert config.advisors.multi_advisor is True
    assert config.advisors.profiles_file is None
    assert config.storage.database_path == Path("data") / "advisor_bot.db"
    assert config.storage.vectorstore_path == Path("data") / "vectorstore"


def test_overrides(monkeypatch):
    monkeypatch.setenv("LLM_MODE", "chat")
    monkeypatch.setenv("KNOWLEDGE_MATCH_THRESHOLD", "0.5")
    monkeypatch.setenv("KNOWLEDGE_MATCH_COUNT", "5")
    monkeypatch.setenv("MULTI_ADVISOR", "false")
    monkeypatch.setenv("DATA_DIR", "/var/lib/advisor")

    config = load_config(require_slack=False)

    assert config.openai.llm_mode == "chat"
    assert config.knowledge.match_threshold == 0.5
    assert config.knowledge.match_count == 5
    assert config.advisors.multi_advisor is False
    assert config.storage.data_dir == Path("/var/lib/advisor")


def test_bot_config_with_assistant(slack_env, monkeypatch):
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_1")

    config = load_config()

    assert config.slack.app_token == "xapp-1"
    assert config.openai.assistant_id == "asst_1"


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY")

    with pytest.raises(ConfigError):
        load_config(require_slack=False)


def test_missing_slack_credentials():
    with pytest.raises(ConfigError):
        load_config()


def test_socket_mode_needs_app_token(slack_env, monkeypatch):
    monkeypatch.setenv("SLACK_APP_TOKEN", "xoxb-wrong")
    monkeypatch.setenv("OPENAI_ASSISTANT_ID", "asst_1")

    with pytest.raises(ConfigError):
        load_config()


def test_assistant_mode_needs_assistant_id(slack_env):
    with pytest.raises(ConfigError):
        load_config()


def test_chat_mode_needs_no_assistant(slack_env, monkeypatch):
    monkeypatch.setenv("LLM_MODE", "chat")

    assert load_config().openai.assistant_id is None


@pytest.mark.parametrize("name, value", [
    ("KNOWLEDGE_CHUNK_SIZE", "big"),
    ("KNOWLEDGE_MATCH_THRESHOLD", "high"),
    ("LLM_MODE", "completion"),
])
def test_malformed_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError):
        load_config(require_slack=False)
