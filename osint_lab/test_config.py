import pytest
from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from osint_lab import database
from osint_lab.config import Settings, normalize_database_url
from osint_lab.llm import ChatBridge, build_bridge

ENV_VARS = ("PORT", "HOST", "DATABASE_URL", "APP_ENV", "NODE_ENV", "DB_ECHO", "OPENAI_API_KEY",
            "ANTHROPIC_API_KEY", "OPENAI_MODEL", "ANTHROPIC_MODEL", "LLM_MAX_TOKENS", "ERROR_POLICY")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env()
    assert settings.port == 3000
    assert settings.has_database is False
    assert settings.llm_provider is None
    assert settings.max_tokens == 500
    assert settings.error_policy == "graceful"
    assert settings.is_production is False


def test_node_env_fallback(clean_env):
    clean_env.setenv("NODE_ENV", "production")
    assert Settings.from_env().is_production is True
    clean_env.setenv("APP_ENV", "development")
    assert Settings.from_env().is_production is False


def test_postgres_url_rewritten(clean_env):
    clean_env.setenv("DATABASE_URL", "postgres://user:pw@db.example:5432/osint")
    settings = Settings.from_env()
    assert settings.database_url == "postgresql+psycopg2://user:pw@db.example:5432/osint"
    assert settings.has_database is True
    assert normalize_database_url("sqlite:///osint.db") == "sqlite:///osint.db"


def test_invalid_error_policy_rejected(clean_env):
    clean_env.setenv("ERROR_POLICY", "loud")
    with pytest.raises(ValueError, match="ERROR_POLICY"):
        Settings.from_env()


def test_port_and_policy_from_env(clean_env):
    clean_env.setenv("PORT", "8080")
    clean_env.setenv("ERROR_POLICY", "Strict")
    settings = Settings.from_env()
    assert settings.port == 8080
    assert settings.strict_errors is True


def capture_engine_kwargs(monkeypatch):
    captured = {}

    def fake_create_engine(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return object()

    monkeypatch.setattr(database, "create_engine", fake_create_engine)
    return captured


def test_production_postgres_requires_ssl(monkeypatch):
    captured = capture_engine_kwargs(monkeypatch)
    database.create_db_engine(Settings(database_url="postgresql+psycopg2://u:p@db/osint", app_env="production"))
    assert captured["connect_args"] == {"sslmode": "require"}
    assert captured["pool_pre_ping"] is True


def test_development_postgres_leaves_ssl_default(monkeypatch):
    captured = capture_engine_kwargs(monkeypatch)
    database.create_db_engine(Settings(database_url="postgresql+psycopg2://u:p@db/osint"))
    assert "connect_args" not in captured


def test_openai_wins_when_both_keys_set():
    bridge = build_bridge(Settings(openai_api_key="x", anthropic_api_key="y"))
    assert isinstance(bridge, ChatBridge)
    assert isinstance(bridge.chat_model, ChatOpenAI)
    assert bridge.chat_model.max_tokens == 500


def test_anthropic_bridge_capped():
    bridge = build_bridge(Settings(anthropic_api_key="y"))
    assert isinstance(bridge.chat_model, ChatAnthropic)
    assert bridge.chat_model.max_tokens == 500


def test_max_tokens_from_env(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "x")
    clean_env.setenv("LLM_MAX_TOKENS", "200")
    assert build_bridge(Settings.from_env()).chat_model.max_tokens == 200
