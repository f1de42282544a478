import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

VERSION = "0.1.0"

# Server settings
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"

# Model and LLM settings
OPENAI_MODEL = "gpt-3.5-turbo"
ANTHROPIC_MODEL = "claude-3-haiku-20240307"
LLM_MAX_TOKENS = 500
HISTORY_LIMIT = 5

# Client settings
SERVER_URL = "http://localhost:3000"
GEO_API_URL = "http://ip-api.com/json"
STATE_FILE = os.path.join(Path.home(), ".osint_lab", "state.json")
TYPE_DELAY = 0.02

ERROR_POLICIES = ("graceful", "strict")


def _to_bool(value, default=False):
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def normalize_database_url(url):
    # Railway/Render hand out postgres://, which SQLAlchemy no longer accepts
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


@dataclass(frozen=True)
class Settings:
    """Configuration resolved once at process start.

    The capability properties decide which store and which LLM bridge the
    app factory builds; handlers never look at the raw environment.
    """

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    database_url: Optional[str] = None
    app_env: str = "development"
    db_echo: bool = False
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_model: str = OPENAI_MODEL
    anthropic_model: str = ANTHROPIC_MODEL
    max_tokens: int = LLM_MAX_TOKENS
    error_policy: str = "graceful"

    @classmethod
    def from_env(cls):
        database_url = os.getenv("DATABASE_URL", "").strip()
        error_policy = os.getenv("ERROR_POLICY", "graceful").strip().lower()
        if error_policy not in ERROR_POLICIES:
            raise ValueError(f"ERROR_POLICY must be one of {ERROR_POLICIES}, got {error_policy!r}")
        return cls(
            port=int(os.getenv("PORT", DEFAULT_PORT)),
            host=os.getenv("HOST", DEFAULT_HOST),
            database_url=normalize_database_url(database_url) if database_url else None,
            app_env=os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development",
            db_echo=_to_bool(os.getenv("DB_ECHO")),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", OPENAI_MODEL),
            anthropic_model=os.getenv("ANTHROPIC_MODEL", ANTHROPIC_MODEL),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", LLM_MAX_TOKENS)),
            error_policy=error_policy,
        )

    @property
    def has_database(self):
        return bool(self.database_url)

    @property
    def is_production(self):
        return self.app_env.lower() == "production"

    @property
    def strict_errors(self):
        return self.error_policy == "strict"

    @property
    def llm_provider(self):
        if self.openai_api_key:
            return "openai"
        if self.anthropic_api_key:
            return "anthropic"
        return None


@dataclass(frozen=True)
class ClientSettings:
    server_url: str = SERVER_URL
    geo_api_url: str = GEO_API_URL
    state_file: str = STATE_FILE
    type_delay: float = TYPE_DELAY

    @classmethod
    def from_env(cls):
        return cls(
            server_url=os.getenv("OSINT_LAB_URL", SERVER_URL).rstrip("/"),
            geo_api_url=os.getenv("GEO_API_URL", GEO_API_URL),
            state_file=os.getenv("OSINT_LAB_STATE", STATE_FILE),
            type_delay=float(os.getenv("TYPE_DELAY", TYPE_DELAY)),
        )
