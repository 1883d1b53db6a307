"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "hilm"
    POSTGRES_PASSWORD: str = "hilm"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "hilm"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 5
    DB_ECHO: bool = False

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Sync URL for Alembic migrations (psycopg2)."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Telegram ──────────────────────────────
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_WEBHOOK_SECRET: str = ""
    TELEGRAM_API_BASE_URL: str = "https://api.telegram.org"
    TELEGRAM_TIMEOUT_SECONDS: float = 30.0

    # ── LLM Provider (OpenAI-compatible) ─────
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL: str = "gpt-4o-mini"
    VISION_MODEL: str = "gpt-4o"
    TRANSCRIPTION_MODEL: str = "whisper-1"
    LLM_TEMPERATURE: float = 0.0
    LLM_TIMEOUT_SECONDS: float = 60.0

    # ── LangSmith Tracing ────────────────────
    LANGSMITH_API_KEY: str = ""
    LANGSMITH_ENDPOINT: str = "https://api.smith.langchain.com"
    LANGSMITH_PROJECT: str = "hilm"
    LANGSMITH_TRACING: bool = False

    # ── Transaction inserts ──────────────────
    # Retries after the first attempt; a collision on the
    # (user_id, display_id) constraint is the only retried error.
    TRANSACTION_INSERT_MAX_RETRIES: int = 7
    TRANSACTION_INSERT_BASE_DELAY_MS: int = 100
    TRANSACTION_INSERT_MAX_DELAY_MS: int = 2000

    # ── Progress messages ────────────────────
    PROGRESS_UPDATE_POLICY: str = "drop"

    # ── Response cache ───────────────────────
    RESPONSE_CACHE_TTL_SECONDS: int = 3600
    RESPONSE_CACHE_VERSION: int = 1

    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    LOG_LEVEL: str = ""
    DEFAULT_USER_MODE: str = "chat"

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
