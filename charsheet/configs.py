"""Runtime settings loaded from environment variables.

Defines the environment-driven configuration used by the engine, its
backends and the HTTP surface. Every field has a default so the package can
be imported without a populated environment.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration model for the engine."""

    # Main (OpenAI-compatible) API
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    USE_OPEN_ROUTER: bool = False

    # Context sizing for the main API
    MAX_CONTEXT_SIZE: int = 8192
    DEFAULT_RESPONSE_LENGTH: int = 400

    # Local in-process backend (OpenAI-compatible local server)
    LOCAL_LLM_BASE_URL: Optional[str] = None
    LOCAL_LLM_MODEL: str = "local-model"
    LOCAL_CONTEXT_SIZE: int = 4096

    # Delegated summarization service
    EXTRAS_API_URL: Optional[str] = None
    EXTRAS_API_KEY: Optional[str] = None
    EXTRAS_TIMEOUT: int = 60
    EXTRAS_CONTEXT_SIZE: int = 1024

    # Measurement
    TOKENIZER_MODEL: str = "gpt-4o-mini"
    PROMPT_PADDING: int = 64

    # Quiescence wait
    GROUP_POLL_INTERVAL: float = 1.0
    GROUP_POLL_ATTEMPTS: int = 10
    SEND_POLL_INTERVAL: float = 0.03
    SEND_POLL_ATTEMPTS: int = 100

    # Persistence
    SAVE_DEBOUNCE_SECONDS: float = 1.0

    # Settings store
    REDIS_HOST: Optional[str] = None
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_SSL: bool = False
    SETTINGS_KEY: str = "character_sheet:settings"

    # API parameters
    ROOT_PATH_BACKEND: str = ""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
