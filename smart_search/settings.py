import enum
from pathlib import Path
from tempfile import gettempdir
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL

TEMP_DIR = Path(gettempdir())


class LogLevel(str, enum.Enum):  # noqa: WPS600
    """Possible log levels."""

    NOTSET = "NOTSET"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    FATAL = "FATAL"


class Settings(BaseSettings):
    """
    Application settings.

    These parameters can be configured
    with environment variables.
    """

    host: str = "localhost"
    port: int = 5566
    # quantity of workers for uvicorn
    workers_count: int = 1
    # Enable uvicorn reloading
    reload: bool = False

    # Current environment
    environment: str = "dev"

    log_level: LogLevel = LogLevel.INFO
    enable_file_logging: bool = False
    logs_dir: Optional[str] = None
    structured_logging: bool = False

    # Variables for the database
    db_driver: str = "postgresql+asyncpg"
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "smart_search"
    db_pass: str = "smart_search"
    db_base: str = "smart_search"
    db_echo: bool = False

    # Ollama (local model) settings
    ollama_endpoint: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:latest"
    ollama_embed_model: str = "llama3.1:latest"
    ollama_temperature: float = 0.7
    ollama_max_tokens: int = 500
    ollama_timeout: int = 30000  # Milliseconds

    # Optional OpenAI provider, registered only when a key is present
    openai_api_key: Optional[str] = None
    openai_completion_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None

    # Embeddings
    embedding_dimensions: int = 1536
    embedding_timeout: int = 30000  # Milliseconds

    # AI orchestration
    ai_primary_provider: str = "ollama"
    ai_fallback_enabled: bool = True
    ai_retry_attempts: int = 2
    ai_retry_delay: int = 1000  # Milliseconds, doubled after every failed attempt
    ai_health_check_interval: int = 30000  # Milliseconds
    ai_health_check_timeout: int = 5000  # Milliseconds

    # Search defaults and the bounds enforced by the API layer
    search_default_threshold: float = 0.7
    search_default_limit: int = 5
    search_min_threshold: float = 0.1
    search_max_limit: int = 20
    prompt_max_length: int = 5000

    @property
    def db_url(self) -> URL:
        """
        Assemble database URL from settings.

        :return: database URL.
        """
        return URL.build(
            scheme=self.db_driver,
            host=self.db_host,
            port=self.db_port,
            user=self.db_user,
            password=self.db_pass,
            path=f"/{self.db_base}",
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SMART_SEARCH_",
    )


settings = Settings()
