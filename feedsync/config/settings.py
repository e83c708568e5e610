"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from pathlib import Path


# Compute base_dir at module level
_BASE_DIR = Path(__file__).parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FEEDSYNC_",  # FEEDSYNC_DATABASE_URL, FEEDSYNC_EMBEDDING_API_KEY, etc.
        extra="ignore",
    )

    # Paths
    base_dir: Path = _BASE_DIR
    data_dir: Path = _BASE_DIR / "data"

    # Store
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'feedsync.db'}"

    # Source catalog - JSON file; the sources table is used when unset
    sources_path: Optional[Path] = None

    # Embedding service
    embedding_api_key: Optional[str] = None  # falls back to OPENAI_API_KEY
    embedding_base_url: Optional[str] = None  # any OpenAI-compatible endpoint
    embedding_model: str = "text-embedding-ada-002"
    embedding_max_chars: int = Field(default=4000, gt=0)
    embedding_timeout_seconds: float = 30.0
    embedding_max_retries: int = Field(default=3, ge=1)

    # Fetching
    fetch_timeout_seconds: float = 30.0
    fetch_max_retries: int = Field(default=3, ge=1)
    fetch_rate_limit_per_second: float = 1.0
    user_agent: str = "FeedSyncBot/1.0"

    # Orchestration
    max_concurrent_sources: int = Field(default=1, ge=1)

    # Logging
    log_level: str = "INFO"


settings = Settings()
