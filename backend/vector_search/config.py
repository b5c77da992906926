"""Application configuration using pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Instances are frozen: the core receives one at construction and never
    reads process-wide state afterwards.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # Database
    data_dir: Path = Path("./data")
    database_url: str = "sqlite:///./data/vector_search.db"
    storage_backend: Literal["auto", "native", "json"] = "auto"

    # Embedding provider
    embedding_mode: Literal["embedding_service", "direct_openai"] = "embedding_service"
    embedding_service_url: str = "http://localhost:8001"
    openai_api_key: str = ""
    openai_api_url: str = "https://api.openai.com/v1"
    embedding_model: str = "text-embedding-ada-002"
    embedding_dimensions: int = Field(default=1536, ge=1)
    embedding_timeout: float = Field(default=30.0, gt=0)  # seconds
    embedding_batch_timeout: float | None = None  # defaults to 2x embedding_timeout
    provider_max_batch_size: int = Field(default=2048, ge=1)  # OpenAI input cap per request
    max_input_chars: int = Field(default=8000, ge=1)  # ~8k tokens for ada-002

    # Indexing and search
    vector_search_enabled: bool = True
    batch_size: int = Field(default=100, ge=1)
    default_similarity_threshold: float = 0.7
    max_search_results: int = Field(default=20, ge=1)

    # Public endpoint
    public_access_keys: list[str] = []

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    @field_validator("default_similarity_threshold")
    @classmethod
    def check_threshold(cls, v: float) -> float:
        if not -1.0 <= v <= 1.0:
            raise ValueError("default_similarity_threshold must be between -1.0 and 1.0")
        return v

    @field_validator("embedding_service_url", "openai_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @model_validator(mode="after")
    def check_batch_timeout(self) -> "Settings":
        if self.embedding_batch_timeout is not None and self.embedding_batch_timeout <= 0:
            raise ValueError("embedding_batch_timeout must be positive")
        return self

    @property
    def batch_timeout(self) -> float:
        """Timeout for batch embedding calls (larger payloads than single calls)."""
        if self.embedding_batch_timeout is not None:
            return self.embedding_batch_timeout
        return self.embedding_timeout * 2

    def public_config(self) -> dict:
        """Configuration snapshot safe to expose over the API (secrets masked)."""
        return {
            "embedding_mode": self.embedding_mode,
            "embedding_service_url": self.embedding_service_url,
            "openai_api_key": bool(self.openai_api_key),
            "embedding_model": self.embedding_model,
            "embedding_dimensions": self.embedding_dimensions,
            "vector_search_enabled": self.vector_search_enabled,
            "storage_backend": self.storage_backend,
            "batch_size": self.batch_size,
            "default_similarity_threshold": self.default_similarity_threshold,
            "max_search_results": self.max_search_results,
            "embedding_timeout": self.embedding_timeout,
            "embedding_batch_timeout": self.batch_timeout,
        }


def get_settings() -> Settings:
    """Build settings and make sure the data directory exists."""
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
