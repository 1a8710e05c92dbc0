"""Application configuration loaded from environment variables.

All configuration is via environment variables (or a local .env file).
No hardcoded URLs, ports, or credentials.
"""

from functools import lru_cache

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Content Cluster Engine")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")
    frontend_url: str | None = Field(
        default=None, description="Admin frontend origin allowed by CORS"
    )

    port: int = Field(default=8000, description="Port to bind to")
    host: str = Field(default="0.0.0.0", description="Host to bind to")

    # Database
    database_url: PostgresDsn = Field(
        ...,
        description="PostgreSQL connection string",
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    db_slow_query_threshold_ms: int = Field(
        default=100, description="Threshold for slow query warnings (ms)"
    )
    db_connect_timeout: int = Field(
        default=60, description="Connection timeout in seconds"
    )
    db_command_timeout: int = Field(
        default=60, description="Command timeout in seconds"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format: json or text")

    # Claude/Anthropic LLM (text generation)
    anthropic_api_key: str | None = Field(
        default=None,
        description="Anthropic API key for Claude models",
    )
    claude_model: str = Field(
        default="claude-3-5-haiku-20241022",
        description="Claude model used for strategy and pillar drafting",
    )
    claude_timeout: float = Field(
        default=90.0, description="Claude API request timeout in seconds"
    )
    claude_max_tokens: int = Field(
        default=4096, description="Maximum tokens in Claude response"
    )
    claude_circuit_failure_threshold: int = Field(
        default=5, description="Failures before circuit opens"
    )
    claude_circuit_recovery_timeout: float = Field(
        default=60.0, description="Seconds before attempting recovery"
    )

    # Cluster engine
    cannibalization_threshold: float = Field(
        default=0.4,
        description="Token overlap ratio above which a document is a conflict",
    )
    topic_soft_length_limit: int = Field(
        default=120,
        description="Topics longer than this log a quality warning",
    )
    grounding_max_products: int = Field(
        default=50, description="Max product summaries sent as grounding context"
    )
    grounding_max_posts: int = Field(
        default=50, description="Max post summaries sent as grounding context"
    )
    cluster_allow_direct_build: bool = Field(
        default=True,
        description="Allow building a cluster from a strategy still in 'proposed'",
    )
    generation_timeout_seconds: float = Field(
        default=120.0,
        description="Upper bound for a single generate/build request",
    )
    product_url_prefix: str = Field(default="/productos/detail/")
    post_url_prefix: str = Field(default="/blog/")
    pillar_url_prefix: str = Field(default="/pillar/")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
