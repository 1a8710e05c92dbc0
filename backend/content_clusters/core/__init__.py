"""Core utilities and configuration."""

from content_clusters.core.config import Settings, get_settings
from content_clusters.core.database import Base, db_manager, get_session
from content_clusters.core.logging import (
    claude_logger,
    cluster_logger,
    db_logger,
    get_logger,
    setup_logging,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "db_manager",
    "get_session",
    # Logging
    "claude_logger",
    "cluster_logger",
    "db_logger",
    "get_logger",
    "setup_logging",
]
