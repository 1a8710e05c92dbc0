"""External service integrations."""

from content_clusters.integrations.claude import (
    ClaudeClient,
    TextGenerationError,
    TextGenerator,
    close_claude,
    get_text_generator,
    init_claude,
)

__all__ = [
    "ClaudeClient",
    "TextGenerationError",
    "TextGenerator",
    "close_claude",
    "get_text_generator",
    "init_claude",
]
