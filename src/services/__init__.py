"""External service clients used to generate study content."""

from .content_provider import ContentGenerationError, ContentProvider
from .openai_client import build_openai_client

__all__ = ["ContentGenerationError", "ContentProvider", "build_openai_client"]
