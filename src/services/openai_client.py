"""Helpers for configuring the OpenAI client used for content generation."""

from openai import AsyncOpenAI


DEFAULT_TIMEOUT_SECONDS = 60.0


def build_openai_client(api_key: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> AsyncOpenAI:
    """Create an AsyncOpenAI client from explicit settings."""
    return AsyncOpenAI(api_key=api_key, timeout=timeout)
