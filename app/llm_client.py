"""OpenRouter LLM client factory (OpenAI-compatible SDK)."""
from __future__ import annotations

from app.config import settings


def get_client():
    """Create an AsyncOpenAI client pointed at OpenRouter."""
    from openai import AsyncOpenAI

    return AsyncOpenAI(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
    )


def get_model() -> str:
    return settings.questions_model


# Singleton
_client = None


def client():
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client
