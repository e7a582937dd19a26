"""
Chat model provider factory and initialization.
"""

from functools import lru_cache

from langchain_core.language_models import BaseChatModel

from grafibot.config import settings
from grafibot.integrations.llm.openai import create_openai_chat_model


def get_chat_model(provider: str | None = None) -> BaseChatModel:
    """
    Get chat model instance.

    Args:
        provider: Provider name ('openai')
                  If None, uses settings.llm_provider

    Returns:
        Chat model supporting tool binding
    """
    provider = provider or settings.llm_provider

    if provider == "openai":
        return create_openai_chat_model()
    else:
        raise ValueError(f"Unknown LLM provider: {provider}")


@lru_cache(maxsize=1)
def get_default_chat_model() -> BaseChatModel:
    """Get cached default chat model."""
    return get_chat_model()


__all__ = [
    "create_openai_chat_model",
    "get_chat_model",
    "get_default_chat_model",
]
