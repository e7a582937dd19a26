"""
OpenAI chat model provider.
Uses LangChain's ChatOpenAI so tools can be bound for function calling.
"""

from langchain_openai import ChatOpenAI

from grafibot.config import settings


def create_openai_chat_model(
    api_key: str | None = None,
    model: str | None = None,
    temperature: float | None = None,
) -> ChatOpenAI:
    """
    Create an OpenAI chat model.

    Args:
        api_key: OpenAI API key (defaults to settings.openai_api_key)
        model: Model name (defaults to settings.llm_model)
        temperature: Sampling temperature (defaults to settings.llm_temperature)

    Returns:
        Configured ChatOpenAI instance
    """
    api_key = api_key or settings.openai_api_key
    if not api_key:
        raise ValueError(
            "OpenAI API key not provided. "
            "Set OPENAI_API_KEY in .env file."
        )

    return ChatOpenAI(
        model=model or settings.llm_model,
        temperature=settings.llm_temperature if temperature is None else temperature,
        api_key=api_key,
        timeout=settings.llm_timeout,
        max_retries=2,
    )
