"""
Configuration management for the Proveedora de Artes Gráficas WhatsApp bot.
Loads settings from environment variables with validation.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = Path(__file__).parent.parent / "data"

    # WhatsApp Cloud API
    whatsapp_access_token: Optional[str] = Field(
        default=None, description="Meta Graph API access token"
    )
    whatsapp_phone_number_id: Optional[str] = Field(
        default=None, description="WhatsApp business phone number ID"
    )
    whatsapp_verify_token: str = Field(
        default="grafibot-verify", description="Webhook verification token"
    )
    whatsapp_api_version: str = Field(
        default="v19.0", description="Meta Graph API version"
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", description="Webhook server host")
    port: int = Field(default=3000, description="Webhook server port")

    # LLM Provider
    llm_provider: Literal["openai"] = Field(
        default="openai", description="LLM provider to use"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    llm_model: str = Field(default="gpt-4o-mini", description="Chat model name")
    llm_temperature: float = Field(default=0.7, description="Sampling temperature")
    llm_timeout: float = Field(
        default=60.0, description="Timeout in seconds for a single LLM call"
    )

    # Inventory API
    inventory_api_url: str = Field(
        default="http://localhost:4001", description="Base URL of the inventory service"
    )
    inventory_timeout: float = Field(
        default=10.0, description="Timeout in seconds for the inventory request"
    )
    catalog_refresh_interval: int = Field(
        default=30 * 60, description="Seconds between catalog refreshes"
    )

    # Embeddings
    embedding_model: str = Field(
        default="intfloat/multilingual-e5-small",
        description="Sentence transformers model for embeddings",
    )
    embedding_timeout: float = Field(
        default=120.0, description="Timeout in seconds for an embedding batch"
    )

    # Qdrant
    qdrant_location: Optional[str] = Field(
        default=":memory:",
        description="Qdrant location (':memory:' for local mode, empty to use host/port)",
    )
    qdrant_host: str = Field(default="localhost", description="Qdrant host")
    qdrant_port: int = Field(default=6333, description="Qdrant port")
    qdrant_collection_prefix: str = Field(
        default="grafibot_products", description="Prefix for product collections"
    )

    # Search tuning (cosine similarity, higher is better)
    search_top_k: int = Field(
        default=20, description="Candidates retrieved from the vector index"
    )
    similarity_threshold: float = Field(
        default=0.78, description="Minimum cosine similarity to keep a candidate"
    )
    presentation_threshold: int = Field(
        default=5, description="Maximum number of products listed directly"
    )
    exact_match_bonus: float = Field(
        default=0.2, description="Bonus when the whole query appears in the name"
    )
    keyword_bonus: float = Field(
        default=0.05, description="Bonus per query keyword found in the name"
    )
    edge_token_bonus: float = Field(
        default=0.03, description="Bonus when first/last tokens match"
    )

    # Agent
    max_tool_rounds: int = Field(
        default=8, description="Maximum tool round-trips per turn"
    )
    recursion_limit: int = Field(
        default=50, description="Hard LangGraph recursion limit per turn"
    )

    # Conversation storage
    storage_backend: Literal["memory", "redis"] = Field(
        default="memory", description="Backend for history and quotes"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    conversation_ttl: int = Field(
        default=7 * 24 * 3600, description="Seconds of inactivity before a conversation expires"
    )
    max_conversations: int = Field(
        default=5000, description="Conversations kept by the in-memory stores"
    )
    history_max_messages: int = Field(
        default=200, description="Messages kept per conversation history"
    )

    # Store contacts shown by the bot
    store_name: str = Field(
        default="Proveedora de Artes Gráficas", description="Store display name"
    )

    # Debug
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def quotes_dir(self) -> Path:
        """Directory for generated quote documents."""
        return self.data_dir / "quotes"

    @property
    def whatsapp_api_base_url(self) -> str:
        """Base URL of the Meta Graph API."""
        return f"https://graph.facebook.com/{self.whatsapp_api_version}"


# Global settings instance
settings = Settings()
