"""Application configuration management."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """indexqa application settings loaded from environment variables."""

    # API keys
    anthropic_api_key: str = ""
    google_api_key: str = ""
    moonshot_api_key: str = ""
    tavily_api_key: str = ""

    # Embedding
    indexqa_embedding_model: str = "all-MiniLM-L6-v2"
    indexqa_embedding_query_prefix: str = ""
    indexqa_embed_batch_size: int = 100

    # LLM ("anthropic", "google" or "openai_compatible")
    indexqa_llm_provider: str = "anthropic"
    indexqa_llm_model: str = "claude-sonnet-4-5-20250929"
    indexqa_llm_base_url: str = "https://api.moonshot.cn/v1"
    indexqa_llm_max_tokens: int = 2048
    indexqa_llm_temperature: float = 0.7
    indexqa_analysis_enabled: bool = True

    # Storage
    indexqa_chroma_path: str = "./data/chroma"
    indexqa_chroma_collection: str = "indexqa_chunks"
    indexqa_db_path: str = "./data/indexqa.db"

    # Ingestion
    indexqa_chunk_size: int = 1500
    indexqa_chunk_overlap: int = 200
    indexqa_min_chunk_size: int = 100

    # Retrieval
    indexqa_top_k: int = 15
    indexqa_relevance_threshold: float = 0.3
    indexqa_expand_context: bool = False
    indexqa_expand_chars: int = 500

    # Web search fallback
    indexqa_web_search_enabled: bool = True
    indexqa_web_search_max_results: int = 5

    # Network
    indexqa_request_timeout: float = 60.0

    @property
    def chroma_path(self) -> Path:
        return Path(self.indexqa_chroma_path)

    @property
    def db_path(self) -> Path:
        return Path(self.indexqa_db_path)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
