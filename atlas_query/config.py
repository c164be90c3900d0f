from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env."""

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # MongoDB connection
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "search"

    # Atlas admin API (digest auth with a programmatic API key pair)
    atlas_api_base: str = "https://cloud.mongodb.com/api/atlas/v1.0"
    atlas_public_key: str = ""
    atlas_private_key: str = ""
    atlas_cluster_name: str = ""
    atlas_group_id: str = ""
    atlas_api_timeout_seconds: float = 30.0

    # Mongo connection pool tuning
    mongo_max_pool_size: int = 50
    mongo_server_selection_timeout_ms: int = 5000

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # Paths the example query runs fuzzy/wildcard text matching against
    text_search_paths: List[str] = Field(default_factory=lambda: ["name", "description"])


settings = Settings()
