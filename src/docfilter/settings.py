"""Settings for docfilter."""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class DocFilterSettings(BaseSettings):
    """docfilter configuration settings."""

    # MongoDB
    MONGO_URI: Optional[str] = None
    MONGO_DATABASE: str = "back_office"
    MONGO_TIMEOUT_MS: int = 5000

    # Filter translation
    FILTER_NESTED_SEPARATOR: str = "."
    FILTER_OR_KEY: str = "$or"

    # Pagination
    PAGINATION_DEFAULT_LIMIT: int = 10
    PAGINATION_DEFAULT_ORDER_BY: str = "created_at"
    PAGINATION_DEFAULT_SORT_ORDER: Literal["asc", "desc"] = "desc"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = DocFilterSettings()
