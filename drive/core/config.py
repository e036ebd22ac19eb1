# drive/core/config.py
from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./drive.db"

    session_secret: str = "change-me"
    session_max_age: int = 7 * 24 * 60 * 60  # one week, in seconds

    # "local" keeps blobs under upload_dir, "s3" sends them to the bucket
    storage_backend: Literal["local", "s3"] = "local"
    upload_dir: str = "uploads"

    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    aws_s3_bucket_name: Optional[str] = None
    aws_s3_endpoint_url: Optional[str] = None
    # public base URL for object locators; derived from bucket/region when unset
    aws_s3_public_url: Optional[str] = None

    log_level: str = "INFO"

    # Tell pydantic-settings to load from .env at project root
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore any extra stuff in .env
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
