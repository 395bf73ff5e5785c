from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    app_name: str = "Tomekeeper"
    # Default to a local postgres database if not set in env
    database_url: str = "postgresql+asyncpg://localhost/tomekeeper"
    sql_echo: bool = False

    # Structured extraction (Gemini)
    google_api_key: str = ""
    model_extractor: str = "gemini-2.5-flash"

    # Blob store that accepts multipart uploads and replies with {"file_url": ...}
    blob_upload_url: str = "http://localhost:9000/upload"

    # Retry wrapper: delay after attempt k is k * retry_base_delay
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0  # seconds

    # Per-attempt timeouts for the external calls (seconds)
    upload_timeout_seconds: float = 120
    extract_timeout_seconds: float = 300
    fetch_timeout_seconds: float = 60

    # Worker pool size per batch. 1 keeps strict submission order.
    queue_workers: int = 1

    # Create the world record even when no rulebook in the batch succeeded
    create_empty_worlds: bool = True

    # Queue WebSocket accepts base64 files, so the limit is generous
    max_message_bytes: int = 64 * 1024 * 1024

    log_file: str = "server.log"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

@lru_cache
def get_settings():
    return Settings()
