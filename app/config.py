"""Application configuration via environment variables."""

import os
import tempfile
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Server
    api_port: int = 8000
    log_level: str = "INFO"
    sentry_dsn: Optional[str] = None

    # Persistence
    storage_backend: str = "memory"  # "memory" or "supabase"

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""

    # Auth
    auth_mode: str = "supabase"  # "supabase" or "dev" (trusts X-User-Id)

    # Job processing
    worker_count: int = 4
    job_queue_maxsize: int = 0
    job_timeout_seconds: int = 600
    purge_interval_seconds: int = 3600

    # Idempotency
    idempotency_ttl_hours: int = 24

    # Rendered artifacts
    artifacts_dir: str = os.path.join(tempfile.gettempdir(), "placed_artifacts")
    artifact_ttl_hours: int = 72

    # AI collaborator (OpenAI-compatible endpoint)
    ai_api_base_url: Optional[str] = None
    ai_api_key: Optional[str] = None
    ai_model: str = "gpt-4o-mini"
    ai_timeout_seconds: float = 10.0
    ai_max_input_chars: int = 15000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
