"""
Chrono Configuration
====================
All environment variables in one place. Pydantic Settings validates
types at startup so misconfigurations fail at boot, not on first request.
"""

import json
from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Supabase ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""  # service_role key for backend operations

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:3001"]

    # --- Documents ---
    # Editor documents arrive untrusted on every write; anything nested
    # deeper than this is rejected before mood extraction walks it.
    max_document_depth: int = 64

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_cors_origins(cls, value: object) -> object:
        """Accept a JSON list or a comma-separated string as well as a list."""
        if isinstance(value, str):
            text = value.strip()
            value = json.loads(text) if text.startswith("[") else text.split(",")
        if isinstance(value, list):
            return [str(origin).strip() for origin in value if str(origin).strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
