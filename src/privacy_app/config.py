"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="PRIVACY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Privacy Onboarding API"
    api_prefix: str = "/api"
    guide_catalog_file: Path = Field(
        default=Path("data/guides.json"),
        description="JSON catalog of people-search site guides.",
    )
    deindexing_status_steps: tuple[str, ...] = Field(
        default=("received", "case_started", "request_submitted", "removal_approved"),
        description="Ordered deindexing lifecycle steps; the last one is the terminal approved step.",
    )
    request_timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_parallel_requests: int = Field(default=4, ge=1)
    write_max_retries: int = Field(default=2, ge=0)
    write_backoff_seconds: float = Field(default=0.5, ge=0.0)
    view_cache_ttl_seconds: float = Field(default=30.0, ge=0.0)
    guide_toggle_strategy: Literal["compensating", "rpc"] = Field(
        default="compensating",
        description="How the two guide-completion records are kept in step.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:8080",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("guide_catalog_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "deindexing_status_steps", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("deindexing_status_steps")
    @classmethod
    def _validate_steps(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if len(value) < 2:
            raise ValueError("deindexing_status_steps needs at least two steps")
        if len(set(value)) != len(value):
            raise ValueError("deindexing_status_steps must not repeat a step")
        return value


settings = Settings()
