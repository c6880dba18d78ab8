"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="BEATROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Beat Route Optimizer API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted route outputs.")
    persist_outputs: bool = Field(default=True, description="Write summary/CSV/XLSX artifacts for each run.")

    ors_base_url: str = Field(
        default="https://api.openrouteservice.org",
        description="Base URL for the OpenRouteService API.",
    )
    ors_api_key: Optional[str] = Field(default=None, description="OpenRouteService API key.")
    ors_profile: Literal["driving-car", "driving-hgv", "cycling-regular", "foot-walking"] = Field(
        default="driving-car",
        description="ORS profile used for matrix and directions requests.",
    )
    ors_timeout_seconds: float = Field(default=60.0, gt=0.0)
    # Provider failures are fatal to the request; retries are opt-in.
    ors_max_retries: int = Field(default=0, ge=0)
    ors_backoff_seconds: float = Field(default=1.0, ge=0.0)

    randomized_trials: int = Field(default=10, ge=1)
    two_opt_max_passes: int = Field(default=100, ge=1)
    micro_cluster_threshold: float = Field(
        default=500.0,
        ge=0.0,
        description="Cost-matrix distance under which points form a micro cluster.",
    )
    regular_cluster_threshold: float = Field(
        default=2000.0,
        ge=0.0,
        description="Cost-matrix distance under which remaining points form a regular cluster.",
    )
    exhaustive_search_limit: int = Field(default=8, ge=1, le=9)
    gated_two_opt_min_improvement: float = Field(
        default=100.0,
        ge=0.0,
        description="Minimum gain for a gated 2-opt move between distant endpoints.",
    )
    gated_two_opt_proximity: float = Field(
        default=1000.0,
        ge=0.0,
        description="Endpoints closer than this accept any improving gated 2-opt move.",
    )
    tight_cluster_radius_m: float = Field(default=1500.0, ge=0.0)
    medium_cluster_radius_m: float = Field(default=2500.0, ge=0.0)
    loose_cluster_radius_m: float = Field(default=3500.0, ge=0.0)
    standard_cluster_radius_m: float = Field(default=2000.0, ge=0.0)
    marker_overlap_meters: float = Field(default=50.0, ge=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
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


settings = Settings()
