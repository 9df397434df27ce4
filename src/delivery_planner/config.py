"""Application configuration and settings management."""

from datetime import time
from pathlib import Path
from typing import Annotated, Any, Optional

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_CATEGORY_RANKS: dict[str, int] = {
    "Cement": 1,
    "Steel & Reinforcement": 2,
    "Aggregates": 3,
    "Bricks & Blocks": 4,
    "Roofing Materials": 5,
    "Electrical": 6,
    "Plumbing": 7,
    "Paint & Chemicals": 8,
    "Wood & Lumber": 9,
    "Insulation": 10,
    "Hardware & Fasteners": 11,
    "Other": 12,
}


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Delivery Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level for the service.")
    data_root: Path = Field(default=Path("data"), description="Root directory for stored deliveries.")
    deliveries_file: Optional[Path] = Field(
        default=None,
        description="JSON file (relative to data_root) holding deliveries. In-memory store when unset.",
    )

    registry_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the order/inventory/driver API (e.g., http://localhost:5001/api).",
    )
    registry_token: Optional[str] = Field(default=None, description="Bearer token for the registry API.")
    registry_timeout_seconds: float = Field(default=15.0, gt=0.0)
    registry_max_retries: int = Field(default=3, ge=0)
    registry_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Allocation policy
    district_capacity: int = Field(default=3, ge=1, description="Maximum deliveries per district per slot.")
    time_slots: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("08:00-10:00", "10:00-12:00", "13:00-15:00", "15:00-17:00", "17:00-19:00"),
        description="Daily delivery windows offered for booking.",
    )
    enforce_slot_catalog: bool = Field(
        default=False,
        description="Reject bookings whose slot is not one of time_slots.",
    )
    delivery_areas: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("Colombo", "Gampaha", "Kalutara", "Kandy", "Galle", "Matara", "Kurunegala", "Puttalam"),
    )

    # Split policy
    category_ranks: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_CATEGORY_RANKS))
    fallback_category_rank: int = Field(default=12, ge=1)
    preview_interval_minutes: int = Field(default=120, ge=1)
    min_handling_minutes: int = Field(default=30, ge=0)
    per_item_minutes: int = Field(default=5, ge=0)
    preview_day_start: time = Field(default=time(8, 0), description="Start time used when a preview base is a plain date.")

    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "time_slots", "delivery_areas", mode="before")
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

    @field_validator("category_ranks", mode="before")
    @classmethod
    def _parse_rank_table(cls, value: Any) -> dict[str, int]:
        """Normalise the category rank table (a JSON object when read from the environment)."""
        if isinstance(value, str):
            value = json.loads(value)
        if isinstance(value, dict):
            return {str(key): int(rank) for key, rank in value.items()}
        return dict(DEFAULT_CATEGORY_RANKS)

    @model_validator(mode="after")
    def _check_fallback_rank(self) -> "Settings":
        highest = max(self.category_ranks.values(), default=0)
        if self.fallback_category_rank < highest:
            raise ValueError(
                f"fallback_category_rank ({self.fallback_category_rank}) must be >= "
                f"the highest category rank ({highest})"
            )
        return self

    @property
    def deliveries_path(self) -> Path | None:
        if self.deliveries_file is None:
            return None
        if self.deliveries_file.is_absolute():
            return self.deliveries_file
        return self.data_root / self.deliveries_file


settings = Settings()
