"""Application-wide configuration defaults and helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Base directory for resolving relative paths.
BASE_DIR = Path.cwd()


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse truthy environment values like '1' or 'true'."""
    if value is None:
        return default
    if not isinstance(value, str):
        value = str(value)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str]) -> Optional[int]:
    """Safely parse an integer env var, returning None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _to_float(value: Optional[str]) -> Optional[float]:
    """Safely parse a float env var, returning None on failure."""
    if value is None:
        return None
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


@dataclass
class Config:
    """Runtime configuration loaded from environment variables."""

    debug: bool = False
    output_dir: Path = BASE_DIR / "forecasts"
    forecast_months: int = 12
    opening_cash: float = 0.0
    business_type: str = "service"
    min_driver_score: Optional[float] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration instance using environment overrides."""
        output_dir = Path(os.getenv("OUTPUT_DIR", BASE_DIR / "forecasts"))
        business_type = os.getenv("BUSINESS_TYPE", "service").strip().lower()
        if business_type not in {"service", "product"}:
            business_type = "service"

        return cls(
            debug=_to_bool(os.getenv("APP_DEBUG")),
            output_dir=output_dir,
            forecast_months=_to_int(os.getenv("FORECAST_MONTHS")) or 12,
            opening_cash=_to_float(os.getenv("OPENING_CASH")) or 0.0,
            business_type=business_type,
            min_driver_score=_to_float(os.getenv("MIN_DRIVER_SCORE")),
        )

    def ensure_directories(self) -> None:
        """Create directories needed for runtime artifacts."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
