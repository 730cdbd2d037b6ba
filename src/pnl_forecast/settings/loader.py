"""Settings helpers to centralize configuration access."""
from __future__ import annotations

from typing import Optional

from pnl_forecast.config import Config
from pnl_forecast.settings.heuristics import HeuristicSettings, SelectionCriteria


def load_settings(debug_override: Optional[bool] = None) -> Config:
    """Return a Config instance, applying optional runtime overrides."""
    config = Config.from_env()
    if debug_override is not None:
        config.debug = debug_override
    return config


def load_heuristics(config: Config) -> HeuristicSettings:
    """Build the heuristic bundle, honouring env-level selection overrides."""
    heuristics = HeuristicSettings()
    if config.min_driver_score is not None:
        heuristics = heuristics.with_overrides(
            selection=SelectionCriteria(
                minimum_score=config.min_driver_score,
                minimum_materiality=heuristics.selection.minimum_materiality,
                minimum_data_quality=heuristics.selection.minimum_data_quality,
            )
        )
    return heuristics
