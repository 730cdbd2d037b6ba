"""Convenience re-exports for workflow nodes."""
from __future__ import annotations

from . import (
    cash_flow,
    discovery,
    driver_forecast,
    expenses,
    ingest,
    insights,
    scenario_forecast,
    trends,
    validate,
    writing,
)

__all__ = [
    "cash_flow",
    "discovery",
    "driver_forecast",
    "expenses",
    "ingest",
    "insights",
    "scenario_forecast",
    "trends",
    "validate",
    "writing",
]
