"""Workflow blueprint describing forecast stages and their handlers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, TYPE_CHECKING

from pnl_forecast.workflows.nodes import (
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

if TYPE_CHECKING:
    from pnl_forecast.workflows.context import WorkflowContext
    from pnl_forecast.workflows.state import ForecastState


@dataclass
class StageSpec:
    """Single LangGraph stage definition."""

    key: str
    description: str
    handler: Callable[["ForecastState", "WorkflowContext"], "ForecastState"]
    depends_on: List[str] = field(default_factory=list)


def build_default_stages() -> List[StageSpec]:
    """Return the ordered stages for the forecast workflow."""
    return [
        StageSpec(
            key="ingest_report",
            description="Normalize the report JSON into monthly revenue and expense lines.",
            handler=ingest.run,
        ),
        StageSpec(
            key="validate_data",
            description="Check month coverage and that line sums match section totals.",
            handler=validate.run,
            depends_on=["ingest_report"],
        ),
        StageSpec(
            key="trend_analysis",
            description="Revenue growth, volatility, seasonality and expense structure.",
            handler=trends.run,
            depends_on=["ingest_report"],
        ),
        StageSpec(
            key="driver_discovery",
            description="Score every line item and select the material, predictable drivers.",
            handler=discovery.run,
            depends_on=["ingest_report"],
        ),
        StageSpec(
            key="expense_categorization",
            description="Classify expenses as fixed, variable, stepped or seasonal with inflation.",
            handler=expenses.run,
            depends_on=["ingest_report"],
        ),
        StageSpec(
            key="scenario_forecast",
            description="Project baseline, growth and downturn P&L scenarios.",
            handler=scenario_forecast.run,
            depends_on=["trend_analysis"],
        ),
        StageSpec(
            key="driver_forecast",
            description="Project each driver forward and apply user adjustments.",
            handler=driver_forecast.run,
            depends_on=["driver_discovery"],
        ),
        StageSpec(
            key="cash_flow",
            description="Working capital, fixed assets and cash flow per scenario.",
            handler=cash_flow.run,
            depends_on=["scenario_forecast"],
        ),
        StageSpec(
            key="insights",
            description="Rank data-quality, anomaly, trend, margin and concentration findings.",
            handler=insights.run,
            depends_on=["driver_discovery", "driver_forecast"],
        ),
        StageSpec(
            key="writing",
            description="Render the Markdown forecast report with all upstream outputs.",
            handler=writing.run,
            depends_on=["cash_flow", "insights"],
        ),
    ]
