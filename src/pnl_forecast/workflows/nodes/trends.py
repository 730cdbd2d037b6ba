"""LangGraph node computing revenue trend and expense structure."""
from __future__ import annotations

from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statement = state.get("statement")
    if statement is None:
        logs.append("TrendAgent skipped: no parsed statement.")
        return state

    logs.append("TrendAgent -> growth, volatility and seasonality")
    try:
        trend = context.trend_analyzer.analyze(statement)
        state["trend"] = trend
        state["expense_structure"] = context.trend_analyzer.analyze_expense_structure(statement)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Trend analysis failed: {exc}")
        return state

    logs.append(
        f"Trend {trend.trend_direction}, recommended growth {trend.recommended_growth_rate:.2f}%/month "
        f"({trend.confidence_level} confidence)."
    )
    return state
