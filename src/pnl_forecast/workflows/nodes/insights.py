"""LangGraph node generating ranked insights."""
from __future__ import annotations

from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statement = state.get("statement")
    if statement is None:
        logs.append("InsightAgent skipped: no parsed statement.")
        return state

    discovery = state.get("discovery")
    drivers = discovery.drivers if discovery is not None else []
    forecast = state.get("driver_forecast")
    projections = forecast.projections if forecast is not None else None

    logs.append("InsightAgent -> analyze data quality, anomalies, trends, margins")
    try:
        report = context.insight_engine.generate(statement, drivers, projections)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Insight generation failed: {exc}")
        return state

    state["insights"] = report
    logs.append(
        f"{len(report.all)} insights, {len(report.critical)} critical, "
        f"data quality score {report.data_quality_score}."
    )
    return state
