"""LangGraph node projecting baseline, growth and downturn scenarios."""
from __future__ import annotations

from pnl_forecast.infrastructure.cache import CacheKey
from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def statement_period(state: ForecastState) -> str:
    statement = state["statement"]
    return f"{statement.period_start.isoformat()}:{statement.period_end.isoformat()}"


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statement = state.get("statement")
    trend = state.get("trend")
    structure = state.get("expense_structure")
    if statement is None or trend is None or structure is None:
        logs.append("ScenarioAgent skipped: trend analysis unavailable.")
        return state

    months = state.get("months") or context.config.forecast_months
    key = CacheKey.build(state.get("entity_id", "report"), statement_period(state), f"scenarios:{months}")
    logs.append("ScenarioAgent -> project baseline/growth/downturn")
    try:
        state["scenarios"] = context.cache.get_or_compute(
            key,
            lambda: context.scenario_engine.generate(statement, trend, structure, months=months),
        )
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Scenario forecast failed: {exc}")
    return state
