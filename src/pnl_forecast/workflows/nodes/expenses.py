"""LangGraph node that classifies expense behavior."""
from __future__ import annotations

from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statement = state.get("statement")
    if statement is None:
        logs.append("ExpenseAgent skipped: no parsed statement.")
        return state

    logs.append("ExpenseAgent -> categorize expense behavior")
    try:
        state["expenses"] = context.categorizer.categorize(statement)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Expense categorization failed: {exc}")
    return state
