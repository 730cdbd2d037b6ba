"""LangGraph node that checks completeness and internal consistency."""
from __future__ import annotations

from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statement = state.get("statement")
    if statement is None:
        logs.append("ValidationAgent skipped: no parsed statement.")
        return state

    logs.append("ValidationAgent -> check month coverage and totals")
    try:
        validation = context.validator.validate(statement)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Validation failed: {exc}")
        return state

    state["validation"] = validation
    for warning in validation.warnings:
        logs.append(f"Validation warning: {warning}")
    for error in validation.errors:
        errors.append(f"Validation error: {error}")
    return state
