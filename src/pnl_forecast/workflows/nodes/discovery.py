"""LangGraph node that scores line items and selects drivers."""
from __future__ import annotations

from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statement = state.get("statement")
    if statement is None:
        logs.append("DiscoveryAgent skipped: no parsed statement.")
        return state

    logs.append("DiscoveryAgent -> score line items")
    try:
        result = context.discovery.discover(statement)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Driver discovery failed: {exc}")
        return state

    state["discovery"] = result
    summary = result.summary
    logs.append(
        f"Selected {summary.drivers_found} of {len(result.analyses)} lines "
        f"covering {summary.business_coverage}% of activity."
    )
    return state
