"""LangGraph node building working-capital, asset and cash-flow projections."""
from __future__ import annotations

from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statement = state.get("statement")
    scenarios = state.get("scenarios")
    if statement is None or scenarios is None:
        logs.append("CashFlowAgent skipped: scenario forecast unavailable.")
        return state

    business_type = state.get("business_type") or context.config.business_type
    opening_cash = state.get("opening_cash")
    if opening_cash is None:
        opening_cash = context.config.opening_cash

    logs.append(f"CashFlowAgent -> working capital ({business_type}), assets and cash flow")
    try:
        working_capital = context.working_capital.model(statement, scenarios, business_type)
        assets = context.assets.model(statement, scenarios)
        state["working_capital"] = working_capital
        state["assets"] = assets
        state["cash_flow"] = context.cash_flow.assemble(scenarios, working_capital, assets, opening_cash)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Cash flow assembly failed: {exc}")
    return state
