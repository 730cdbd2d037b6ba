"""LangGraph node projecting each driver and applying user adjustments."""
from __future__ import annotations

from pnl_forecast.infrastructure.cache import CacheKey
from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.nodes.scenario_forecast import statement_period
from pnl_forecast.workflows.state import ForecastState


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    discovery = state.get("discovery")
    statement = state.get("statement")
    if discovery is None or statement is None:
        logs.append("ProjectionAgent skipped: no discovered drivers.")
        return state
    if not discovery.drivers:
        logs.append("ProjectionAgent skipped: discovery selected no drivers.")
        return state

    months = state.get("months") or context.config.forecast_months
    adjustments = list(state.get("adjustments") or [])
    entity_id = state.get("entity_id", "report")
    period = statement_period(state)
    scenario = f"drivers:{months}"

    logs.append("ProjectionAgent -> project drivers forward")
    try:
        base = context.cache.get_or_compute(
            CacheKey.build(entity_id, period, scenario),
            lambda: context.projector.generate_base_forecast(discovery.drivers, months=months),
        )
        if adjustments:
            logs.append(f"ProjectionAgent -> apply {len(adjustments)} adjustment(s)")
            adjusted = context.cache.get_or_compute(
                CacheKey.build(entity_id, period, scenario, adjustments),
                lambda: context.projector.apply_adjustments(base, adjustments),
            )
            state["driver_forecast"] = adjusted.forecast
            state["adjustment_impact"] = adjusted.impact
        else:
            state["driver_forecast"] = base
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Driver projection failed: {exc}")
        return state

    summary = state["driver_forecast"].summary
    logs.append(
        f"Projected net income {summary.total_net_income:,.0f} over {months} months; "
        f"break-even month {summary.break_even_month or 'n/a'}."
    )
    return state
