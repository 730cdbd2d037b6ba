"""LangGraph node responsible for final Markdown assembly."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pnl_forecast.domain.services.insights import InsightEngine
from pnl_forecast.domain.services.normalizer import statement_frame
from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def _history_rows(state: ForecastState) -> List[Dict[str, Any]]:
    statement = state.get("statement")
    if statement is None or not statement.months:
        return []
    frame = statement_frame(statement)
    return [
        {"month": month, **{column: float(value) for column, value in row.items()}}
        for month, row in frame.iterrows()
    ]


def _scenario_rows(state: ForecastState) -> List[Dict[str, Any]]:
    scenarios = state.get("scenarios")
    cash_flow = state.get("cash_flow") or {}
    rows = []
    if scenarios is None:
        return rows
    for name, forecast in scenarios.scenarios.items():
        statement = cash_flow.get(name)
        rows.append(
            {
                "name": name,
                "growth": forecast.assumptions.monthly_growth_rate,
                "revenue": forecast.summary.total_revenue,
                "expenses": forecast.summary.total_expenses,
                "net_income": forecast.summary.total_net_income,
                "ending_cash": statement.summary.ending_cash if statement else None,
                "negative_months": statement.summary.negative_cash_flow_months if statement else None,
            }
        )
    return rows


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    statement = state.get("statement")
    if statement is None:
        logs.append("WritingAgent skipped: nothing to render.")
        return state

    logs.append("WritingAgent -> render Markdown output")
    discovery = state.get("discovery")
    insights = state.get("insights")
    render_context = {
        "entity_id": state.get("entity_id", "report"),
        "run_date": state.get("run_date", datetime.utcnow().date().isoformat()),
        "generated_at": datetime.utcnow().isoformat(timespec="seconds"),
        "period_start": statement.period_start.isoformat(),
        "period_end": statement.period_end.isoformat(),
        "currency": statement.metadata.currency,
        "history": _history_rows(state),
        "validation": state.get("validation"),
        "trend": state.get("trend"),
        "drivers": discovery.drivers if discovery is not None else [],
        "scenarios": _scenario_rows(state),
        "forecast": state.get("driver_forecast"),
        "adjustment_impact": state.get("adjustment_impact"),
        "highlights": InsightEngine.select_top_three(insights.all) if insights is not None else [],
        "insights": insights,
        "errors": list(errors),
    }
    try:
        state["markdown_report"] = context.renderer.render(render_context)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Markdown render failed: {exc}")
    return state
