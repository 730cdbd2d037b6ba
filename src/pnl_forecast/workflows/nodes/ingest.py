"""LangGraph node that turns the raw report payload into a statement."""
from __future__ import annotations

from pnl_forecast.domain.services.normalizer import ReportFormatError
from pnl_forecast.workflows.context import WorkflowContext
from pnl_forecast.workflows.state import ForecastState


def run(state: ForecastState, context: WorkflowContext) -> ForecastState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    report = state.get("report")

    if not report:
        errors.append("IngestAgent skipped because no report payload was supplied.")
        return state

    logs.append("IngestAgent -> normalize report rows into monthly lines")
    try:
        statement = context.normalizer.parse(report)
    except ReportFormatError as exc:
        errors.append(f"Report rejected: {exc}")
        return state
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"Report normalization failed: {exc}")
        return state

    state["statement"] = statement
    logs.append(
        f"Parsed {statement.month_count} months, "
        f"{len(statement.revenue.data_lines())} revenue and "
        f"{len(statement.expenses.data_lines())} expense lines."
    )
    return state
