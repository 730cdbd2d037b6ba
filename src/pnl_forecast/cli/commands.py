"""CLI command definitions for the P&L forecasting engine."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from pnl_forecast.config import Config
from pnl_forecast.domain.models.forecast import DriverAdjustment
from pnl_forecast.domain.services.normalizer import ReportFormatError
from pnl_forecast.infrastructure.report_loader import entity_id_for, load_report
from pnl_forecast.settings.loader import load_settings
from pnl_forecast.utils.logging import configure_logging
from pnl_forecast.workflows.graph import ForecastWorkflow
from pnl_forecast.workflows.state import ForecastState

console = Console()
app = typer.Typer(help="Discover P&L drivers and project scenario forecasts from the terminal.")

SCENARIOS = ("baseline", "growth", "downturn")


@dataclass
class AppContext:
    """Holds reusable process-wide objects for CLI commands."""

    config: Config
    workflow: ForecastWorkflow


def _init_context(debug_override: Optional[bool] = None) -> AppContext:
    """Create a context with configuration, logging, and workflow wiring."""
    config = load_settings(debug_override)
    configure_logging(debug=config.debug)
    workflow = ForecastWorkflow(config=config)
    return AppContext(config=config, workflow=workflow)


def parse_adjustment(raw: str) -> DriverAdjustment:
    """Parse ``name:impact:start[:end]``; impact is a fraction, months are 0-based."""
    parts = raw.split(":")
    if len(parts) < 3:
        raise typer.BadParameter(f"Expected name:impact:start[:end], got {raw!r}")

    end: Optional[int] = None
    if len(parts) >= 4 and parts[-1].strip().lstrip("-").isdigit() and parts[-2].strip().lstrip("-").isdigit():
        end = int(parts[-1])
        parts = parts[:-1]
    name = ":".join(parts[:-2]).strip()
    try:
        impact = float(parts[-2])
        start = int(parts[-1])
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid adjustment {raw!r}: {exc}") from exc
    if not name:
        raise typer.BadParameter(f"Adjustment {raw!r} has no driver name")
    if end is not None and end < start:
        raise typer.BadParameter(f"Adjustment {raw!r} ends before it starts")
    return DriverAdjustment(driver_name=name, impact=impact, start_month=start, end_month=end, description=raw)


def _load(path: Path) -> dict:
    try:
        return load_report(path)
    except (OSError, ReportFormatError) as exc:
        console.print(f"[bold red]Cannot read report:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: Optional[bool] = typer.Option(
        None,
        "--debug/--no-debug",
        help="Temporarily toggle verbose logging without touching environment variables.",
    ),
) -> None:
    """Attach the lazily constructed application context to Typer."""
    ctx.obj = _init_context(debug_override=debug)


@app.command()
def run(
    ctx: typer.Context,
    report_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="P&L report JSON file."),
    months: Optional[int] = typer.Option(None, "--months", min=1, max=60, help="Months to project."),
    scenario: str = typer.Option("baseline", "--scenario", help="Scenario shown in the cash flow table."),
    opening_cash: Optional[float] = typer.Option(None, "--opening-cash", help="Cash balance at forecast start."),
    business_type: Optional[str] = typer.Option(None, "--business-type", help="service or product."),
    adjust: Optional[List[str]] = typer.Option(
        None,
        "--adjust",
        help="Driver adjustment name:impact:start[:end], e.g. 'Consulting:0.1:3'. Repeatable.",
    ),
    emit_json: bool = typer.Option(False, "--json", help="Persist the merged workflow state to JSON."),
    markdown_path: Optional[Path] = typer.Option(
        None,
        "--markdown",
        help="Optional custom path for the rendered Markdown report.",
    ),
) -> None:
    """Run the full LangGraph workflow for one report and present the outcome."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    scenario = scenario.lower()
    if scenario not in SCENARIOS:
        raise typer.BadParameter(f"--scenario must be one of {', '.join(SCENARIOS)}")

    context: AppContext = ctx.obj
    adjustments = [parse_adjustment(item) for item in adjust or []]
    report = _load(report_path)
    entity_id = entity_id_for(report_path)
    console.rule(f"Forecasting {entity_id}")

    with console.status("[bold cyan]Running workflow..."):
        result: ForecastState = context.workflow.run(
            report,
            entity_id=entity_id,
            months=months,
            adjustments=adjustments,
            opening_cash=opening_cash,
            business_type=business_type,
        )

    if result.get("errors"):
        console.print("[bold red]Workflow completed with errors:[/bold red]")
        for issue in result["errors"]:
            console.print(f"- {issue}")
    else:
        console.print("[bold green]Workflow completed successfully.[/bold green]")

    _print_run_summary(result)
    _print_scenarios(result)
    _print_cash_flow(result, scenario)

    context.config.ensure_directories()
    if emit_json:
        target = context.config.output_dir / f"{entity_id}_state.json"
        context.workflow.persist_state(result, target)
        console.print(f"State saved to {target}")

    if result.get("markdown_report"):
        output_md = markdown_path or context.config.output_dir / f"{entity_id}.md"
        context.workflow.persist_markdown(result["markdown_report"], output_md)
        console.print(f"Markdown report available at {output_md}")


@app.command()
def discover(
    ctx: typer.Context,
    report_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="P&L report JSON file."),
    show_all: bool = typer.Option(False, "--all", help="Also list line items that were not selected."),
) -> None:
    """Score every line item and show which ones drive the business."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj
    services = context.workflow.context
    try:
        statement = services.normalizer.parse(_load(report_path))
    except ReportFormatError as exc:
        console.print(f"[bold red]Report rejected:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    result = services.discovery.discover(statement)

    table = Table(title=f"Drivers ({result.summary.months_analyzed} months analyzed)")
    table.add_column("Driver", style="cyan")
    table.add_column("Category")
    table.add_column("Impact", justify="right")
    table.add_column("Mat/Var/Pred/Grow/DQ", justify="right")
    table.add_column("Method")
    table.add_column("Confidence")
    for driver in result.drivers:
        scores = driver.display_scores()
        table.add_row(
            driver.name,
            driver.category,
            f"{driver.impact_score * 100:.0f}",
            "/".join(str(value) for value in scores.values()),
            driver.forecast_method.kind,
            driver.confidence,
        )
    console.print(table)
    console.print(
        f"Coverage {result.summary.business_coverage}%, "
        f"average confidence {result.summary.average_confidence}%, "
        f"data quality {result.summary.data_quality}."
    )
    if show_all and result.recommendations.excluded:
        console.print("Not selected: " + ", ".join(result.recommendations.excluded))


@app.command()
def insights(
    ctx: typer.Context,
    report_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="P&L report JSON file."),
    top: bool = typer.Option(False, "--top", help="Only show the three headline insights."),
) -> None:
    """Run the workflow and list ranked insights."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj
    with console.status("[bold cyan]Analyzing..."):
        result = context.workflow.run(_load(report_path), entity_id=entity_id_for(report_path))
    report = result.get("insights")
    if report is None:
        console.print("[yellow]No insights produced.[/yellow]")
        for issue in result.get("errors", []):
            console.print(f"- {issue}")
        raise typer.Exit(code=1)

    selected = context.workflow.context.insight_engine.select_top_three(report.all) if top else report.all
    table = Table(title=f"Insights (data quality {report.data_quality_score}/100)")
    table.add_column("Priority")
    table.add_column("Type")
    table.add_column("Title", style="cyan")
    table.add_column("Message")
    table.add_column("Score", justify="right")
    for item in selected:
        table.add_row(item.priority, item.type, item.title, item.message, f"{item.score:.0f}")
    console.print(table)


@app.command()
def plan(ctx: typer.Context) -> None:
    """Display the high-level workflow path for quick operator reference."""
    if ctx.obj is None:
        raise typer.Exit(code=1)

    context: AppContext = ctx.obj
    table = Table(title="Workflow Stages")
    table.add_column("Step", style="cyan")
    table.add_column("Description")

    for idx, step in enumerate(context.workflow.describe_stages(), start=1):
        table.add_row(str(idx), step)

    console.print(table)


def _print_run_summary(state: ForecastState) -> None:
    """Pretty-print a short run summary for operators."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Key")
    table.add_column("Value")

    statement = state.get("statement")
    discovery = state.get("discovery")
    forecast = state.get("driver_forecast")
    table.add_row("Entity", state.get("entity_id", "?"))
    table.add_row("Run Date", state.get("run_date") or "N/A")
    table.add_row(
        "Period",
        f"{statement.period_start} to {statement.period_end}" if statement is not None else "N/A",
    )
    table.add_row("Drivers", str(len(discovery.drivers)) if discovery is not None else "0")
    if forecast is not None:
        table.add_row("Projected Net Income", f"{forecast.summary.total_net_income:,.0f}")
        table.add_row("Break-even Month", str(forecast.summary.break_even_month or "not reached"))
        if forecast.confidence is not None:
            table.add_row("Confidence", forecast.confidence.overall)
    table.add_row("Markdown", "yes" if state.get("markdown_report") else "no")
    table.add_row("Errors", str(len(state.get("errors", []))))

    console.print(table)


def _print_scenarios(state: ForecastState) -> None:
    scenarios = state.get("scenarios")
    if scenarios is None:
        return
    table = Table(title="Scenarios")
    table.add_column("Scenario", style="cyan")
    table.add_column("Growth/mo", justify="right")
    table.add_column("Revenue", justify="right")
    table.add_column("Expenses", justify="right")
    table.add_column("Net Income", justify="right")
    for name, forecast in scenarios.scenarios.items():
        summary = forecast.summary
        table.add_row(
            name,
            f"{forecast.assumptions.monthly_growth_rate:.2f}%",
            f"{summary.total_revenue:,.0f}",
            f"{summary.total_expenses:,.0f}",
            f"{summary.total_net_income:,.0f}",
        )
    console.print(table)


def _print_cash_flow(state: ForecastState, scenario: str) -> None:
    statements = state.get("cash_flow") or {}
    projection = statements.get(scenario)
    if projection is None:
        return
    table = Table(title=f"Cash Flow ({scenario})")
    table.add_column("Month", style="cyan")
    table.add_column("Operating", justify="right")
    table.add_column("Investing", justify="right")
    table.add_column("Financing", justify="right")
    table.add_column("Ending Cash", justify="right")
    for month in projection.months:
        table.add_row(
            month.month,
            f"{month.operating.total:,.0f}",
            f"{month.investing.total:,.0f}",
            f"{month.financing.total:,.0f}",
            f"{month.ending_cash:,.0f}",
        )
    console.print(table)
    summary = projection.summary
    console.print(
        f"Ending cash {summary.ending_cash:,.0f}; "
        f"{summary.negative_cash_flow_months} negative month(s); "
        f"largest outflow {summary.largest_cash_outflow:,.0f}."
    )
