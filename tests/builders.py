"""Report and driver builders shared by the test modules."""
from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Sequence

from pnl_forecast.domain.models.drivers import DiscoveredDriver, ForecastMethod, LineItemAnalysis
from pnl_forecast.domain.models.forecast import ForecastMonth
from pnl_forecast.domain.services.normalizer import ReportNormalizer
from pnl_forecast.domain.services.scenarios import MONTH_NAMES, next_month


def month_labels(count: int, start: date = date(2023, 1, 1)) -> List[str]:
    labels = []
    for offset in range(count):
        when = next_month(start, offset)
        labels.append(f"{MONTH_NAMES[when.month - 1]} {when.year}")
    return labels


def _col_data(name: str, values: Sequence[float], account_id: Optional[str] = None) -> List[dict]:
    head = {"value": name}
    if account_id is not None:
        head["id"] = account_id
    cells = [{"value": str(float(value))} for value in values]
    return [head] + cells + [{"value": str(float(sum(values)))}]


def make_section(group: str, title: str, lines: Dict[str, Sequence[float]], with_summary: bool = True) -> dict:
    rows = [
        {"type": "Data", "ColData": _col_data(name, values, account_id=str(index))}
        for index, (name, values) in enumerate(lines.items(), start=1)
    ]
    section = {
        "type": "Section",
        "group": group,
        "Header": {"ColData": [{"value": title}]},
        "Rows": {"Row": rows},
    }
    if with_summary:
        months = len(next(iter(lines.values()))) if lines else 0
        totals = [sum(values[i] for values in lines.values()) for i in range(months)]
        section["Summary"] = {"ColData": _col_data(f"Total {title}", totals)}
    return section


def make_report(
    revenue: Dict[str, Sequence[float]],
    expenses: Optional[Dict[str, Sequence[float]]] = None,
    *,
    start: date = date(2023, 1, 1),
    months: Optional[int] = None,
    with_summary: bool = True,
) -> dict:
    expenses = expenses or {}
    count = months
    if count is None:
        series = list(revenue.values()) + list(expenses.values())
        count = len(series[0]) if series else 12
    labels = month_labels(count, start)
    end = next_month(start, count - 1)
    rows = [make_section("Income", "Income", revenue, with_summary)]
    if expenses:
        rows.append(make_section("Expenses", "Expenses", expenses, with_summary))
    return {
        "Header": {
            "StartPeriod": start.isoformat(),
            "EndPeriod": end.replace(day=28).isoformat(),
            "ReportBasis": "Accrual",
            "Currency": "USD",
        },
        "Columns": {
            "Column": [{"ColTitle": "", "ColType": "Account"}]
            + [{"ColTitle": label, "ColType": "Money"} for label in labels]
            + [{"ColTitle": "Total", "ColType": "Money"}]
        },
        "Rows": {"Row": rows},
    }


def make_statement(revenue: Dict[str, Sequence[float]], expenses: Optional[Dict[str, Sequence[float]]] = None, **kwargs):
    return ReportNormalizer().parse(make_report(revenue, expenses, **kwargs))


def make_driver(
    name: str,
    values: Sequence[float],
    *,
    category: str = "expense",
    growth_rate: float = 0.0,
    predictability: float = 0.9,
    data_quality: float = 1.0,
    start: date = date(2023, 1, 1),
) -> DiscoveredDriver:
    values = list(values)
    analysis = LineItemAnalysis(
        name=name,
        account_id=None,
        category=category,
        total=sum(values),
        months=month_labels(len(values), start),
        monthly_values=values,
        materiality=0.5,
        variability=0.1,
        predictability=predictability,
        growth_impact=0.0,
        data_quality=data_quality,
        correlation_with_revenue=0.0,
    )
    return DiscoveredDriver(
        analysis=analysis,
        impact_score=0.5,
        forecast_method=ForecastMethod(kind="simple_growth", rule="fallback"),
        confidence="high",
        business_type="fixed_cost" if category == "expense" else "recurring_revenue",
        trend="stable",
        growth_rate=growth_rate,
        coverage=50.0,
    )


def make_forecast_months(
    revenues: Sequence[float],
    expenses: Sequence[float],
    start: date = date(2024, 1, 1),
) -> List[ForecastMonth]:
    months = []
    for index, (revenue, expense) in enumerate(zip(revenues, expenses)):
        when = next_month(start, index)
        months.append(
            ForecastMonth(
                month=f"{MONTH_NAMES[when.month - 1]} {when.year}",
                date=when,
                revenue=revenue,
                variable_costs=0.0,
                fixed_costs=expense,
                expenses=expense,
                net_income=revenue - expense,
                growth_rate=0.0,
                seasonal_multiplier=1.0,
            )
        )
    return months
