"""Flatten hierarchical profit-and-loss reports into monthly series.

The report shape is the accounting export format:

- ``Header`` with ``StartPeriod``, ``EndPeriod``, ``ReportBasis``, ``Currency``
- ``Columns.Column``: an account column, one column per month, optional "Total"
- ``Rows.Row``: a recursive tree of ``Data`` rows and ``Section`` rows

Section rows switch the current side (revenue or expense) through their
``group`` tag; their ``Summary`` row is kept as a ``summary`` line and never
counted in totals.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Sequence

import pandas as pd

from pnl_forecast.domain.models.statement import (
    DataValidationResult,
    MonthlyValue,
    NormalizedFinancialLine,
    ParsedStatement,
    SectionData,
    StatementMetadata,
)
from pnl_forecast.settings.heuristics import SectionGroups

logger = logging.getLogger(__name__)

_AMOUNT_STRIP = re.compile(r"[,$\s()]")


class ReportFormatError(ValueError):
    """Raised when a report lacks the structure required to normalize it."""


def parse_amount(raw: Any) -> float:
    """Parse a monetary cell; '-', blanks and garbage become 0."""
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if pd.notna(raw) else 0.0
    text = str(raw).strip()
    if text in {"", "-"}:
        return 0.0
    unsigned = text.lstrip("$ ")
    negative = "(" in text or unsigned.startswith("-")
    cleaned = _AMOUNT_STRIP.sub("", text).lstrip("-")
    try:
        value = float(cleaned)
    except ValueError:
        return 0.0
    return -value if negative else value


def _parse_period(raw: Any, field_name: str) -> date:
    if raw in (None, ""):
        raise ReportFormatError(f"Report header is missing {field_name}")
    try:
        return date.fromisoformat(str(raw).strip()[:10])
    except ValueError as exc:
        raise ReportFormatError(f"Report header {field_name} is not a date: {raw!r}") from exc


def _add_months(start: date, offset: int) -> date:
    month_index = start.month - 1 + offset
    return date(start.year + month_index // 12, month_index % 12 + 1, 1)


def _month_date(label: str, fallback: date) -> date:
    for fmt in ("%b %Y", "%B %Y", "%Y-%m"):
        try:
            return datetime.strptime(label.strip(), fmt).date().replace(day=1)
        except ValueError:
            continue
    return fallback


@dataclass
class _WalkState:
    section: str = "revenue"
    lines: List[NormalizedFinancialLine] = field(default_factory=list)


class ReportNormalizer:
    """Turn a raw report mapping into a :class:`ParsedStatement`."""

    def __init__(self, sections: Optional[SectionGroups] = None) -> None:
        self._sections = sections or SectionGroups()

    def parse(self, report: Mapping[str, Any]) -> ParsedStatement:
        if not isinstance(report, Mapping):
            raise ReportFormatError("Report must be a mapping")
        header = report.get("Header")
        if not isinstance(header, Mapping):
            raise ReportFormatError("Report is missing its Header")
        period_start = _parse_period(header.get("StartPeriod"), "StartPeriod")
        period_end = _parse_period(header.get("EndPeriod"), "EndPeriod")

        months, month_dates = self._month_columns(report, period_start)

        walk = _WalkState()
        rows = (report.get("Rows") or {}).get("Row") or []
        if isinstance(rows, list):
            self._walk(rows, level=0, months=months, month_dates=month_dates, state=walk)
        else:
            logger.warning("Report rows are not a list; treating report as empty")

        revenue_lines = [line for line in walk.lines if line.section == "revenue"]
        expense_lines = [line for line in walk.lines if line.section == "expense"]
        revenue = self._section(revenue_lines, months, month_dates)
        expenses = self._section(expense_lines, months, month_dates)

        net_income = [
            MonthlyValue(month=label, value=rev.value - exp.value, date=when)
            for label, when, rev, exp in zip(
                months, month_dates, revenue.monthly_totals, expenses.monthly_totals
            )
        ]
        data_line_count = len(revenue.data_lines()) + len(expenses.data_lines())
        metadata = StatementMetadata(
            currency=str(header.get("Currency") or "USD"),
            basis=str(header.get("ReportBasis") or "Unknown"),
            column_count=len(months),
            line_count=len(walk.lines),
            has_activity=data_line_count > 0,
        )
        if not metadata.has_activity:
            logger.warning("Report for %s..%s produced no data lines", period_start, period_end)

        return ParsedStatement(
            period_start=period_start,
            period_end=period_end,
            months=months,
            month_dates=month_dates,
            revenue=revenue,
            expenses=expenses,
            net_income=net_income,
            net_income_total=revenue.grand_total - expenses.grand_total,
            metadata=metadata,
        )

    # ---- Internal helpers ----
    def _month_columns(self, report: Mapping[str, Any], period_start: date):
        columns = (report.get("Columns") or {}).get("Column")
        if not isinstance(columns, list):
            raise ReportFormatError("Report Columns.Column must be a list")
        months: List[str] = []
        month_dates: List[date] = []
        for column in columns[1:]:
            title = str((column or {}).get("ColTitle") or "").strip()
            if title.lower() == "total":
                continue
            fallback = _add_months(period_start.replace(day=1), len(months))
            months.append(title or fallback.strftime("%b %Y"))
            month_dates.append(_month_date(title, fallback))
        return months, month_dates

    def _walk(
        self,
        rows: Sequence[Any],
        *,
        level: int,
        months: List[str],
        month_dates: List[date],
        state: _WalkState,
    ) -> None:
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            group = row.get("group")
            if group in self._sections.revenue:
                state.section = "revenue"
            elif group in self._sections.expense:
                state.section = "expense"

            col_data = row.get("ColData")
            if row.get("type") != "Section" and isinstance(col_data, list):
                line = self._line(col_data, level, state.section, state.section, months, month_dates)
                if line is not None:
                    state.lines.append(line)

            children = (row.get("Rows") or {}).get("Row")
            if isinstance(children, list):
                self._walk(children, level=level + 1, months=months, month_dates=month_dates, state=state)

            summary = (row.get("Summary") or {}).get("ColData")
            if isinstance(summary, list):
                line = self._line(summary, level, "summary", state.section, months, month_dates)
                if line is not None:
                    state.lines.append(line)

    def _line(
        self,
        col_data: List[Any],
        level: int,
        kind: str,
        section: str,
        months: List[str],
        month_dates: List[date],
    ) -> Optional[NormalizedFinancialLine]:
        if not col_data:
            return None
        head = col_data[0] if isinstance(col_data[0], Mapping) else {}
        name = str(head.get("value") or "").strip()
        cells = col_data[1 : 1 + len(months)]
        if not name or not cells:
            return None
        values = tuple(
            MonthlyValue(
                month=label,
                value=parse_amount((cell or {}).get("value") if isinstance(cell, Mapping) else cell),
                date=when,
            )
            for label, when, cell in zip(months, month_dates, cells)
        )
        return NormalizedFinancialLine(
            name=name,
            account_id=head.get("id"),
            values=values,
            total=float(sum(mv.value for mv in values)),
            level=level,
            kind=kind,
            section=section,
        )

    def _section(
        self,
        lines: List[NormalizedFinancialLine],
        months: List[str],
        month_dates: List[date],
    ) -> SectionData:
        data_lines = [line for line in lines if not line.is_summary]
        if data_lines and months:
            # Positional columns: short rows are padded with NaN, then 0.
            frame = pd.DataFrame([line.series() for line in data_lines]).reindex(
                columns=range(len(months))
            )
            totals = frame.fillna(0.0).sum(axis=0).tolist()
        else:
            totals = [0.0] * len(months)
        monthly = [
            MonthlyValue(month=label, value=float(value), date=when)
            for label, when, value in zip(months, month_dates, totals)
        ]
        return SectionData(
            lines=lines,
            monthly_totals=monthly,
            grand_total=float(sum(totals)),
        )


class DataValidator:
    """Completeness and arithmetic checks on a parsed statement."""

    tolerance = 0.01
    min_completeness = 0.8

    def validate(self, statement: ParsedStatement) -> DataValidationResult:
        warnings: List[str] = []
        errors: List[str] = []

        expected = self._expected_months(statement.period_start, statement.period_end)
        actual = statement.month_count
        completeness = actual / expected
        if completeness < 1:
            warnings.append(f"Missing {expected - actual} months of data")

        missing = [
            rev.month
            for rev, exp in zip(statement.revenue.monthly_totals, statement.expenses.monthly_totals)
            if rev.value == 0 and exp.value == 0
        ]
        if missing:
            warnings.append(f"Months with no activity: {', '.join(missing)}")

        revenue_ok = self._totals_consistent(statement.revenue)
        expense_ok = self._totals_consistent(statement.expenses)
        net_ok = abs(
            (statement.revenue.grand_total - statement.expenses.grand_total) - statement.net_income_total
        ) < self.tolerance
        if not revenue_ok:
            errors.append(
                f"Revenue calculation error: lines sum to {self._line_sum(statement.revenue):.2f}, "
                f"total is {statement.revenue.grand_total:.2f}"
            )
        if not expense_ok:
            errors.append(
                f"Expense calculation error: lines sum to {self._line_sum(statement.expenses):.2f}, "
                f"total is {statement.expenses.grand_total:.2f}"
            )
        if not net_ok:
            errors.append("Net income does not equal revenue minus expenses")

        if not statement.revenue.data_lines():
            errors.append("No revenue lines found")
        if not statement.expenses.data_lines():
            warnings.append("No expense lines found (unusual for most businesses)")
        if statement.revenue.grand_total <= 0:
            warnings.append("Total revenue is zero or negative")
        if statement.expenses.grand_total <= 0:
            warnings.append("Total expenses are zero or negative (unusual)")

        return DataValidationResult(
            is_valid=not errors and completeness >= self.min_completeness,
            completeness=completeness,
            months_with_data=actual,
            months_missing=missing,
            mathematical_consistency=revenue_ok and expense_ok and net_ok,
            warnings=warnings,
            errors=errors,
        )

    @staticmethod
    def _expected_months(start: date, end: date) -> int:
        return max(1, (end.year - start.year) * 12 + (end.month - start.month) + 1)

    @staticmethod
    def _line_sum(section: SectionData) -> float:
        return float(sum(line.total for line in section.data_lines()))

    def _totals_consistent(self, section: SectionData) -> bool:
        return abs(self._line_sum(section) - section.grand_total) < self.tolerance


def statement_frame(statement: ParsedStatement) -> pd.DataFrame:
    """Month-indexed frame of revenue, expense and net-income totals."""
    return pd.DataFrame(
        {
            "revenue": statement.revenue.totals(),
            "expenses": statement.expenses.totals(),
            "net_income": [mv.value for mv in statement.net_income],
        },
        index=pd.Index(statement.months, name="month"),
    )
