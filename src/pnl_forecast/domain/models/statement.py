"""Normalized profit-and-loss data structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class MonthlyValue:
    """Single month of a line or total."""

    month: str
    value: float
    date: date


@dataclass(frozen=True)
class NormalizedFinancialLine:
    """One account from the report flattened into a monthly series."""

    name: str
    account_id: Optional[str]
    values: Tuple[MonthlyValue, ...]
    total: float
    level: int
    kind: str  # revenue | expense | summary
    section: str  # revenue | expense

    @property
    def is_summary(self) -> bool:
        return self.kind == "summary"

    def series(self) -> List[float]:
        return [mv.value for mv in self.values]


@dataclass
class SectionData:
    """Lines and derived monthly totals for one side of the statement."""

    lines: List[NormalizedFinancialLine] = field(default_factory=list)
    monthly_totals: List[MonthlyValue] = field(default_factory=list)
    grand_total: float = 0.0

    def data_lines(self) -> List[NormalizedFinancialLine]:
        """Lines that contribute to totals (summary rows excluded)."""
        return [line for line in self.lines if not line.is_summary]

    def totals(self) -> List[float]:
        return [mv.value for mv in self.monthly_totals]


@dataclass
class StatementMetadata:
    """Descriptive facts about the source report."""

    currency: str = "USD"
    basis: str = "Unknown"
    column_count: int = 0
    line_count: int = 0
    has_activity: bool = False


@dataclass
class ParsedStatement:
    """Monthly profit-and-loss statement produced by the normalizer."""

    period_start: date
    period_end: date
    months: List[str] = field(default_factory=list)
    month_dates: List[date] = field(default_factory=list)
    revenue: SectionData = field(default_factory=SectionData)
    expenses: SectionData = field(default_factory=SectionData)
    net_income: List[MonthlyValue] = field(default_factory=list)
    net_income_total: float = 0.0
    metadata: StatementMetadata = field(default_factory=StatementMetadata)

    @property
    def month_count(self) -> int:
        return len(self.months)

    def all_lines(self) -> List[NormalizedFinancialLine]:
        return list(self.revenue.lines) + list(self.expenses.lines)

    def last_month(self) -> Optional[date]:
        return self.month_dates[-1] if self.month_dates else None


@dataclass
class DataValidationResult:
    """Completeness and consistency checks for a parsed statement."""

    is_valid: bool
    completeness: float
    months_with_data: int
    months_missing: List[str] = field(default_factory=list)
    mathematical_consistency: bool = True
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
