"""Trend and expense-behavior analysis outputs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pnl_forecast.domain.models.drivers import SeasonalPattern


@dataclass
class BusinessHealth:
    """Average monthly results over the history."""

    average_monthly_revenue: float = 0.0
    average_monthly_expenses: float = 0.0
    average_monthly_net_income: float = 0.0
    net_margin: float = 0.0


@dataclass
class TrendAnalysis:
    """Growth, volatility and seasonality of historical revenue."""

    monthly_growth_rate: float
    annualized_growth_rate: float
    growth_rates: List[float] = field(default_factory=list)
    quarterly_revenue: Dict[str, float] = field(default_factory=dict)
    volatility: float = 0.0
    seasonality_score: float = 0.0
    trend_direction: str = "stable"
    peak_months: List[str] = field(default_factory=list)
    low_months: List[str] = field(default_factory=list)
    health: BusinessHealth = field(default_factory=BusinessHealth)
    recommended_growth_rate: float = 0.0
    confidence_level: str = "low"
    months_of_history: int = 0


@dataclass
class SeasonalCost:
    """Expense line whose spend concentrates in a few months."""

    name: str
    peak_months: List[str]
    volatility: float


@dataclass
class ExpenseStructure:
    """Fixed/variable/seasonal split of expense lines."""

    fixed_costs: Dict[str, float] = field(default_factory=dict)
    variable_cost_ratios: Dict[str, float] = field(default_factory=dict)
    seasonal_costs: List[SeasonalCost] = field(default_factory=list)

    @property
    def total_fixed(self) -> float:
        return sum(self.fixed_costs.values())

    @property
    def total_variable_ratio(self) -> float:
        return sum(self.variable_cost_ratios.values())


@dataclass
class CategorizedExpense:
    """Cost behavior and inflation assumption for one expense line."""

    name: str
    category: str
    behavior: str  # fixed | variable | stepped | seasonal
    monthly_average: float
    variability: float
    correlation_with_revenue: float
    scaling_factor: float
    inflation_rate: float
    seasonal_pattern: Optional[SeasonalPattern] = None


@dataclass
class InflationAssumptions:
    """Annual inflation rates (percent) applied to cost groups."""

    general: float
    labor: float
    material: float
    utility: float
    rent: float
    scenario: str = "base"


@dataclass
class CategorizationSummary:
    """Monthly-average totals per cost behavior."""

    total_expenses: float = 0.0
    fixed_costs: float = 0.0
    variable_costs: float = 0.0
    seasonal_costs: float = 0.0
    uncategorized: float = 0.0


@dataclass
class ExpenseCategorizationResult:
    """Categorized expenses plus their roll-ups."""

    expenses: List[CategorizedExpense] = field(default_factory=list)
    summary: CategorizationSummary = field(default_factory=CategorizationSummary)
    inflation: Optional[InflationAssumptions] = None
    categorized_percentage: float = 0.0
    average_correlation: float = 0.0
    inflation_coverage: float = 0.0

    def by_behavior(self, behavior: str) -> List[CategorizedExpense]:
        return [item for item in self.expenses if item.behavior == behavior]
