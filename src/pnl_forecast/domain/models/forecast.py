"""Scenario and driver-level forecast structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from pnl_forecast.domain.models.drivers import DiscoveredDriver


@dataclass
class GrowthAssumptions:
    """Growth, seasonality and cost assumptions for one scenario."""

    scenario: str
    monthly_growth_rate: float
    seasonal_adjustments: Dict[str, float] = field(default_factory=dict)
    variable_cost_ratio: float = 0.0
    fixed_cost_inflation: float = 0.0
    market_conditions: str = "stable"
    confidence: str = "medium"


@dataclass
class ForecastMonth:
    """Aggregate projection for one future month of a scenario."""

    month: str
    date: date
    revenue: float
    variable_costs: float
    fixed_costs: float
    expenses: float
    net_income: float
    growth_rate: float
    seasonal_multiplier: float


@dataclass
class ScenarioSummary:
    """Totals for a projected scenario."""

    total_revenue: float = 0.0
    total_expenses: float = 0.0
    total_net_income: float = 0.0
    average_monthly_growth: float = 0.0


@dataclass
class ScenarioForecast:
    """One scenario projected month by month."""

    assumptions: GrowthAssumptions
    months: List[ForecastMonth] = field(default_factory=list)
    summary: ScenarioSummary = field(default_factory=ScenarioSummary)

    @property
    def name(self) -> str:
        return self.assumptions.scenario


@dataclass
class ScenarioForecastResult:
    """Baseline, growth and downturn projections built together."""

    scenarios: Dict[str, ScenarioForecast] = field(default_factory=dict)
    last_actual_revenue: float = 0.0
    average_revenue: float = 0.0
    fixed_cost_base: float = 0.0

    def get(self, name: str) -> ScenarioForecast:
        return self.scenarios[name]


@dataclass(frozen=True)
class DriverAdjustment:
    """User override of a driver's projected values over a month range."""

    driver_name: str
    impact: float
    start_month: int = 0
    end_month: Optional[int] = None
    description: str = ""
    id: Optional[str] = None


@dataclass
class ProjectedDriver:
    """Driver with its projected monthly values."""

    driver: DiscoveredDriver
    base_value: float
    monthly_growth: float
    projected_values: List[float] = field(default_factory=list)
    adjustments: List[DriverAdjustment] = field(default_factory=list)
    confidence: str = "medium"

    @property
    def name(self) -> str:
        return self.driver.name

    @property
    def category(self) -> str:
        return self.driver.category


@dataclass
class MonthlyProjection:
    """Aggregated P&L for one projected month."""

    month: str
    date: date
    revenue: float
    expenses: float
    net_income: float
    cash_flow: float
    driver_values: Dict[str, float] = field(default_factory=dict)
    confidence_band: Tuple[float, float] = (0.0, 0.0)


@dataclass
class ForecastSummary:
    """Totals, averages and milestones for a driver forecast."""

    total_revenue: float = 0.0
    total_expenses: float = 0.0
    total_net_income: float = 0.0
    average_monthly_revenue: float = 0.0
    average_monthly_expenses: float = 0.0
    average_monthly_net_income: float = 0.0
    runway_months: int = 0
    break_even_month: Optional[int] = None
    key_insights: List[str] = field(default_factory=list)


@dataclass
class ForecastConfidence:
    """How much to trust a driver forecast."""

    overall: str
    data_quality: float
    trend_stability: float
    adjustment_impact: float
    revenue: float = 0.5
    expenses: float = 0.5


@dataclass
class DriverForecast:
    """Projection of every selected driver plus aggregates."""

    drivers: List[ProjectedDriver] = field(default_factory=list)
    projections: List[MonthlyProjection] = field(default_factory=list)
    summary: ForecastSummary = field(default_factory=ForecastSummary)
    confidence: Optional[ForecastConfidence] = None
    adjustments: List[DriverAdjustment] = field(default_factory=list)
    start: Optional[date] = None


@dataclass
class AdjustmentImpact:
    """Difference an adjustment set makes against the base forecast."""

    revenue_change: float
    expense_change: float
    net_income_change: float
    confidence_change: float


@dataclass
class AdjustedForecast:
    """Adjusted driver forecast plus its impact versus the base."""

    forecast: DriverForecast
    impact: AdjustmentImpact


@dataclass
class ScenarioDefinition:
    """Named set of adjustments compared against the base forecast."""

    id: str
    name: str
    adjustments: List[DriverAdjustment] = field(default_factory=list)
    description: str = ""


@dataclass
class ScenarioComparison:
    """Projections keyed by scenario id with value ranges across them."""

    projections: Dict[str, List[MonthlyProjection]] = field(default_factory=dict)
    revenue_range: Tuple[float, float] = (0.0, 0.0)
    net_income_range: Tuple[float, float] = (0.0, 0.0)
