"""Line-item scores, forecast methods and discovered drivers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SeasonalPattern:
    """Peak months detected in a monthly series."""

    peak_months: List[str]
    multiplier: float


@dataclass
class LineItemAnalysis:
    """Five [0, 1] scores plus revenue correlation for one line item."""

    name: str
    account_id: Optional[str]
    category: str  # revenue | expense
    total: float
    months: List[str]
    monthly_values: List[float]
    materiality: float
    variability: float
    predictability: float
    growth_impact: float
    data_quality: float
    correlation_with_revenue: float
    cagr: float = 0.0
    revenue_share: float = 0.0
    slope: float = 0.0
    intercept: float = 0.0

    def scores(self) -> Dict[str, float]:
        return {
            "materiality": self.materiality,
            "variability": self.variability,
            "predictability": self.predictability,
            "growth_impact": self.growth_impact,
            "data_quality": self.data_quality,
        }


@dataclass(frozen=True)
class ForecastMethod:
    """Tagged forecast method with its parameters."""

    kind: str
    parameters: Dict[str, float] = field(default_factory=dict)
    confidence: float = 0.5
    rule: str = ""


@dataclass(frozen=True)
class DiscoveredDriver:
    """Line item promoted to a driver for one discovery run."""

    analysis: LineItemAnalysis
    impact_score: float
    forecast_method: ForecastMethod
    confidence: str
    business_type: str
    trend: str
    growth_rate: float
    coverage: float
    seasonal_pattern: Optional[SeasonalPattern] = None

    @property
    def name(self) -> str:
        return self.analysis.name

    @property
    def category(self) -> str:
        return self.analysis.category

    @property
    def monthly_values(self) -> List[float]:
        return self.analysis.monthly_values

    @property
    def months(self) -> List[str]:
        return self.analysis.months

    def display_scores(self) -> Dict[str, int]:
        """Scores rounded to whole percentages for operators."""
        return {key: int(round(value * 100)) for key, value in self.analysis.scores().items()}


@dataclass
class DiscoverySummary:
    """Roll-up of a discovery run."""

    drivers_found: int = 0
    business_coverage: int = 0
    average_confidence: int = 0
    months_analyzed: int = 0
    data_quality: str = "poor"


@dataclass
class DriverRecommendations:
    """Driver names bucketed for presentation."""

    primary: List[str] = field(default_factory=list)
    secondary: List[str] = field(default_factory=list)
    excluded: List[str] = field(default_factory=list)


@dataclass
class DriverDiscoveryResult:
    """Outcome of scoring and selecting drivers from a statement."""

    drivers: List[DiscoveredDriver] = field(default_factory=list)
    analyses: List[LineItemAnalysis] = field(default_factory=list)
    summary: DiscoverySummary = field(default_factory=DiscoverySummary)
    recommendations: DriverRecommendations = field(default_factory=DriverRecommendations)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def revenue_drivers(self) -> List[DiscoveredDriver]:
        return [d for d in self.drivers if d.category == "revenue"]

    def expense_drivers(self) -> List[DiscoveredDriver]:
        return [d for d in self.drivers if d.category == "expense"]
