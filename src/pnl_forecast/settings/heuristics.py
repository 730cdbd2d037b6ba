"""Named heuristic records used by the forecasting services.

Every business constant the services rely on lives here as a frozen dataclass
so callers can swap in calibrated values without touching the algorithms:

- scoring weights and selection thresholds for driver discovery
- trend damping for the recommended growth rate
- keyword tables for expense categories and inflation
- scenario profiles (growth, working capital, capex)
- cash-flow and insight scoring weights
- the catch-all account classifier used by the robust baseline
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class ScoringWeights:
    """Composite weights and normalisation caps for line-item scores."""

    materiality: float = 0.3
    variability: float = 0.2
    predictability: float = 0.2
    growth_impact: float = 0.2
    data_quality: float = 0.1
    variability_cap: float = 5.0
    growth_impact_scale: float = 5.0
    min_growth_months: int = 6
    min_line_total: float = 1.0


@dataclass(frozen=True)
class SelectionCriteria:
    """Thresholds a scored line must exceed to become a driver."""

    minimum_score: float = 0.2
    minimum_materiality: float = 0.005
    minimum_data_quality: float = 0.05


@dataclass(frozen=True)
class TrendDamping:
    """Damping applied to the raw growth rate before it is used for forecasting."""

    high_volatility: float = 0.5
    high_volatility_factor: float = 0.7
    medium_volatility: float = 0.3
    medium_volatility_factor: float = 0.85
    min_history_months: int = 6
    short_history_factor: float = 0.8
    floor: float = -10.0
    ceiling: float = 15.0
    volatile_rate_std: float = 50.0
    direction_threshold: float = 5.0


@dataclass(frozen=True)
class SectionGroups:
    """Report row groups that switch the current section while walking rows."""

    revenue: Tuple[str, ...] = ("Income", "OtherIncome")
    expense: Tuple[str, ...] = ("Expenses", "COGS", "OtherExpenses")


@dataclass(frozen=True)
class KeywordRule:
    """Maps account-name keywords to a label and an optional rate."""

    label: str
    keywords: Tuple[str, ...]
    rate: float = 0.0

    def matches(self, name: str) -> bool:
        lowered = name.lower()
        return any(keyword in lowered for keyword in self.keywords)


@dataclass(frozen=True)
class InflationTable:
    """Annual inflation assumptions (percent) keyed by expense keywords."""

    rules: Tuple[KeywordRule, ...] = (
        KeywordRule("labor", ("salary", "salaries", "wage", "payroll", "labor", "employee"), 4.5),
        KeywordRule("rent", ("rent", "lease", "office"), 3.8),
        KeywordRule("utilities", ("electric", "gas", "water", "utility", "utilities", "phone", "internet"), 4.2),
        KeywordRule("materials", ("material", "supply", "supplies", "equipment", "tools", "parts"), 3.5),
        KeywordRule("insurance", ("insurance",), 5.0),
    )
    variable_fallback: float = 2.8
    general_fallback: float = 3.2
    base_rates: Tuple[Tuple[str, float], ...] = (
        ("general", 3.2),
        ("labor", 4.5),
        ("material", 3.5),
        ("utility", 4.2),
        ("rent", 3.8),
    )
    high_volatility: float = 0.5
    high_inflation_multiplier: float = 1.2

    def has_rule_for(self, name: str) -> bool:
        return any(rule.matches(name) for rule in self.rules)

    def rate_for(self, name: str, behavior: str) -> float:
        for rule in self.rules:
            if rule.matches(name):
                return rule.rate
        return self.variable_fallback if behavior == "variable" else self.general_fallback


@dataclass(frozen=True)
class ExpenseBehaviorRules:
    """Thresholds used to classify expense cost behavior."""

    variable_correlation: float = 0.7
    fixed_variability: float = 0.15
    step_change: float = 0.5
    min_step_changes: int = 2
    seasonal_min_points: int = 6
    seasonal_peak_ratio: float = 1.5
    seasonal_month_ratio: float = 1.3
    categories: Tuple[KeywordRule, ...] = (
        KeywordRule("Labor & Wages", ("salary", "salaries", "wage", "payroll", "labor")),
        KeywordRule("Facilities & Rent", ("rent", "lease", "office")),
        KeywordRule("Materials & Supplies", ("material", "supply", "supplies", "equipment")),
        KeywordRule("Marketing & Sales", ("marketing", "advertising")),
        KeywordRule("Insurance", ("insurance",)),
        KeywordRule("Utilities & Communications", ("utility", "utilities", "phone", "internet")),
        KeywordRule("Transportation", ("travel", "fuel", "vehicle")),
        KeywordRule("Professional Services", ("professional", "legal", "accounting")),
    )
    default_category: str = "Other Operating Expenses"

    def category_for(self, name: str) -> str:
        for rule in self.categories:
            if rule.matches(name):
                return rule.label
        return self.default_category


@dataclass(frozen=True)
class ScenarioProfile:
    """Growth, working-capital and capex assumptions for one scenario."""

    name: str
    growth_multiplier: float
    seasonal_base: float
    variable_cost_multiplier: float
    fixed_cost_inflation: float
    market_conditions: str
    collection_efficiency_change: float
    bad_debt_change: float
    payment_strategy: str
    supplier_terms_change: float
    working_capital_scaling: float
    economic_conditions: str
    capex_multiplier: float
    replacement_multiplier: float
    capex_strategy: str
    maintenance_share: float
    expansion_threshold: float
    cash_funded_share: float


BASELINE = ScenarioProfile(
    name="baseline",
    growth_multiplier=1.0,
    seasonal_base=1.0,
    variable_cost_multiplier=1.0,
    fixed_cost_inflation=3.0,
    market_conditions="stable",
    collection_efficiency_change=0.0,
    bad_debt_change=0.0,
    payment_strategy="balanced",
    supplier_terms_change=0.0,
    working_capital_scaling=1.0,
    economic_conditions="normal",
    capex_multiplier=1.0,
    replacement_multiplier=1.0,
    capex_strategy="moderate",
    maintenance_share=50.0,
    expansion_threshold=20.0,
    cash_funded_share=80.0,
)

GROWTH = ScenarioProfile(
    name="growth",
    growth_multiplier=1.5,
    seasonal_base=1.2,
    variable_cost_multiplier=0.95,
    fixed_cost_inflation=4.0,
    market_conditions="expanding",
    collection_efficiency_change=0.5,
    bad_debt_change=-0.1,
    payment_strategy="aggressive",
    supplier_terms_change=10.0,
    working_capital_scaling=1.1,
    economic_conditions="expansion",
    capex_multiplier=1.5,
    replacement_multiplier=1.2,
    capex_strategy="aggressive",
    maintenance_share=30.0,
    expansion_threshold=25.0,
    cash_funded_share=60.0,
)

DOWNTURN = ScenarioProfile(
    name="downturn",
    growth_multiplier=0.3,
    seasonal_base=0.8,
    variable_cost_multiplier=1.05,
    fixed_cost_inflation=2.0,
    market_conditions="contracting",
    collection_efficiency_change=-0.3,
    bad_debt_change=0.5,
    payment_strategy="conservative",
    supplier_terms_change=-5.0,
    working_capital_scaling=0.9,
    economic_conditions="recession",
    capex_multiplier=0.4,
    replacement_multiplier=0.7,
    capex_strategy="conservative",
    maintenance_share=70.0,
    expansion_threshold=10.0,
    cash_funded_share=80.0,
)


@dataclass(frozen=True)
class ScenarioSettings:
    """Scenario profiles plus the seasonal tilt applied to peak and low months."""

    baseline: ScenarioProfile = BASELINE
    growth: ScenarioProfile = GROWTH
    downturn: ScenarioProfile = DOWNTURN
    downturn_growth_ceiling: float = -2.0
    peak_month_multiplier: float = 1.25
    low_month_multiplier: float = 0.75

    def profiles(self) -> Tuple[ScenarioProfile, ScenarioProfile, ScenarioProfile]:
        return (self.baseline, self.growth, self.downturn)

    def get(self, name: str) -> ScenarioProfile:
        for profile in self.profiles():
            if profile.name == name:
                return profile
        raise KeyError(f"Unknown scenario: {name}")


@dataclass(frozen=True)
class WorkingCapitalProfile:
    """Receivable/payable/inventory behavior for a business type."""

    business_type: str
    days_sales_outstanding: float
    days_payable_outstanding: float
    inventory_share: float
    inventory_turnover: float
    days_inventory_outstanding: float
    collection_pattern: Tuple[float, float, float, float]
    payment_pattern: Tuple[float, float, float] = (50.0, 40.0, 10.0)
    supplier_payment_days: float = 30.0
    early_payment_discount: float = 2.0
    late_payment_penalty: float = 1.5
    seasonal_need: float = 1.2
    ar_carryover_collection: float = 0.4
    ap_carryover_payment: float = 0.5
    inventory_purchase_share: float = 0.1
    inventory_usage_share: float = 0.9
    max_collection_efficiency: float = 1.1


SERVICE_WORKING_CAPITAL = WorkingCapitalProfile(
    business_type="service",
    days_sales_outstanding=35.0,
    days_payable_outstanding=30.0,
    inventory_share=0.05,
    inventory_turnover=24.0,
    days_inventory_outstanding=15.0,
    collection_pattern=(70.0, 25.0, 4.0, 1.0),
)

PRODUCT_WORKING_CAPITAL = WorkingCapitalProfile(
    business_type="product",
    days_sales_outstanding=45.0,
    days_payable_outstanding=40.0,
    inventory_share=0.25,
    inventory_turnover=6.0,
    days_inventory_outstanding=60.0,
    collection_pattern=(60.0, 30.0, 8.0, 2.0),
)


@dataclass(frozen=True)
class AssetClassProfile:
    """Share of the fixed-asset base and depreciation behavior for one class."""

    name: str
    share: float
    useful_life_years: float
    method: str
    capex_pattern: str


@dataclass(frozen=True)
class AssetProfile:
    """Fixed-asset estimation and capex timing assumptions."""

    classes: Tuple[AssetClassProfile, ...] = (
        AssetClassProfile("Equipment", 0.5, 7, "straight_line", "growth_driven"),
        AssetClassProfile("Vehicles", 0.3, 5, "double_declining", "replacement_only"),
        AssetClassProfile("Technology", 0.1, 3, "straight_line", "regular"),
        AssetClassProfile("Buildings & Improvements", 0.1, 15, "straight_line", "seasonal"),
    )
    depreciation_keywords: Tuple[str, ...] = ("depreciation", "amortization", "amortisation")
    fallback_depreciation_share: float = 0.02
    accumulated_share: float = 0.4
    growth_capex_ratio: float = 8.0
    base_capex_rate: float = 0.15
    disposal_share: float = 0.1
    disposal_recovery: float = 0.2
    average_asset_life: float = 6.0
    seasonal_timing: Tuple[float, ...] = (5, 8, 15, 20, 15, 10, 8, 5, 5, 3, 3, 3)
    default_timing: float = 8.0

    def timing_for(self, month_index: int) -> float:
        if 0 <= month_index < len(self.seasonal_timing):
            return float(self.seasonal_timing[month_index])
        return self.default_timing


@dataclass(frozen=True)
class CashFlowHeuristics:
    """Splits and rates used when no balance sheet is available."""

    receivable_share: float = 0.6
    inventory_share: float = 0.1
    payable_share: float = 0.3
    equipment_purchase_share: float = 0.5
    technology_purchase_share: float = 0.1
    debt_service_rate: float = 0.005
    owner_draw_rate: float = 0.3


@dataclass(frozen=True)
class InsightWeights:
    """Ranking weights and thresholds for the insight engine."""

    priority: Tuple[Tuple[str, float], ...] = (("high", 100.0), ("medium", 50.0), ("low", 10.0))
    type: Tuple[Tuple[str, float], ...] = (
        ("warning", 80.0),
        ("opportunity", 60.0),
        ("info", 30.0),
        ("success", 20.0),
    )
    impact_divisor: float = 100.0
    impact_cap: float = 50.0
    action_bonus: float = 25.0
    recency_bonus: float = 30.0
    max_insights: int = 15
    data_quality_penalty: Tuple[Tuple[str, float], ...] = (("high", 30.0), ("medium", 15.0), ("low", 5.0))
    catch_all_warning_share: float = 10.0
    catch_all_high_share: float = 25.0
    anomaly_z: float = 2.0
    moderate_z: float = 2.5
    extreme_z: float = 3.0
    growth_opportunity: float = 0.05
    decline_warning: float = -0.1
    excellent_margin: float = 50.0
    healthy_margin: float = 20.0
    concentration_high: float = 80.0
    concentration_diversified: float = 60.0
    new_business_months: int = 6

    def priority_weight(self, priority: str) -> float:
        return dict(self.priority).get(priority, 0.0)

    def type_weight(self, insight_type: str) -> float:
        return dict(self.type).get(insight_type, 0.0)

    def penalty_for(self, priority: str) -> float:
        return dict(self.data_quality_penalty).get(priority, 0.0)


@dataclass(frozen=True)
class CatchAllClassifier:
    """Flags catch-all accounts such as 'Miscellaneous' or 'Other Expenses'.

    Matching is done on word tokens of the account name, so 'Mother Supplies'
    is not treated as 'other'. This is a heuristic; tune ``keywords`` for
    charts of accounts where e.g. 'Other Revenue' is a real revenue stream.
    """

    keywords: Tuple[str, ...] = (
        "miscellaneous",
        "misc",
        "other",
        "uncategorized",
        "unassigned",
        "general",
        "various",
        "additional",
        "sundry",
    )

    def is_catch_all(self, name: str) -> bool:
        tokens = set(re.findall(r"[a-z]+", name.lower()))
        return any(keyword in tokens for keyword in self.keywords)


@dataclass(frozen=True)
class ProjectionSettings:
    """Confidence band and robust baseline tuning for the driver projector."""

    band_base: float = 0.1
    band_growth: float = 0.02
    low_confidence_widening: float = 1.5
    recent_window: int = 3
    outlier_sigma: float = 2.0
    adjustment_penalty: float = 0.1
    low_confidence_adjustments: int = 3


@dataclass(frozen=True)
class HeuristicSettings:
    """Bundle of every heuristic record, passed to the services as one object."""

    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    selection: SelectionCriteria = field(default_factory=SelectionCriteria)
    trend: TrendDamping = field(default_factory=TrendDamping)
    sections: SectionGroups = field(default_factory=SectionGroups)
    inflation: InflationTable = field(default_factory=InflationTable)
    expense_behavior: ExpenseBehaviorRules = field(default_factory=ExpenseBehaviorRules)
    scenarios: ScenarioSettings = field(default_factory=ScenarioSettings)
    working_capital: Dict[str, WorkingCapitalProfile] = field(
        default_factory=lambda: {
            "service": SERVICE_WORKING_CAPITAL,
            "product": PRODUCT_WORKING_CAPITAL,
        }
    )
    assets: AssetProfile = field(default_factory=AssetProfile)
    cash_flow: CashFlowHeuristics = field(default_factory=CashFlowHeuristics)
    insights: InsightWeights = field(default_factory=InsightWeights)
    catch_all: CatchAllClassifier = field(default_factory=CatchAllClassifier)
    projection: ProjectionSettings = field(default_factory=ProjectionSettings)

    def with_overrides(self, **changes) -> "HeuristicSettings":
        """Return a copy with selected records replaced."""
        return replace(self, **changes)

    def working_capital_for(self, business_type: Optional[str]) -> WorkingCapitalProfile:
        return self.working_capital.get(business_type or "service", SERVICE_WORKING_CAPITAL)
