"""Working capital, fixed asset and cash-flow statement structures."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Tuple


@dataclass
class WorkingCapitalComponents:
    """Estimated current balances and their behavioral parameters."""

    business_type: str
    accounts_receivable: float
    accounts_payable: float
    inventory: float
    days_sales_outstanding: float
    days_payable_outstanding: float
    days_inventory_outstanding: float
    inventory_turnover: float
    collection_pattern: Tuple[float, ...]
    payment_pattern: Tuple[float, ...]
    supplier_payment_days: float
    early_payment_discount: float
    late_payment_penalty: float

    @property
    def net_working_capital(self) -> float:
        return self.accounts_receivable + self.inventory - self.accounts_payable


@dataclass
class WorkingCapitalMetrics:
    """Cycle and efficiency measures for the estimated balances."""

    cash_conversion_cycle: float
    working_capital_percent_of_revenue: float
    working_capital_turnover: float


@dataclass
class WorkingCapitalAssumptions:
    """Scenario-specific collection and payment behavior."""

    scenario: str
    collection_efficiency_change: float
    bad_debt_change: float
    payment_strategy: str
    supplier_terms_change: float
    scaling_factor: float
    seasonal_need: float
    economic_conditions: str


@dataclass
class WorkingCapitalMonth:
    """Roll-forward of receivables, payables and inventory for one month."""

    month: str
    date: date
    sales: float
    expenses: float
    beginning_receivables: float
    cash_collected: float
    ending_receivables: float
    beginning_payables: float
    cash_paid: float
    ending_payables: float
    beginning_inventory: float
    inventory_purchases: float
    inventory_used: float
    ending_inventory: float
    beginning_working_capital: float
    ending_working_capital: float
    working_capital_change: float
    cash_impact: float
    days_sales_outstanding: float
    days_payable_outstanding: float
    cash_conversion_cycle: float
    working_capital_ratio: float


@dataclass
class WorkingCapitalProjection:
    """Working-capital roll-forward for one scenario."""

    scenario: str
    assumptions: WorkingCapitalAssumptions
    months: List[WorkingCapitalMonth] = field(default_factory=list)


@dataclass
class WorkingCapitalModel:
    """Estimated balances plus per-scenario projections."""

    components: WorkingCapitalComponents
    metrics: WorkingCapitalMetrics
    projections: Dict[str, WorkingCapitalProjection] = field(default_factory=dict)


@dataclass
class AssetCategory:
    """Estimated fixed-asset class with its depreciation behavior."""

    name: str
    share: float
    gross_value: float
    accumulated_depreciation: float
    useful_life_years: float
    method: str
    capex_pattern: str

    @property
    def net_value(self) -> float:
        return self.gross_value - self.accumulated_depreciation


@dataclass
class CapexAssumptions:
    """Scenario capex intensity and funding mix."""

    scenario: str
    growth_capex_ratio: float
    replacement_multiplier: float
    strategy: str
    maintenance_share: float
    expansion_threshold: float
    cash_funded_share: float


@dataclass
class AssetMonth:
    """Fixed-asset roll-forward for one month."""

    month: str
    date: date
    revenue: float
    beginning_net_assets: float
    growth_capex: float
    base_capex: float
    additions: float
    depreciation: float
    disposals: float
    ending_net_assets: float
    additions_by_category: Dict[str, float] = field(default_factory=dict)
    depreciation_by_category: Dict[str, float] = field(default_factory=dict)
    capex_cash: float = 0.0
    disposal_proceeds: float = 0.0
    net_capex_cash_flow: float = 0.0
    asset_turnover: float = 0.0
    depreciation_percent_of_revenue: float = 0.0
    capital_intensity: float = 0.0


@dataclass
class AssetProjection:
    """Asset roll-forward for one scenario."""

    scenario: str
    assumptions: CapexAssumptions
    months: List[AssetMonth] = field(default_factory=list)


@dataclass
class AssetModel:
    """Estimated asset base plus per-scenario projections."""

    categories: List[AssetCategory]
    monthly_depreciation: float
    projections: Dict[str, AssetProjection] = field(default_factory=dict)

    @property
    def total_net_value(self) -> float:
        return sum(category.net_value for category in self.categories)


@dataclass
class OperatingActivities:
    net_income: float
    depreciation: float
    receivables_change: float
    inventory_change: float
    payables_change: float
    total: float


@dataclass
class InvestingActivities:
    capital_expenditures: float
    asset_disposals: float
    equipment_purchases: float
    technology_purchases: float
    total: float


@dataclass
class FinancingActivities:
    debt_repayment: float
    owner_draws: float
    total: float


@dataclass
class CashFlowMonth:
    """Operating, investing and financing cash flows for one month."""

    month: str
    date: date
    operating: OperatingActivities
    investing: InvestingActivities
    financing: FinancingActivities
    net_cash_change: float
    beginning_cash: float
    ending_cash: float
    operating_margin: float = 0.0
    cash_margin: float = 0.0
    working_capital_balance: float = 0.0
    total_assets: float = 0.0
    cash_conversion_cycle: float = 0.0


@dataclass
class CashFlowSummary:
    """Aggregate cash generation and risk measures."""

    total_cash_generated: float = 0.0
    average_monthly_cash_flow: float = 0.0
    cash_flow_volatility: float = 0.0
    ending_cash: float = 0.0
    operating_cash_flow_margin: float = 0.0
    cash_return_on_assets: float = 0.0
    working_capital_efficiency: float = 0.0
    months_of_cash_cushion: float = 0.0
    negative_cash_flow_months: int = 0
    largest_cash_outflow: float = 0.0


@dataclass
class CashFlowProjection:
    """Cash-flow statement series for one scenario."""

    scenario: str
    opening_cash: float
    months: List[CashFlowMonth] = field(default_factory=list)
    summary: CashFlowSummary = field(default_factory=CashFlowSummary)
