"""Receivables, payables and inventory estimated from P&L behavior.

The statement carries no balance sheet, so starting balances are inferred
from average monthly revenue and expenses using days-outstanding
assumptions, then rolled forward against each scenario's projection.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from pnl_forecast.domain.models.cash_flow import (
    WorkingCapitalAssumptions,
    WorkingCapitalComponents,
    WorkingCapitalMetrics,
    WorkingCapitalModel,
    WorkingCapitalMonth,
    WorkingCapitalProjection,
)
from pnl_forecast.domain.models.forecast import ForecastMonth, ScenarioForecastResult
from pnl_forecast.domain.models.statement import ParsedStatement
from pnl_forecast.domain.services import stats
from pnl_forecast.settings.heuristics import HeuristicSettings, ScenarioProfile, WorkingCapitalProfile

logger = logging.getLogger(__name__)


class WorkingCapitalModeler:
    """Estimate working-capital balances and project them per scenario."""

    def __init__(self, heuristics: Optional[HeuristicSettings] = None) -> None:
        self._heuristics = heuristics or HeuristicSettings()

    def estimate_components(
        self, statement: ParsedStatement, business_type: str = "service"
    ) -> WorkingCapitalComponents:
        profile = self._heuristics.working_capital_for(business_type)
        average_revenue = stats.mean(statement.revenue.totals())
        average_expense = stats.mean(statement.expenses.totals())
        return WorkingCapitalComponents(
            business_type=profile.business_type,
            accounts_receivable=average_revenue * profile.days_sales_outstanding / 30.0,
            accounts_payable=average_expense * profile.days_payable_outstanding / 30.0,
            inventory=average_revenue * profile.inventory_share,
            days_sales_outstanding=profile.days_sales_outstanding,
            days_payable_outstanding=profile.days_payable_outstanding,
            days_inventory_outstanding=profile.days_inventory_outstanding,
            inventory_turnover=profile.inventory_turnover,
            collection_pattern=profile.collection_pattern,
            payment_pattern=profile.payment_pattern,
            supplier_payment_days=profile.supplier_payment_days,
            early_payment_discount=profile.early_payment_discount,
            late_payment_penalty=profile.late_payment_penalty,
        )

    @staticmethod
    def metrics(components: WorkingCapitalComponents, average_revenue: float) -> WorkingCapitalMetrics:
        annual_revenue = average_revenue * 12
        net = components.net_working_capital
        return WorkingCapitalMetrics(
            cash_conversion_cycle=(
                components.days_sales_outstanding
                + components.days_inventory_outstanding
                - components.days_payable_outstanding
            ),
            working_capital_percent_of_revenue=stats.safe_divide(net, annual_revenue) * 100.0,
            working_capital_turnover=stats.safe_divide(annual_revenue, net),
        )

    @staticmethod
    def assumptions_for(
        profile: ScenarioProfile, wc_profile: WorkingCapitalProfile
    ) -> WorkingCapitalAssumptions:
        return WorkingCapitalAssumptions(
            scenario=profile.name,
            collection_efficiency_change=profile.collection_efficiency_change,
            bad_debt_change=profile.bad_debt_change,
            payment_strategy=profile.payment_strategy,
            supplier_terms_change=profile.supplier_terms_change,
            scaling_factor=profile.working_capital_scaling,
            seasonal_need=wc_profile.seasonal_need,
            economic_conditions=profile.economic_conditions,
        )

    def model(
        self,
        statement: ParsedStatement,
        scenarios: ScenarioForecastResult,
        business_type: str = "service",
    ) -> WorkingCapitalModel:
        components = self.estimate_components(statement, business_type)
        profile = self._heuristics.working_capital_for(business_type)
        projections: Dict[str, WorkingCapitalProjection] = {}
        for scenario_profile in self._heuristics.scenarios.profiles():
            forecast = scenarios.scenarios.get(scenario_profile.name)
            if forecast is None:
                continue
            assumptions = self.assumptions_for(scenario_profile, profile)
            projections[scenario_profile.name] = WorkingCapitalProjection(
                scenario=scenario_profile.name,
                assumptions=assumptions,
                months=self.project(components, assumptions, forecast.months, profile),
            )
        return WorkingCapitalModel(
            components=components,
            metrics=self.metrics(components, stats.mean(statement.revenue.totals())),
            projections=projections,
        )

    @staticmethod
    def project(
        components: WorkingCapitalComponents,
        assumptions: WorkingCapitalAssumptions,
        months: Sequence[ForecastMonth],
        profile: WorkingCapitalProfile,
    ) -> List[WorkingCapitalMonth]:
        """Roll balances forward month by month against projected sales."""
        receivables = components.accounts_receivable
        payables = components.accounts_payable
        inventory = components.inventory
        efficiency = 1.0
        first_collection = components.collection_pattern[0] / 100.0
        first_payment = components.payment_pattern[0] / 100.0

        rolled: List[WorkingCapitalMonth] = []
        for month in months:
            sales = month.revenue
            expenses = month.expenses
            efficiency = min(
                profile.max_collection_efficiency,
                efficiency + assumptions.collection_efficiency_change / 100.0,
            )
            collected = (
                sales * first_collection * efficiency
                + receivables * profile.ar_carryover_collection * efficiency
            )
            paid = expenses * first_payment + payables * profile.ap_carryover_payment
            purchases = expenses * profile.inventory_purchase_share
            used = purchases * profile.inventory_usage_share

            ending_receivables = max(0.0, receivables + sales * (1 - first_collection) - collected)
            ending_payables = max(0.0, payables + expenses * (1 - first_payment) - paid)
            ending_inventory = inventory + purchases - used

            beginning_wc = receivables + inventory - payables
            ending_wc = ending_receivables + ending_inventory - ending_payables
            change = ending_wc - beginning_wc
            dso = ending_receivables / (sales or 1.0) * 30.0
            dpo = ending_payables / (expenses or 1.0) * 30.0
            dio = ending_inventory / (expenses or 1.0) * 30.0

            rolled.append(
                WorkingCapitalMonth(
                    month=month.month,
                    date=month.date,
                    sales=sales,
                    expenses=expenses,
                    beginning_receivables=receivables,
                    cash_collected=collected,
                    ending_receivables=ending_receivables,
                    beginning_payables=payables,
                    cash_paid=paid,
                    ending_payables=ending_payables,
                    beginning_inventory=inventory,
                    inventory_purchases=purchases,
                    inventory_used=used,
                    ending_inventory=ending_inventory,
                    beginning_working_capital=beginning_wc,
                    ending_working_capital=ending_wc,
                    working_capital_change=change,
                    cash_impact=-change,
                    days_sales_outstanding=dso,
                    days_payable_outstanding=dpo,
                    cash_conversion_cycle=dso + dio - dpo,
                    working_capital_ratio=ending_wc / (sales or 1.0) * 100.0,
                )
            )
            receivables, payables, inventory = ending_receivables, ending_payables, ending_inventory
        logger.debug("Working capital %s: %d months rolled forward", assumptions.scenario, len(rolled))
        return rolled
