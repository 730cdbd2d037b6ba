"""Operating, investing and financing cash flows per scenario."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from pnl_forecast.domain.models.cash_flow import (
    AssetModel,
    AssetMonth,
    CashFlowMonth,
    CashFlowProjection,
    CashFlowSummary,
    FinancingActivities,
    InvestingActivities,
    OperatingActivities,
    WorkingCapitalModel,
    WorkingCapitalMonth,
)
from pnl_forecast.domain.models.forecast import ForecastMonth, ScenarioForecastResult
from pnl_forecast.domain.services import stats
from pnl_forecast.settings.heuristics import CashFlowHeuristics

logger = logging.getLogger(__name__)


class CashFlowAssembler:
    """Combine P&L, working-capital and asset projections into statements."""

    def __init__(self, heuristics: Optional[CashFlowHeuristics] = None) -> None:
        self._heuristics = heuristics or CashFlowHeuristics()

    def assemble(
        self,
        scenarios: ScenarioForecastResult,
        working_capital: WorkingCapitalModel,
        assets: AssetModel,
        opening_cash: float = 0.0,
    ) -> Dict[str, CashFlowProjection]:
        statements: Dict[str, CashFlowProjection] = {}
        for name, forecast in scenarios.scenarios.items():
            wc_projection = working_capital.projections.get(name)
            asset_projection = assets.projections.get(name)
            statements[name] = self.assemble_scenario(
                name,
                forecast.months,
                wc_projection.months if wc_projection else [],
                asset_projection.months if asset_projection else [],
                opening_cash,
            )
        return statements

    def assemble_scenario(
        self,
        scenario: str,
        pnl: Sequence[ForecastMonth],
        working_capital: Sequence[WorkingCapitalMonth],
        assets: Sequence[AssetMonth],
        opening_cash: float = 0.0,
    ) -> CashFlowProjection:
        rules = self._heuristics
        months: List[CashFlowMonth] = []
        cash = opening_cash
        for pnl_month, wc_month, asset_month in zip(pnl, working_capital, assets):
            wc_change = wc_month.working_capital_change
            operating_parts = {
                "net_income": pnl_month.net_income,
                "depreciation": asset_month.depreciation,
                "receivables_change": -wc_change * rules.receivable_share,
                "inventory_change": -wc_change * rules.inventory_share,
                "payables_change": wc_change * rules.payable_share,
            }
            operating = OperatingActivities(total=sum(operating_parts.values()), **operating_parts)
            investing = InvestingActivities(
                capital_expenditures=-asset_month.additions,
                asset_disposals=asset_month.disposal_proceeds,
                equipment_purchases=-asset_month.additions * rules.equipment_purchase_share,
                technology_purchases=-asset_month.additions * rules.technology_purchase_share,
                total=asset_month.net_capex_cash_flow,
            )
            debt_repayment = -pnl_month.revenue * rules.debt_service_rate
            owner_draws = -max(0.0, pnl_month.net_income) * rules.owner_draw_rate
            financing = FinancingActivities(
                debt_repayment=debt_repayment,
                owner_draws=owner_draws,
                total=debt_repayment + owner_draws,
            )
            net_change = operating.total + investing.total + financing.total
            beginning = cash
            cash += net_change
            months.append(
                CashFlowMonth(
                    month=pnl_month.month,
                    date=pnl_month.date,
                    operating=operating,
                    investing=investing,
                    financing=financing,
                    net_cash_change=net_change,
                    beginning_cash=beginning,
                    ending_cash=cash,
                    operating_margin=stats.safe_divide(pnl_month.net_income, pnl_month.revenue) * 100.0,
                    cash_margin=stats.safe_divide(operating.total, pnl_month.revenue) * 100.0,
                    working_capital_balance=wc_month.ending_working_capital,
                    total_assets=asset_month.ending_net_assets + wc_month.ending_working_capital + cash,
                    cash_conversion_cycle=wc_month.cash_conversion_cycle,
                )
            )
        summary = self.summarize(months, pnl, assets, opening_cash)
        logger.debug(
            "Cash flow %s: ending cash %.0f, %d negative months",
            scenario,
            summary.ending_cash,
            summary.negative_cash_flow_months,
        )
        return CashFlowProjection(scenario=scenario, opening_cash=opening_cash, months=months, summary=summary)

    @staticmethod
    def summarize(
        months: Sequence[CashFlowMonth],
        pnl: Sequence[ForecastMonth],
        assets: Sequence[AssetMonth],
        opening_cash: float = 0.0,
    ) -> CashFlowSummary:
        if not months:
            return CashFlowSummary(ending_cash=opening_cash)
        changes = [month.net_cash_change for month in months]
        total = sum(changes)
        average = total / len(changes)
        operating_total = sum(month.operating.total for month in months)
        revenue_total = sum(month.revenue for month in pnl[: len(months)])
        average_assets = stats.mean([month.ending_net_assets for month in assets[: len(months)]])
        average_wc = stats.mean([abs(month.working_capital_balance) for month in months])
        ending = months[-1].ending_cash
        return CashFlowSummary(
            total_cash_generated=total,
            average_monthly_cash_flow=average,
            cash_flow_volatility=stats.population_std(changes),
            ending_cash=ending,
            operating_cash_flow_margin=stats.safe_divide(operating_total, revenue_total) * 100.0,
            cash_return_on_assets=stats.safe_divide(operating_total, average_assets) * 100.0,
            working_capital_efficiency=stats.safe_divide(revenue_total, average_wc),
            months_of_cash_cushion=stats.safe_divide(ending, abs(average)),
            negative_cash_flow_months=sum(1 for change in changes if change < 0),
            largest_cash_outflow=min(changes),
        )
