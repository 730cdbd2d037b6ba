"""Fixed-asset base, depreciation and capex estimated from the P&L."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from pnl_forecast.domain.models.cash_flow import (
    AssetCategory,
    AssetModel,
    AssetMonth,
    AssetProjection,
    CapexAssumptions,
)
from pnl_forecast.domain.models.forecast import ForecastMonth, ScenarioForecastResult
from pnl_forecast.domain.models.statement import ParsedStatement
from pnl_forecast.domain.services import stats
from pnl_forecast.settings.heuristics import AssetProfile, HeuristicSettings, ScenarioProfile

logger = logging.getLogger(__name__)


class AssetModeler:
    """Infer an asset base from depreciation and roll it forward per scenario."""

    def __init__(self, heuristics: Optional[HeuristicSettings] = None) -> None:
        heuristics = heuristics or HeuristicSettings()
        self._profile: AssetProfile = heuristics.assets
        self._scenarios = heuristics.scenarios

    def monthly_depreciation(self, statement: ParsedStatement) -> float:
        """Average monthly depreciation from matching expense lines, else a revenue share."""
        keywords = self._profile.depreciation_keywords
        matched = [
            line
            for line in statement.expenses.data_lines()
            if any(keyword in line.name.lower() for keyword in keywords)
        ]
        if matched and statement.month_count:
            return sum(abs(line.total) for line in matched) / statement.month_count
        return stats.mean(statement.revenue.totals()) * self._profile.fallback_depreciation_share

    def estimate_categories(self, monthly_depreciation: float) -> List[AssetCategory]:
        categories: List[AssetCategory] = []
        for asset_class in self._profile.classes:
            gross = monthly_depreciation * asset_class.share * 12 * asset_class.useful_life_years
            categories.append(
                AssetCategory(
                    name=asset_class.name,
                    share=asset_class.share,
                    gross_value=gross,
                    accumulated_depreciation=gross * self._profile.accumulated_share,
                    useful_life_years=asset_class.useful_life_years,
                    method=asset_class.method,
                    capex_pattern=asset_class.capex_pattern,
                )
            )
        return categories

    def assumptions_for(self, profile: ScenarioProfile) -> CapexAssumptions:
        return CapexAssumptions(
            scenario=profile.name,
            growth_capex_ratio=self._profile.growth_capex_ratio * profile.capex_multiplier,
            replacement_multiplier=profile.replacement_multiplier,
            strategy=profile.capex_strategy,
            maintenance_share=profile.maintenance_share,
            expansion_threshold=profile.expansion_threshold,
            cash_funded_share=profile.cash_funded_share,
        )

    def model(self, statement: ParsedStatement, scenarios: ScenarioForecastResult) -> AssetModel:
        depreciation = self.monthly_depreciation(statement)
        categories = self.estimate_categories(depreciation)
        projections: Dict[str, AssetProjection] = {}
        for profile in self._scenarios.profiles():
            forecast = scenarios.scenarios.get(profile.name)
            if forecast is None:
                continue
            assumptions = self.assumptions_for(profile)
            projections[profile.name] = AssetProjection(
                scenario=profile.name,
                assumptions=assumptions,
                months=self.project(categories, assumptions, forecast.months, scenarios.last_actual_revenue),
            )
        return AssetModel(categories=categories, monthly_depreciation=depreciation, projections=projections)

    def project(
        self,
        categories: Sequence[AssetCategory],
        assumptions: CapexAssumptions,
        months: Sequence[ForecastMonth],
        last_actual_revenue: float,
    ) -> List[AssetMonth]:
        profile = self._profile
        gross = {category.name: category.gross_value for category in categories}
        accumulated = {category.name: category.accumulated_depreciation for category in categories}
        previous_revenue = last_actual_revenue

        rolled: List[AssetMonth] = []
        for month in months:
            revenue = month.revenue
            beginning_net = sum(gross.values()) - sum(accumulated.values())
            timing = profile.timing_for(month.date.month - 1) / 100.0

            growth_capex = max(0.0, (revenue - previous_revenue) * assumptions.growth_capex_ratio / 100.0)
            base_capex = (
                max(beginning_net, 0.0) * profile.base_capex_rate / 12 * timing * 12
            ) * assumptions.replacement_multiplier
            additions = growth_capex + base_capex
            disposals = additions * profile.disposal_share

            additions_by_category: Dict[str, float] = {}
            depreciation_by_category: Dict[str, float] = {}
            for category in categories:
                charge = self._depreciation(category, gross[category.name], accumulated[category.name])
                depreciation_by_category[category.name] = charge
                additions_by_category[category.name] = additions * category.share
                gross[category.name] += (additions - disposals) * category.share
                accumulated[category.name] += charge

            depreciation = sum(depreciation_by_category.values())
            ending_net = sum(gross.values()) - sum(accumulated.values())
            capex_cash = additions * assumptions.cash_funded_share / 100.0
            proceeds = disposals * profile.disposal_recovery
            average_net = (beginning_net + ending_net) / 2

            rolled.append(
                AssetMonth(
                    month=month.month,
                    date=month.date,
                    revenue=revenue,
                    beginning_net_assets=beginning_net,
                    growth_capex=growth_capex,
                    base_capex=base_capex,
                    additions=additions,
                    depreciation=depreciation,
                    disposals=disposals,
                    ending_net_assets=ending_net,
                    additions_by_category=additions_by_category,
                    depreciation_by_category=depreciation_by_category,
                    capex_cash=capex_cash,
                    disposal_proceeds=proceeds,
                    net_capex_cash_flow=proceeds - capex_cash,
                    asset_turnover=stats.safe_divide(revenue * 12, average_net) if revenue > 0 else 0.0,
                    depreciation_percent_of_revenue=(
                        depreciation / revenue * 100.0 if revenue > 0 else 0.0
                    ),
                    capital_intensity=ending_net / (revenue * 12) if revenue > 0 else 0.0,
                )
            )
            previous_revenue = revenue
        logger.debug("Assets %s: %d months rolled forward", assumptions.scenario, len(rolled))
        return rolled

    @staticmethod
    def _depreciation(category: AssetCategory, gross: float, accumulated: float) -> float:
        net = max(0.0, gross - accumulated)
        months = category.useful_life_years * 12
        if months <= 0:
            return 0.0
        if category.method == "double_declining":
            charge = net * 2 / months
        else:
            charge = gross / months
        return min(charge, net)
