"""Aggregate revenue/expense projection under baseline, growth and downturn."""
from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

from pnl_forecast.domain.models.analysis import ExpenseStructure, TrendAnalysis
from pnl_forecast.domain.models.forecast import (
    ForecastMonth,
    GrowthAssumptions,
    ScenarioForecast,
    ScenarioForecastResult,
    ScenarioSummary,
)
from pnl_forecast.domain.models.statement import ParsedStatement
from pnl_forecast.domain.services import stats
from pnl_forecast.settings.heuristics import ScenarioProfile, ScenarioSettings

logger = logging.getLogger(__name__)

MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def next_month(value: date, offset: int = 1) -> date:
    index = value.month - 1 + offset
    return date(value.year + index // 12, index % 12 + 1, 1)


def forecast_start(statement: ParsedStatement) -> date:
    """First projected month: the month after the last reported one."""
    last = statement.last_month() or statement.period_end.replace(day=1)
    return next_month(last)


class ScenarioForecastEngine:
    """Build growth assumptions per scenario and project them forward."""

    def __init__(self, settings: Optional[ScenarioSettings] = None) -> None:
        self._settings = settings or ScenarioSettings()

    def build_assumptions(
        self, trend: TrendAnalysis, structure: ExpenseStructure
    ) -> Dict[str, GrowthAssumptions]:
        settings = self._settings
        recommended = trend.recommended_growth_rate
        variable_ratio = structure.total_variable_ratio

        growth_rate = max(recommended * settings.growth.growth_multiplier, recommended)
        downturn_rate = min(
            recommended * settings.downturn.growth_multiplier,
            settings.downturn_growth_ceiling,
            recommended,
        )
        rates = {
            settings.baseline.name: recommended * settings.baseline.growth_multiplier,
            settings.growth.name: growth_rate,
            settings.downturn.name: downturn_rate,
        }
        confidences = {
            settings.baseline.name: trend.confidence_level,
            settings.growth.name: "medium" if trend.confidence_level == "high" else "low",
            settings.downturn.name: "medium",
        }
        return {
            profile.name: GrowthAssumptions(
                scenario=profile.name,
                monthly_growth_rate=rates[profile.name],
                seasonal_adjustments=self._seasonal_adjustments(profile, trend),
                variable_cost_ratio=variable_ratio * profile.variable_cost_multiplier,
                fixed_cost_inflation=profile.fixed_cost_inflation,
                market_conditions=profile.market_conditions,
                confidence=confidences[profile.name],
            )
            for profile in settings.profiles()
        }

    def generate(
        self,
        statement: ParsedStatement,
        trend: TrendAnalysis,
        structure: ExpenseStructure,
        months: int = 12,
        start: Optional[date] = None,
    ) -> ScenarioForecastResult:
        revenue = statement.revenue.totals()
        last_revenue = revenue[-1] if revenue else 0.0
        average_revenue = stats.mean(revenue)
        average_expense = stats.mean(statement.expenses.totals())
        variable_ratio = structure.total_variable_ratio
        # Expenses not explained by the variable-cost ratio form the fixed base.
        fixed_base = max(0.0, average_expense - average_revenue * variable_ratio / 100.0)
        first_month = start or forecast_start(statement)

        result = ScenarioForecastResult(
            last_actual_revenue=last_revenue,
            average_revenue=average_revenue,
            fixed_cost_base=fixed_base,
        )
        for name, assumptions in self.build_assumptions(trend, structure).items():
            projected = self._project(assumptions, last_revenue, fixed_base, months, first_month)
            result.scenarios[name] = ScenarioForecast(
                assumptions=assumptions,
                months=projected,
                summary=self._summary(projected, last_revenue),
            )
            logger.debug(
                "Scenario %s: %.2f%%/mo, revenue %.0f over %d months",
                name,
                assumptions.monthly_growth_rate,
                result.scenarios[name].summary.total_revenue,
                months,
            )
        return result

    # ---- Internal helpers ----
    def _seasonal_adjustments(self, profile: ScenarioProfile, trend: TrendAnalysis) -> Dict[str, float]:
        adjustments = {name: profile.seasonal_base for name in MONTH_NAMES}
        if trend.seasonality_score == 0:
            # A flat history has no meaningful peaks to tilt towards.
            return adjustments
        for label in trend.peak_months:
            key = stats.month_name(label)
            if key in adjustments:
                adjustments[key] = profile.seasonal_base * self._settings.peak_month_multiplier
        for label in trend.low_months:
            key = stats.month_name(label)
            if key in adjustments and key not in {stats.month_name(p) for p in trend.peak_months}:
                adjustments[key] = profile.seasonal_base * self._settings.low_month_multiplier
        return adjustments

    @staticmethod
    def _project(
        assumptions: GrowthAssumptions,
        last_revenue: float,
        fixed_base: float,
        months: int,
        first_month: date,
    ) -> List[ForecastMonth]:
        growth = assumptions.monthly_growth_rate / 100.0
        monthly_inflation = (1 + assumptions.fixed_cost_inflation / 100.0) ** (1 / 12)
        projected: List[ForecastMonth] = []
        trend_revenue = last_revenue
        for index in range(months):
            when = next_month(first_month, index)
            label = f"{MONTH_NAMES[when.month - 1]} {when.year}"
            seasonal = assumptions.seasonal_adjustments.get(MONTH_NAMES[when.month - 1], 1.0)
            trend_revenue *= 1 + growth
            revenue = trend_revenue * seasonal
            variable_costs = revenue * assumptions.variable_cost_ratio / 100.0
            fixed_costs = fixed_base * monthly_inflation ** (index + 1)
            expenses = variable_costs + fixed_costs
            projected.append(
                ForecastMonth(
                    month=label,
                    date=when,
                    revenue=revenue,
                    variable_costs=variable_costs,
                    fixed_costs=fixed_costs,
                    expenses=expenses,
                    net_income=revenue - expenses,
                    growth_rate=assumptions.monthly_growth_rate,
                    seasonal_multiplier=seasonal,
                )
            )
        return projected

    @staticmethod
    def _summary(projected: List[ForecastMonth], last_revenue: float) -> ScenarioSummary:
        revenues = [last_revenue] + [month.revenue for month in projected]
        return ScenarioSummary(
            total_revenue=sum(month.revenue for month in projected),
            total_expenses=sum(month.expenses for month in projected),
            total_net_income=sum(month.net_income for month in projected),
            average_monthly_growth=stats.mean(stats.month_over_month_growth(revenues)),
        )
