"""Revenue trend and expense structure analysis.

TrendAnalyzer condenses the revenue series into:
- month-over-month growth and its annualized equivalent
- volatility / seasonality and peak / low months
- a damped growth rate that the scenario engine starts from
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

import pandas as pd

from pnl_forecast.domain.models.analysis import (
    BusinessHealth,
    ExpenseStructure,
    SeasonalCost,
    TrendAnalysis,
)
from pnl_forecast.domain.models.statement import ParsedStatement
from pnl_forecast.domain.services import stats
from pnl_forecast.settings.heuristics import TrendDamping

logger = logging.getLogger(__name__)


class TrendAnalyzer:
    """Compute growth, volatility and health metrics for a statement."""

    def __init__(self, damping: Optional[TrendDamping] = None) -> None:
        self._damping = damping or TrendDamping()

    def analyze(self, statement: ParsedStatement) -> TrendAnalysis:
        revenue = statement.revenue.totals()
        expenses = statement.expenses.totals()
        months = statement.months

        rates = stats.month_over_month_growth(revenue)
        monthly_growth = stats.mean(rates)
        annualized = ((1 + monthly_growth / 100.0) ** 12 - 1) * 100.0
        volatility = stats.revenue_volatility(revenue)

        ranked = sorted(zip(months, revenue), key=lambda item: item[1], reverse=True)
        health = self._health(revenue, expenses)
        recommended, confidence = self._recommend(monthly_growth, volatility, len(revenue))

        analysis = TrendAnalysis(
            monthly_growth_rate=monthly_growth,
            annualized_growth_rate=annualized,
            growth_rates=rates,
            quarterly_revenue=self._quarterly(statement),
            volatility=volatility,
            seasonality_score=min(volatility, 1.0),
            trend_direction=self._direction(rates),
            peak_months=[label for label, _ in ranked[:3]],
            low_months=[label for label, _ in ranked[::-1][:3]],
            health=health,
            recommended_growth_rate=recommended,
            confidence_level=confidence,
            months_of_history=len(revenue),
        )
        logger.debug(
            "Trend: growth %.2f%%/mo, volatility %.3f, recommended %.2f%% (%s)",
            monthly_growth,
            volatility,
            recommended,
            confidence,
        )
        return analysis

    def analyze_expense_structure(self, statement: ParsedStatement) -> ExpenseStructure:
        """Split expense lines into fixed, variable and seasonal groups."""
        revenue = statement.revenue.totals()
        revenue_total = sum(revenue)
        structure = ExpenseStructure()
        for line in statement.expenses.data_lines():
            series = line.series()
            variability = stats.coefficient_of_variation(series)
            correlation = stats.pearson(series, revenue)
            if variability < 0.2:
                structure.fixed_costs[line.name] = stats.mean(series)
            elif correlation > 0.6:
                structure.variable_cost_ratios[line.name] = (
                    stats.safe_divide(line.total, revenue_total) * 100.0
                )
            elif variability > 0.3:
                ranked = sorted(zip(statement.months, series), key=lambda item: item[1], reverse=True)
                structure.seasonal_costs.append(
                    SeasonalCost(
                        name=line.name,
                        peak_months=[label for label, _ in ranked[:2]],
                        volatility=variability,
                    )
                )
        return structure

    # ---- Internal helpers ----
    def _recommend(self, monthly_growth: float, volatility: float, history: int):
        damping = self._damping
        rate = monthly_growth
        if volatility > damping.high_volatility:
            rate *= damping.high_volatility_factor
            confidence = "low"
        elif volatility > damping.medium_volatility:
            rate *= damping.medium_volatility_factor
            confidence = "medium"
        else:
            confidence = "high"
        if history < damping.min_history_months:
            rate *= damping.short_history_factor
            confidence = "low"
        return max(damping.floor, min(damping.ceiling, rate)), confidence

    def _direction(self, rates: List[float]) -> str:
        if len(rates) < 3:
            return "stable"
        if stats.population_std(rates) > self._damping.volatile_rate_std:
            return "volatile"
        average = stats.mean(rates)
        if average > self._damping.direction_threshold:
            return "growth"
        if average < -self._damping.direction_threshold:
            return "decline"
        return "stable"

    @staticmethod
    def _quarterly(statement: ParsedStatement) -> Dict[str, float]:
        if not statement.months:
            return {}
        frame = pd.DataFrame(
            {
                "date": pd.to_datetime(statement.month_dates),
                "revenue": statement.revenue.totals(),
            }
        )
        frame["quarter"] = [f"Q{ts.quarter} {ts.year}" for ts in frame["date"]]
        grouped = frame.groupby("quarter", sort=False)["revenue"].sum()
        return {label: float(value) for label, value in grouped.items()}

    @staticmethod
    def _health(revenue: List[float], expenses: List[float]) -> BusinessHealth:
        average_revenue = stats.mean(revenue)
        average_expenses = stats.mean(expenses)
        average_net = average_revenue - average_expenses
        return BusinessHealth(
            average_monthly_revenue=average_revenue,
            average_monthly_expenses=average_expenses,
            average_monthly_net_income=average_net,
            net_margin=stats.safe_divide(average_net, average_revenue) * 100.0,
        )
