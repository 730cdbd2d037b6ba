"""Expense behavior classification and inflation assumptions."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pnl_forecast.domain.models.analysis import (
    CategorizationSummary,
    CategorizedExpense,
    ExpenseCategorizationResult,
    InflationAssumptions,
)
from pnl_forecast.domain.models.statement import NormalizedFinancialLine, ParsedStatement
from pnl_forecast.domain.services import stats
from pnl_forecast.settings.heuristics import ExpenseBehaviorRules, InflationTable

logger = logging.getLogger(__name__)


class ExpenseCategorizer:
    """Classify expense lines as fixed, variable, stepped or seasonal."""

    def __init__(
        self,
        rules: Optional[ExpenseBehaviorRules] = None,
        inflation: Optional[InflationTable] = None,
    ) -> None:
        self._rules = rules or ExpenseBehaviorRules()
        self._inflation = inflation or InflationTable()

    def categorize(self, statement: ParsedStatement) -> ExpenseCategorizationResult:
        revenue = statement.revenue.totals()
        expenses = [self.classify(line, revenue) for line in statement.expenses.data_lines()]
        volatility = stats.revenue_volatility(revenue)

        summary = self._summary(expenses, statement.expenses.totals())
        categorized = [item for item in expenses if item.category != self._rules.default_category]
        keyed = [item for item in expenses if self._inflation.has_rule_for(item.name)]
        return ExpenseCategorizationResult(
            expenses=expenses,
            summary=summary,
            inflation=self.inflation_assumptions(volatility),
            categorized_percentage=stats.safe_divide(len(categorized), len(expenses)) * 100.0,
            average_correlation=stats.mean([abs(item.correlation_with_revenue) for item in expenses]),
            inflation_coverage=stats.safe_divide(len(keyed), len(expenses)) * 100.0,
        )

    def classify(self, line: NormalizedFinancialLine, revenue: Sequence[float]) -> CategorizedExpense:
        rules = self._rules
        values = line.series()
        variability = stats.coefficient_of_variation(values)
        correlation = stats.pearson(values, revenue)
        behavior = self.behavior(values, variability, correlation)
        return CategorizedExpense(
            name=line.name,
            category=rules.category_for(line.name),
            behavior=behavior,
            monthly_average=stats.mean(values),
            variability=variability,
            correlation_with_revenue=correlation,
            scaling_factor=abs(correlation) if behavior == "variable" else 0.0,
            inflation_rate=self._inflation.rate_for(line.name, behavior),
            seasonal_pattern=stats.detect_seasonal_pattern(
                values,
                [mv.month for mv in line.values],
                min_points=rules.seasonal_min_points,
                peak_ratio=rules.seasonal_peak_ratio,
                month_ratio=rules.seasonal_month_ratio,
            ),
        )

    def behavior(self, values: Sequence[float], variability: float, correlation: float) -> str:
        """Ordered behavior rules; the first match wins."""
        rules = self._rules
        if abs(correlation) > rules.variable_correlation:
            return "variable"
        if variability < rules.fixed_variability:
            return "fixed"
        if self._is_stepped(values):
            return "stepped"
        return "seasonal"

    def inflation_assumptions(self, revenue_volatility: float) -> InflationAssumptions:
        table = self._inflation
        rates = dict(table.base_rates)
        scenario = "base"
        if revenue_volatility > table.high_volatility:
            rates = {key: value * table.high_inflation_multiplier for key, value in rates.items()}
            scenario = "high_inflation"
        return InflationAssumptions(
            general=rates["general"],
            labor=rates["labor"],
            material=rates["material"],
            utility=rates["utility"],
            rent=rates["rent"],
            scenario=scenario,
        )

    # ---- Internal helpers ----
    def _is_stepped(self, values: Sequence[float]) -> bool:
        if len(values) < 3:
            return False
        changes = 0
        for previous, current in zip(values, values[1:]):
            base = abs(previous) or 1.0
            if abs(current - previous) / base > self._rules.step_change:
                changes += 1
        return changes >= self._rules.min_step_changes

    @staticmethod
    def _summary(expenses: List[CategorizedExpense], totals: Sequence[float]) -> CategorizationSummary:
        def _sum(*behaviors: str) -> float:
            return sum(item.monthly_average for item in expenses if item.behavior in behaviors)

        average_total = stats.mean(totals)
        fixed = _sum("fixed")
        variable = _sum("variable")
        seasonal = _sum("seasonal", "stepped")
        return CategorizationSummary(
            total_expenses=average_total,
            fixed_costs=fixed,
            variable_costs=variable,
            seasonal_costs=seasonal,
            uncategorized=max(0.0, average_total - (fixed + variable + seasonal)),
        )
