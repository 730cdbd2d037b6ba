"""Line-item scoring and driver selection.

Every non-summary line is scored on five [0, 1] dimensions:

- materiality: share of its section total
- variability: coefficient of variation, capped and normalised
- predictability: R² of a linear fit against month index
- growth impact: magnitude of compound annual growth
- data quality: share of months with a non-zero value

Lines whose weighted composite clears the selection criteria become drivers.
Each driver then receives a forecast method from an ordered rule table; the
first rule whose predicate matches wins.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from pnl_forecast.domain.models.drivers import (
    DiscoveredDriver,
    DiscoverySummary,
    DriverDiscoveryResult,
    DriverRecommendations,
    ForecastMethod,
    LineItemAnalysis,
)
from pnl_forecast.domain.models.statement import NormalizedFinancialLine, ParsedStatement
from pnl_forecast.domain.services import stats
from pnl_forecast.settings.heuristics import (
    ExpenseBehaviorRules,
    HeuristicSettings,
    ScoringWeights,
    SelectionCriteria,
)

logger = logging.getLogger(__name__)

_TIER_SCORES = {"high": 0.8, "medium": 0.6, "low": 0.4}


@dataclass(frozen=True)
class MethodRule:
    """One row of the forecast-method decision table."""

    name: str
    predicate: Callable[[LineItemAnalysis], bool]
    build: Callable[[LineItemAnalysis], ForecastMethod]


def _percentage_of_revenue(analysis: LineItemAnalysis) -> ForecastMethod:
    return ForecastMethod(
        kind="percentage_of_revenue",
        parameters={"historical_ratio": analysis.revenue_share},
        confidence=abs(analysis.correlation_with_revenue),
        rule="revenue_correlated",
    )


def _trend_extrapolation(analysis: LineItemAnalysis) -> ForecastMethod:
    return ForecastMethod(
        kind="trend_extrapolation",
        parameters={"slope": analysis.slope, "intercept": analysis.intercept},
        confidence=analysis.predictability,
        rule="stable_trend",
    )


def _scenario_range(analysis: LineItemAnalysis) -> ForecastMethod:
    values = analysis.monthly_values
    return ForecastMethod(
        kind="scenario_range",
        parameters={
            "low": stats.percentile(values, 25),
            "base": stats.percentile(values, 50),
            "high": stats.percentile(values, 75),
        },
        confidence=0.6,
        rule="high_variability",
    )


def _seasonal_model(analysis: LineItemAnalysis) -> ForecastMethod:
    pattern = stats.detect_seasonal_pattern(analysis.monthly_values, analysis.months)
    return ForecastMethod(
        kind="seasonal_model",
        parameters={
            "base": stats.mean(analysis.monthly_values),
            "peak_multiplier": pattern.multiplier if pattern else 1.0,
        },
        confidence=0.55,
        rule="seasonal_peaks",
    )


def _simple_growth(analysis: LineItemAnalysis) -> ForecastMethod:
    return ForecastMethod(
        kind="simple_growth",
        parameters={"annual_growth": stats.compound_growth(analysis.monthly_values, 12)},
        confidence=0.5,
        rule="fallback",
    )


DEFAULT_METHOD_RULES: Tuple[MethodRule, ...] = (
    MethodRule("revenue_correlated", lambda a: a.correlation_with_revenue > 0.7, _percentage_of_revenue),
    MethodRule(
        "stable_trend",
        lambda a: a.predictability > 0.8 and a.variability < 0.2,
        _trend_extrapolation,
    ),
    MethodRule("high_variability", lambda a: a.variability > 0.5, _scenario_range),
    MethodRule("fallback", lambda a: True, _simple_growth),
)

# Not part of the default table; insert it ahead of "fallback" to forecast
# spiky lines with a seasonal model instead of plain growth.
SEASONAL_MODEL_RULE = MethodRule(
    "seasonal_peaks",
    lambda a: stats.detect_seasonal_pattern(a.monthly_values, a.months) is not None,
    _seasonal_model,
)


def assign_forecast_method(
    analysis: LineItemAnalysis, rules: Sequence[MethodRule] = DEFAULT_METHOD_RULES
) -> ForecastMethod:
    """Evaluate the rule table top-down and build the first match."""
    for rule in rules:
        if rule.predicate(analysis):
            return rule.build(analysis)
    return _simple_growth(analysis)


class LineItemScorer:
    """Compute the five line-item scores and the composite."""

    def __init__(self, weights: Optional[ScoringWeights] = None) -> None:
        self._weights = weights or ScoringWeights()

    @property
    def weights(self) -> ScoringWeights:
        return self._weights

    def score(
        self,
        line: NormalizedFinancialLine,
        category_total: float,
        revenue_totals: List[float],
    ) -> LineItemAnalysis:
        weights = self._weights
        values = line.series()
        cv = stats.coefficient_of_variation(values)
        slope, intercept, r_squared = stats.linear_fit(values)
        cagr = stats.compound_growth(values, weights.min_growth_months)
        non_zero = sum(1 for value in values if value != 0)
        revenue_total = sum(revenue_totals)

        return LineItemAnalysis(
            name=line.name,
            account_id=line.account_id,
            category=line.section,
            total=line.total,
            months=[mv.month for mv in line.values],
            monthly_values=values,
            materiality=min(stats.safe_divide(abs(line.total), abs(category_total)), 1.0),
            variability=min(cv, weights.variability_cap) / weights.variability_cap,
            predictability=r_squared,
            growth_impact=min(abs(cagr) * weights.growth_impact_scale, 1.0),
            data_quality=stats.safe_divide(non_zero, len(values)),
            correlation_with_revenue=stats.pearson(values, revenue_totals),
            cagr=cagr,
            revenue_share=stats.safe_divide(abs(line.total), abs(revenue_total)),
            slope=slope,
            intercept=intercept,
        )

    def composite(self, analysis: LineItemAnalysis) -> float:
        weights = self._weights
        return (
            analysis.materiality * weights.materiality
            + analysis.variability * weights.variability
            + analysis.predictability * weights.predictability
            + analysis.growth_impact * weights.growth_impact
            + analysis.data_quality * weights.data_quality
        )


class DriverDiscoveryService:
    """Score statement lines and promote the explanatory ones to drivers."""

    def __init__(
        self,
        heuristics: Optional[HeuristicSettings] = None,
        *,
        rules: Sequence[MethodRule] = DEFAULT_METHOD_RULES,
    ) -> None:
        heuristics = heuristics or HeuristicSettings()
        self._scorer = LineItemScorer(heuristics.scoring)
        self._criteria = heuristics.selection
        self._seasonal: ExpenseBehaviorRules = heuristics.expense_behavior
        self._rules = tuple(rules)

    def analyze_lines(self, statement: ParsedStatement) -> List[LineItemAnalysis]:
        """Score every line that has a non-trivial total."""
        revenue_totals = statement.revenue.totals()
        analyses: List[LineItemAnalysis] = []
        for section in (statement.revenue, statement.expenses):
            category_total = section.grand_total
            if category_total == 0:
                continue
            for line in section.data_lines():
                if abs(line.total) < self._scorer.weights.min_line_total:
                    continue
                analyses.append(self._scorer.score(line, category_total, revenue_totals))
        return analyses

    def discover(
        self,
        statement: ParsedStatement,
        criteria: Optional[SelectionCriteria] = None,
    ) -> DriverDiscoveryResult:
        criteria = criteria or self._criteria
        analyses = self.analyze_lines(statement)

        scored = [(analysis, self._scorer.composite(analysis)) for analysis in analyses]
        selected = [
            (analysis, composite)
            for analysis, composite in scored
            if composite > criteria.minimum_score
            and analysis.materiality > criteria.minimum_materiality
            and analysis.data_quality > criteria.minimum_data_quality
        ]
        selected.sort(key=lambda item: item[1], reverse=True)
        drivers = [self._promote(analysis, composite) for analysis, composite in selected]

        if not drivers:
            logger.warning(
                "No drivers selected from %d analysed lines over %d months",
                len(analyses),
                statement.month_count,
            )

        selected_names = {driver.name for driver in drivers}
        return DriverDiscoveryResult(
            drivers=drivers,
            analyses=analyses,
            summary=self._summary(drivers, statement.month_count),
            recommendations=DriverRecommendations(
                primary=[driver.name for driver in drivers[:5]],
                secondary=[driver.name for driver in drivers[5:]],
                excluded=[a.name for a in analyses if a.name not in selected_names],
            ),
            metadata={
                "lines_analyzed": len(analyses),
                "lines_selected": len(drivers),
                "period_start": statement.period_start.isoformat(),
                "period_end": statement.period_end.isoformat(),
                "criteria": asdict(criteria),
                "weights": asdict(self._scorer.weights),
                "method_rules": [rule.name for rule in self._rules],
            },
        )

    # ---- Internal helpers ----
    def _promote(self, analysis: LineItemAnalysis, composite: float) -> DiscoveredDriver:
        growth_rate = stats.compound_growth(analysis.monthly_values, 12)
        return DiscoveredDriver(
            analysis=analysis,
            impact_score=composite,
            forecast_method=assign_forecast_method(analysis, self._rules),
            confidence=self._confidence(analysis),
            business_type=self._business_type(analysis),
            trend=self._trend(growth_rate),
            growth_rate=growth_rate,
            coverage=analysis.materiality * 100.0,
            seasonal_pattern=stats.detect_seasonal_pattern(
                analysis.monthly_values,
                analysis.months,
                min_points=self._seasonal.seasonal_min_points,
                peak_ratio=self._seasonal.seasonal_peak_ratio,
                month_ratio=self._seasonal.seasonal_month_ratio,
            ),
        )

    @staticmethod
    def _confidence(analysis: LineItemAnalysis) -> str:
        blended = stats.mean(
            [
                analysis.predictability,
                analysis.data_quality,
                min(analysis.materiality * 2, 1.0),
                1 - analysis.variability,
            ]
        )
        if blended > 0.7:
            return "high"
        if blended > 0.4:
            return "medium"
        return "low"

    @staticmethod
    def _business_type(analysis: LineItemAnalysis) -> str:
        if analysis.category == "revenue":
            return "recurring_revenue" if analysis.variability < 0.2 else "variable_revenue"
        return "variable_cost" if analysis.correlation_with_revenue > 0.7 else "fixed_cost"

    @staticmethod
    def _trend(growth_rate: float) -> str:
        if growth_rate > 0.05:
            return "growing"
        if growth_rate < -0.05:
            return "declining"
        return "stable"

    @staticmethod
    def _summary(drivers: List[DiscoveredDriver], months: int) -> DiscoverySummary:
        if not drivers:
            return DiscoverySummary(months_analyzed=months)
        revenue_coverage = sum(d.coverage for d in drivers if d.category == "revenue")
        expense_coverage = sum(d.coverage for d in drivers if d.category == "expense")
        coverage = min(100.0, (revenue_coverage + expense_coverage) / 2)
        confidence = stats.mean([_TIER_SCORES[d.confidence] for d in drivers]) * 100
        quality = stats.mean([d.analysis.data_quality for d in drivers]) * 100
        if quality > 85:
            quality_label = "excellent"
        elif quality > 70:
            quality_label = "good"
        elif quality > 50:
            quality_label = "fair"
        else:
            quality_label = "poor"
        return DiscoverySummary(
            drivers_found=len(drivers),
            business_coverage=int(round(coverage)),
            average_confidence=int(round(confidence)),
            months_analyzed=months,
            data_quality=quality_label,
        )
