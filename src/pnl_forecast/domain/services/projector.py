"""Per-driver projection, user adjustments and scenario comparison."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

from pnl_forecast.domain.models.drivers import DiscoveredDriver
from pnl_forecast.domain.models.forecast import (
    AdjustedForecast,
    AdjustmentImpact,
    DriverAdjustment,
    DriverForecast,
    ForecastConfidence,
    ForecastSummary,
    MonthlyProjection,
    ProjectedDriver,
    ScenarioComparison,
    ScenarioDefinition,
)
from pnl_forecast.domain.services import stats
from pnl_forecast.domain.services.scenarios import MONTH_NAMES, next_month
from pnl_forecast.settings.heuristics import CatchAllClassifier, HeuristicSettings, ProjectionSettings

logger = logging.getLogger(__name__)

_CONFIDENCE_SCORES = {"high": 0.8, "medium": 0.5, "low": 0.2}


def _tier(score: float) -> str:
    if score > 0.7:
        return "high"
    if score > 0.4:
        return "medium"
    return "low"


class DriverProjector:
    """Project discovered drivers forward and aggregate them into a P&L."""

    def __init__(self, heuristics: Optional[HeuristicSettings] = None) -> None:
        heuristics = heuristics or HeuristicSettings()
        self._settings: ProjectionSettings = heuristics.projection
        self._catch_all: CatchAllClassifier = heuristics.catch_all

    def robust_baseline(self, name: str, values: Sequence[float]) -> float:
        """Starting value that is not dragged around by one-off spikes.

        Catch-all accounts start from their smallest positive month so a
        single large charge is not projected forward. Other accounts use the
        mean of the recent window after dropping points beyond the outlier
        threshold, falling back to the median of all positive months.
        """
        positive = [value for value in values if value > 0]
        if not positive:
            return 0.0
        if self._catch_all.is_catch_all(name):
            return min(positive)

        recent = positive[-self._settings.recent_window :]
        center = stats.mean(recent)
        spread = stats.population_std(recent)
        kept = [value for value in recent if abs(value - center) <= self._settings.outlier_sigma * spread]
        if not kept:
            ordered = sorted(positive)
            return ordered[len(ordered) // 2]
        return stats.mean(kept)

    def project_driver(self, driver: DiscoveredDriver, months: int, start: date) -> ProjectedDriver:
        base = self.robust_baseline(driver.name, driver.monthly_values)
        monthly_growth = driver.growth_rate / 12.0
        peak_months = set()
        multiplier = 1.0
        if driver.seasonal_pattern is not None:
            peak_months = {stats.month_name(label) for label in driver.seasonal_pattern.peak_months}
            multiplier = driver.seasonal_pattern.multiplier

        values: List[float] = []
        for index in range(months):
            when = next_month(start, index)
            seasonal = multiplier if MONTH_NAMES[when.month - 1] in peak_months else 1.0
            values.append(base * (1 + monthly_growth) ** (index + 1) * seasonal)

        return ProjectedDriver(
            driver=driver,
            base_value=base,
            monthly_growth=monthly_growth,
            projected_values=values,
            confidence=_tier((driver.analysis.predictability + driver.analysis.data_quality) / 2),
        )

    def generate_base_forecast(
        self,
        drivers: Sequence[DiscoveredDriver],
        months: int = 12,
        start: Optional[date] = None,
    ) -> DriverForecast:
        first_month = start or self._infer_start(drivers)
        projected = [self.project_driver(driver, months, first_month) for driver in drivers]
        return self._assemble(projected, first_month, adjustments=[])

    def apply_adjustments(
        self, forecast: DriverForecast, adjustments: Iterable[DriverAdjustment]
    ) -> AdjustedForecast:
        """Return a new forecast with adjustments applied; ``forecast`` is untouched."""
        by_name: Dict[str, ProjectedDriver] = {
            projected.name: replace(
                projected,
                projected_values=list(projected.projected_values),
                adjustments=list(projected.adjustments),
            )
            for projected in forecast.drivers
        }
        applied: List[DriverAdjustment] = list(forecast.adjustments)
        for adjustment in adjustments:
            target = by_name.get(adjustment.driver_name)
            if target is None:
                logger.debug("Ignoring adjustment for unknown driver %s", adjustment.driver_name)
                continue
            self._apply(target, adjustment)
            applied.append(adjustment)

        start = forecast.start or (forecast.projections[0].date if forecast.projections else None)
        adjusted = self._assemble(
            [by_name[projected.name] for projected in forecast.drivers],
            start or date.today().replace(day=1),
            adjustments=applied,
        )
        return AdjustedForecast(forecast=adjusted, impact=self._impact(forecast, adjusted))

    def generate_scenario_comparison(
        self, forecast: DriverForecast, scenarios: Sequence[ScenarioDefinition]
    ) -> ScenarioComparison:
        comparison = ScenarioComparison()
        for scenario in scenarios:
            adjusted = self.apply_adjustments(forecast, scenario.adjustments)
            comparison.projections[scenario.id] = adjusted.forecast.projections
        flattened = [p for projections in comparison.projections.values() for p in projections]
        if flattened:
            revenues = [p.revenue for p in flattened]
            net_incomes = [p.net_income for p in flattened]
            comparison.revenue_range = (min(revenues), max(revenues))
            comparison.net_income_range = (min(net_incomes), max(net_incomes))
        return comparison

    # ---- Internal helpers ----
    def _apply(self, target: ProjectedDriver, adjustment: DriverAdjustment) -> None:
        horizon = len(target.projected_values)
        if horizon == 0:
            return
        first = max(0, adjustment.start_month)
        last = horizon - 1 if adjustment.end_month is None else min(adjustment.end_month, horizon - 1)
        for index in range(first, last + 1):
            target.projected_values[index] *= 1 + adjustment.impact
        target.adjustments.append(adjustment)
        target.confidence = self._reduce_confidence(target.confidence, len(target.adjustments))

    def _reduce_confidence(self, confidence: str, adjustment_count: int) -> str:
        if adjustment_count == 0:
            return confidence
        if adjustment_count >= self._settings.low_confidence_adjustments:
            return "low"
        return "medium" if confidence == "high" else "low"

    def _assemble(
        self,
        projected: List[ProjectedDriver],
        start: date,
        adjustments: List[DriverAdjustment],
    ) -> DriverForecast:
        projections = self._aggregate(projected, start)
        return DriverForecast(
            drivers=projected,
            projections=projections,
            summary=self._summary(projections, projected),
            confidence=self._confidence(projected, adjustments),
            adjustments=adjustments,
            start=start,
        )

    def _aggregate(self, projected: List[ProjectedDriver], start: date) -> List[MonthlyProjection]:
        horizon = max((len(p.projected_values) for p in projected), default=0)
        widen = (
            self._settings.low_confidence_widening
            if any(p.confidence == "low" for p in projected)
            else 1.0
        )
        projections: List[MonthlyProjection] = []
        for index in range(horizon):
            when = next_month(start, index)
            revenue = 0.0
            expenses = 0.0
            breakdown: Dict[str, float] = {}
            for item in projected:
                value = item.projected_values[index] if index < len(item.projected_values) else 0.0
                breakdown[item.name] = value
                if item.category == "revenue":
                    revenue += value
                else:
                    expenses += value
            net_income = revenue - expenses
            uncertainty = abs(net_income) * (
                self._settings.band_base + self._settings.band_growth * index
            ) * widen
            projections.append(
                MonthlyProjection(
                    month=f"{MONTH_NAMES[when.month - 1]} {when.year}",
                    date=when,
                    revenue=revenue,
                    expenses=expenses,
                    net_income=net_income,
                    cash_flow=net_income,
                    driver_values=breakdown,
                    confidence_band=(net_income - uncertainty, net_income + uncertainty),
                )
            )
        return projections

    @staticmethod
    def _summary(projections: List[MonthlyProjection], projected: List[ProjectedDriver]) -> ForecastSummary:
        count = len(projections)
        if count == 0:
            return ForecastSummary()
        total_revenue = sum(p.revenue for p in projections)
        total_expenses = sum(p.expenses for p in projections)
        total_net = sum(p.net_income for p in projections)

        cumulative = 0.0
        runway = count
        break_even: Optional[int] = None
        for index, projection in enumerate(projections):
            cumulative += projection.cash_flow
            if projection.net_income >= 0 and break_even is None:
                break_even = index + 1
            if cumulative < 0:
                runway = index + 1

        return ForecastSummary(
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            total_net_income=total_net,
            average_monthly_revenue=total_revenue / count,
            average_monthly_expenses=total_expenses / count,
            average_monthly_net_income=total_net / count,
            runway_months=runway,
            break_even_month=break_even,
            key_insights=DriverProjector._key_insights(projections, projected),
        )

    @staticmethod
    def _key_insights(projections: List[MonthlyProjection], projected: List[ProjectedDriver]) -> List[str]:
        insights: List[str] = []
        first_revenue = projections[0].revenue
        last_revenue = projections[-1].revenue
        if last_revenue > first_revenue and first_revenue > 0:
            growth = (last_revenue - first_revenue) / first_revenue * 100
            insights.append(f"Revenue projected to grow {growth:.0f}% over the forecast period")

        profitable = sum(1 for p in projections if p.net_income > 0)
        if profitable == len(projections):
            insights.append("Business projected to remain profitable throughout the period")
        elif profitable > len(projections) / 2:
            insights.append(
                f"Business projected to be profitable {profitable} out of {len(projections)} months"
            )

        if projected:
            top = max(projected, key=lambda p: sum(abs(v) for v in p.projected_values))
            insights.append(f"{top.name} is the largest driver of financial performance")
        return insights

    def _confidence(
        self, projected: List[ProjectedDriver], adjustments: List[DriverAdjustment]
    ) -> ForecastConfidence:
        analyses = [p.driver.analysis for p in projected]
        data_quality = stats.mean([a.data_quality for a in analyses])
        stability = stats.mean([a.predictability for a in analyses])
        adjustment_impact = max(0.0, 1 - self._settings.adjustment_penalty * len(adjustments))
        revenue = [a.predictability for a in analyses if a.category == "revenue"]
        expenses = [a.predictability for a in analyses if a.category == "expense"]
        return ForecastConfidence(
            overall=_tier((data_quality + stability + adjustment_impact) / 3),
            data_quality=data_quality,
            trend_stability=stability,
            adjustment_impact=adjustment_impact,
            revenue=stats.mean(revenue) if revenue else 0.5,
            expenses=stats.mean(expenses) if expenses else 0.5,
        )

    @staticmethod
    def _impact(base: DriverForecast, adjusted: DriverForecast) -> AdjustmentImpact:
        def _score(forecast: DriverForecast) -> float:
            if forecast.confidence is None:
                return 0.0
            return _CONFIDENCE_SCORES[forecast.confidence.overall]

        return AdjustmentImpact(
            revenue_change=adjusted.summary.total_revenue - base.summary.total_revenue,
            expense_change=adjusted.summary.total_expenses - base.summary.total_expenses,
            net_income_change=adjusted.summary.total_net_income - base.summary.total_net_income,
            confidence_change=_score(adjusted) - _score(base),
        )

    @staticmethod
    def _infer_start(drivers: Sequence[DiscoveredDriver]) -> date:
        for driver in drivers:
            if not driver.months:
                continue
            try:
                last = datetime.strptime(driver.months[-1].strip(), "%b %Y").date()
            except ValueError:
                continue
            return next_month(last)
        fallback = date.today().replace(day=1)
        logger.warning("Could not infer forecast start from driver months; using %s", fallback)
        return fallback
