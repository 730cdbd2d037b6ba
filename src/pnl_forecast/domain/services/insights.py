"""Ranked, human-readable findings about the statement and its drivers."""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from pnl_forecast.domain.models.drivers import DiscoveredDriver
from pnl_forecast.domain.models.forecast import MonthlyProjection
from pnl_forecast.domain.models.insights import Insight, InsightImpact, InsightReport
from pnl_forecast.domain.models.statement import ParsedStatement
from pnl_forecast.domain.services import stats
from pnl_forecast.settings.heuristics import CatchAllClassifier, InsightWeights

logger = logging.getLogger(__name__)

Analyzer = Callable[[ParsedStatement, Sequence[DiscoveredDriver]], List[Insight]]

_RECENT_GAP_WINDOW = 6


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def recent_average(values: Sequence[float], window: int = 3) -> float:
    """Mean of the last ``window`` positive values, 0 when there are none."""
    positive = [value for value in values if value > 0][-window:]
    return stats.mean(positive) if positive else 0.0


class InsightEngine:
    """Run independent analyzers, then score, rank and bucket what they find."""

    def __init__(
        self,
        weights: Optional[InsightWeights] = None,
        catch_all: Optional[CatchAllClassifier] = None,
    ) -> None:
        self._weights = weights or InsightWeights()
        self._catch_all = catch_all or CatchAllClassifier()
        self.analyzers: List[Tuple[str, Analyzer]] = [
            ("data_quality", self.analyze_data_quality),
            ("anomaly", self.analyze_anomalies),
            ("trend", self.analyze_trends),
            ("margin", self.analyze_margins),
            ("concentration", self.analyze_concentration),
        ]

    def generate(
        self,
        statement: ParsedStatement,
        drivers: Sequence[DiscoveredDriver],
        projections: Optional[Sequence[MonthlyProjection]] = None,
    ) -> InsightReport:
        found: List[Insight] = []
        for name, analyzer in self.analyzers:
            try:
                produced = analyzer(statement, drivers)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Insight analyzer %s failed; skipping", name)
                continue
            logger.debug("Insight analyzer %s produced %d insights", name, len(produced))
            found.extend(produced)

        ranked = self.rank(found)
        report = self.categorize(ranked)
        logger.info(
            "Generated %d insights (%d critical, data quality %d)",
            len(report.all),
            len(report.critical),
            report.data_quality_score,
        )
        return report

    # ---- Ranking ----
    def score(self, insight: Insight) -> float:
        weights = self._weights
        total = weights.priority_weight(insight.priority) + weights.type_weight(insight.type)
        if insight.impact is not None and insight.impact.value:
            total += min(abs(insight.impact.value) / weights.impact_divisor, weights.impact_cap)
        if insight.action:
            total += weights.action_bonus
        if insight.timeframe in ("current", "recent"):
            total += weights.recency_bonus
        return total

    def rank(self, insights: Sequence[Insight]) -> List[Insight]:
        for insight in insights:
            insight.score = self.score(insight)
        ordered = sorted(insights, key=lambda item: item.score, reverse=True)
        return ordered[: self._weights.max_insights]

    def categorize(self, insights: List[Insight]) -> InsightReport:
        data_quality = [i for i in insights if i.category == "data_quality"]
        penalty = sum(self._weights.penalty_for(i.priority) for i in data_quality)
        return InsightReport(
            all=insights,
            critical=[i for i in insights if i.priority == "high" and i.type == "warning"],
            warnings=[i for i in insights if i.type == "warning"],
            opportunities=[i for i in insights if i.type == "opportunity"],
            data_quality=data_quality,
            data_quality_score=int(max(0.0, 100.0 - penalty)),
        )

    @staticmethod
    def select_top_three(ranked: Sequence[Insight]) -> List[Insight]:
        """Primary concern, then a validating strength, then an opportunity.

        Empty slots are filled with the next highest scoring insights.
        """
        selected: List[Insight] = []

        def pick(predicate: Callable[[Insight], bool]) -> None:
            for insight in ranked:
                if predicate(insight) and insight not in selected:
                    selected.append(insight)
                    return

        pick(lambda i: i.type == "warning" and i.priority in ("high", "medium"))
        pick(lambda i: i.type == "success")
        pick(lambda i: i.type == "opportunity")
        for insight in ranked:
            if len(selected) >= 3:
                break
            if insight not in selected:
                selected.append(insight)
        return selected

    # ---- Analyzers ----
    def analyze_data_quality(
        self, statement: ParsedStatement, drivers: Sequence[DiscoveredDriver]
    ) -> List[Insight]:
        weights = self._weights
        insights: List[Insight] = []

        expense_drivers = [d for d in drivers if d.category == "expense"]
        catch_all = next((d for d in expense_drivers if self._catch_all.is_catch_all(d.name)), None)
        if catch_all is not None:
            total = sum(recent_average(d.monthly_values) for d in expense_drivers)
            value = recent_average(catch_all.monthly_values)
            share = stats.safe_divide(value, total) * 100.0
            if share > weights.catch_all_warning_share:
                insights.append(
                    Insight(
                        id=f"data-quality-catch-all-{_slug(catch_all.name)}",
                        type="warning",
                        priority="high" if share > weights.catch_all_high_share else "medium",
                        category="data_quality",
                        title="Uncategorized Expenses",
                        message=f"{share:.0f}% of expenses are uncategorized",
                        detail=f"{value:,.0f} in \"{catch_all.name}\" limits forecast accuracy",
                        action="Categorize these transactions in the accounting system",
                        impact=InsightImpact(value=-share, unit="%"),
                        timeframe="current",
                    )
                )

        revenue = statement.revenue.monthly_totals
        expenses = statement.expenses.totals()
        first_active = next(
            (
                index
                for index, month in enumerate(revenue)
                if month.value > 0 or (index < len(expenses) and expenses[index] > 0)
            ),
            None,
        )
        if first_active is None:
            insights.append(
                Insight(
                    id="data-quality-no-activity",
                    type="warning",
                    priority="high",
                    category="data_quality",
                    title="No Financial Activity Detected",
                    message="No revenue or expenses found in any month",
                    detail="Either the business has not started operations or no transactions were recorded",
                    action="Verify the source report and ensure transactions are categorized",
                    timeframe="historical",
                )
            )
            return insights

        operational = revenue[first_active:]
        gaps = [month for month in operational if month.value == 0]
        if not gaps:
            return insights
        operating_months = len(operational)
        is_new = operating_months <= weights.new_business_months
        if is_new:
            should_warn = len(gaps) >= 3 and len(gaps) > operating_months * 0.5
        else:
            should_warn = len(gaps) >= 2
        if not should_warn:
            return insights

        recent_labels = {month.month for month in revenue[-_RECENT_GAP_WINDOW:]}
        recent_gaps = [month for month in gaps if month.month in recent_labels]
        active = [month.value for month in operational if month.value > 0]
        age = f" ({operating_months} month old business)" if is_new else ""
        if len(recent_gaps) >= 2:
            action = "Recent revenue gaps detected; verify current operations and transaction recording"
        elif is_new:
            action = "Ensure all customer payments and sales are recorded"
        else:
            action = "Confirm whether zero revenue months are real downtime or missing data"
        detail = f"Zero revenue months: {', '.join(month.month for month in gaps)}"
        if active:
            detail += f". Average monthly revenue when active: {stats.mean(active):,.0f}"
        insights.append(
            Insight(
                id="data-quality-revenue-gaps",
                type="warning",
                priority="high" if len(recent_gaps) >= 3 or len(gaps) >= 5 else "medium",
                category="data_quality",
                title="Revenue Gaps in Operational Period",
                message=(
                    f"{len(gaps)} months with zero revenue since operations began "
                    f"({operational[0].month}){age}"
                ),
                detail=detail,
                action=action,
                timeframe="historical",
            )
        )
        return insights

    def analyze_anomalies(
        self, statement: ParsedStatement, drivers: Sequence[DiscoveredDriver]
    ) -> List[Insight]:
        weights = self._weights
        insights: List[Insight] = []
        for line in statement.expenses.data_lines():
            values = [value for value in line.series() if value > 0]
            if len(values) < 3:
                continue
            center = stats.mean(values)
            spread = stats.population_std(values)
            if spread == 0:
                continue
            last = values[-1]
            z_score = abs(last - center) / spread
            if z_score < max(weights.anomaly_z, weights.moderate_z):  # not an anomaly, or mild
                continue
            spike = last > center
            positive = spike and "revenue" in line.name.lower()
            insights.append(
                Insight(
                    id=f"anomaly-{_slug(line.name)}",
                    type="opportunity" if positive else "warning",
                    priority="high" if z_score >= weights.extreme_z else "medium",
                    category="anomaly",
                    title=(
                        "Revenue Spike Detected"
                        if positive
                        else f"Unusual {'Spike' if spike else 'Drop'} Detected"
                    ),
                    message=f"{line.name} {'spiked' if spike else 'dropped'} to {last:,.0f}",
                    detail=f"{z_score:.1f} standard deviations from normal range",
                    action=(
                        "Investigate what drove this increase and replicate it if possible"
                        if positive
                        else "Verify whether this is a one-time event or a new recurring pattern"
                    ),
                    impact=InsightImpact(value=abs(last - (center + weights.anomaly_z * spread))),
                    timeframe="recent",
                )
            )
        return insights

    def analyze_trends(
        self, statement: ParsedStatement, drivers: Sequence[DiscoveredDriver]
    ) -> List[Insight]:
        weights = self._weights
        revenue_drivers = [d for d in drivers if d.category == "revenue"]
        growing = [d for d in revenue_drivers if d.growth_rate > weights.growth_opportunity]
        declining = [d for d in revenue_drivers if d.growth_rate < weights.decline_warning]
        insights: List[Insight] = []

        if growing:
            fastest = max(growing, key=lambda d: d.growth_rate)
            insights.append(
                Insight(
                    id=f"trend-growth-{_slug(fastest.name)}",
                    type="opportunity",
                    priority="medium",
                    category="trend",
                    title="Growth Opportunity",
                    message=f"{fastest.name} growing {fastest.growth_rate * 100:.0f}% annually",
                    detail=f"Recent monthly average: {recent_average(fastest.monthly_values):,.0f}",
                    action="Increase marketing or capacity for this revenue stream",
                    impact=InsightImpact(value=fastest.growth_rate * 100, unit="%", timeframe="annual"),
                    timeframe="recent",
                )
            )
        if declining:
            worst = min(declining, key=lambda d: d.growth_rate)
            insights.append(
                Insight(
                    id=f"trend-decline-{_slug(worst.name)}",
                    type="warning",
                    priority="medium",
                    category="trend",
                    title="Revenue Decline Warning",
                    message=f"{worst.name} declining {abs(worst.growth_rate) * 100:.0f}% annually",
                    detail=f"Recent monthly average: {recent_average(worst.monthly_values):,.0f}",
                    action="Investigate causes and develop a recovery plan",
                    impact=InsightImpact(value=abs(worst.growth_rate) * 100, unit="%", timeframe="annual"),
                    timeframe="recent",
                )
            )
        return insights

    def analyze_margins(
        self, statement: ParsedStatement, drivers: Sequence[DiscoveredDriver]
    ) -> List[Insight]:
        weights = self._weights
        revenue = sum(recent_average(d.monthly_values) for d in drivers if d.category == "revenue")
        expense_averages = [
            (d.name, recent_average(d.monthly_values)) for d in drivers if d.category == "expense"
        ]
        expenses = sum(value for _, value in expense_averages)
        margin = (revenue - expenses) / revenue * 100.0 if revenue > 0 else 0.0
        totals = f"Revenue: {revenue:,.0f}, Expenses: {expenses:,.0f}"

        if margin > weights.excellent_margin:
            return [
                Insight(
                    id="margin-excellent",
                    type="success",
                    priority="medium",
                    category="margin",
                    title="Excellent Profit Margins",
                    message=f"Overall margin is {margin:.0f}%, well above typical levels",
                    detail=totals,
                    action="Consider expanding capacity or premium offerings",
                )
            ]
        if margin >= weights.healthy_margin:
            return [
                Insight(
                    id="margin-healthy",
                    type="success",
                    priority="low",
                    category="margin",
                    title="Healthy Profit Margins",
                    message=f"Overall margin is {margin:.0f}%, in the recommended range",
                    detail=totals,
                    action="Monitor for opportunities to optimize further",
                )
            ]

        top = sorted((item for item in expense_averages if item[1] > 0), key=lambda item: item[1], reverse=True)[:3]
        breakdown = (
            "Top expenses: " + ", ".join(f"{name} ({value:,.0f})" for name, value in top)
            if top
            else "Review all expense categories"
        )
        losing = margin <= 0
        return [
            Insight(
                id="margin-low",
                type="warning",
                priority="high" if losing else "medium",
                category="margin",
                title="Zero or Negative Profit Margins" if losing else "Low Profit Margins",
                message=(
                    f"Overall margin is {margin:.1f}%, "
                    + ("expenses exceed revenue" if losing else "below the recommended 20-30%")
                ),
                detail=f"{totals if revenue > 0 else 'No revenue detected in analysis period'}. {breakdown}",
                action=(
                    "Reduce costs or increase revenue to avoid losses"
                    if losing
                    else "Consider raising prices or reducing major expense categories"
                ),
            )
        ]

    def analyze_concentration(
        self, statement: ParsedStatement, drivers: Sequence[DiscoveredDriver]
    ) -> List[Insight]:
        weights = self._weights
        streams = sorted(
            (
                (d.name, recent_average(d.monthly_values))
                for d in drivers
                if d.category == "revenue"
            ),
            key=lambda item: item[1],
            reverse=True,
        )
        streams = [item for item in streams if item[1] > 0]
        if not streams:
            return []
        total = sum(value for _, value in streams)
        share = sum(value for _, value in streams[:2]) / total * 100.0

        if share > weights.concentration_high:
            return [
                Insight(
                    id="concentration-high",
                    type="warning",
                    priority="medium",
                    category="concentration",
                    title="High Revenue Concentration",
                    message=f"{share:.0f}% of revenue from the top {min(2, len(streams))} streams",
                    detail="Top streams: " + ", ".join(name for name, _ in streams[:2]),
                    action="Consider diversifying revenue streams to reduce risk",
                    impact=InsightImpact(value=share, unit="%"),
                )
            ]
        if share < weights.concentration_diversified and len(streams) >= 3:
            return [
                Insight(
                    id="concentration-diversified",
                    type="success",
                    priority="low",
                    category="concentration",
                    title="Well-Diversified Revenue",
                    message=f"Revenue spread across {len(streams)} streams",
                    detail=f"Top 2 streams represent only {share:.0f}% of revenue",
                    action="Continue maintaining diverse offerings",
                )
            ]
        return []
