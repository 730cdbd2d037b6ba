from __future__ import annotations

from pnl_forecast.domain.models.insights import Insight, InsightImpact
from pnl_forecast.domain.services.insights import InsightEngine, recent_average

from builders import make_driver, make_statement

FLAT_STATEMENT = {"Consulting": [10000] * 12}


def titles(report):
    return [insight.title for insight in report.all]


def make_insight(type_: str, priority: str = "medium", category: str = "margin", **extra) -> Insight:
    return Insight(
        id=f"{type_}-{priority}-{category}",
        type=type_,
        priority=priority,
        category=category,
        title=f"{type_} {priority}",
        message="",
        **extra,
    )


def test_recent_average_uses_last_positive_months():
    assert recent_average([100, 0, 200, 300, 0, 400]) == 300
    assert recent_average([0, -5]) == 0.0


def test_margin_bands():
    engine = InsightEngine()
    statement = make_statement(FLAT_STATEMENT, {"Rent": [5000] * 12})
    revenue = make_driver("Consulting", [10000] * 12, category="revenue")

    def margin_titles(rent):
        insights = engine.analyze_margins(statement, [revenue, make_driver("Rent", [rent] * 12)])
        return [(i.title, i.type, i.priority) for i in insights]

    assert margin_titles(4000) == [("Excellent Profit Margins", "success", "medium")]
    assert margin_titles(5000) == [("Healthy Profit Margins", "success", "low")]
    assert margin_titles(9000) == [("Low Profit Margins", "warning", "medium")]
    assert margin_titles(12000) == [("Zero or Negative Profit Margins", "warning", "high")]

    losing = engine.analyze_margins(statement, [revenue, make_driver("Rent", [12000] * 12)])[0]
    assert "Rent (12,000)" in losing.detail


def test_flat_business_reports_healthy_margin_and_concentration():
    statement = make_statement(FLAT_STATEMENT, {"Rent": [5000] * 12})
    drivers = [
        make_driver("Consulting", [10000] * 12, category="revenue"),
        make_driver("Rent", [5000] * 12),
    ]
    report = InsightEngine().generate(statement, drivers)

    assert "Healthy Profit Margins" in titles(report)
    assert "High Revenue Concentration" in titles(report)
    assert report.data_quality == []
    assert report.data_quality_score == 100
    scores = [insight.score for insight in report.all]
    assert scores == sorted(scores, reverse=True)


def test_catch_all_share_thresholds():
    engine = InsightEngine()
    statement = make_statement(FLAT_STATEMENT)
    base = [make_driver("Consulting", [10000] * 12, category="revenue"), make_driver("Rent", [5000] * 12)]

    small = engine.analyze_data_quality(statement, base + [make_driver("Miscellaneous", [500] * 12)])
    assert small == []

    medium = engine.analyze_data_quality(statement, base + [make_driver("Miscellaneous", [1000] * 12)])
    assert [(i.title, i.priority) for i in medium] == [("Uncategorized Expenses", "medium")]
    assert medium[0].message == "17% of expenses are uncategorized"

    high = engine.analyze_data_quality(statement, base + [make_driver("Other Expenses", [2000] * 12)])
    assert high[0].priority == "high"
    assert high[0].id == "data-quality-catch-all-other-expenses"


def test_no_activity_is_a_high_data_quality_warning():
    statement = make_statement({"Sales": [0] * 6}, {"Rent": [0] * 6})
    report = InsightEngine().generate(statement, [])

    no_activity = [i for i in report.data_quality if i.title == "No Financial Activity Detected"]
    assert len(no_activity) == 1
    assert no_activity[0].priority == "high"
    assert no_activity[0] in report.critical
    assert report.data_quality_score == 70


def test_recent_revenue_gaps_in_established_business():
    statement = make_statement({"Sales": [1000] * 8 + [0, 1000, 0, 1000]}, {"Rent": [200] * 12})
    insights = InsightEngine().analyze_data_quality(statement, [])

    assert len(insights) == 1
    gap = insights[0]
    assert gap.title == "Revenue Gaps in Operational Period"
    assert gap.priority == "medium"
    assert gap.message == "2 months with zero revenue since operations began (Jan 2023)"
    assert gap.action.startswith("Recent revenue gaps detected")
    assert "Sep 2023, Nov 2023" in gap.detail


def test_single_gap_in_new_business_is_not_reported():
    statement = make_statement({"Sales": [0, 0, 500, 0, 600, 700]}, {"Rent": [0, 0, 100, 100, 100, 100]})
    assert InsightEngine().analyze_data_quality(statement, []) == []


def test_expense_spike_is_flagged_as_anomaly():
    repairs = [100, 110, 90, 100, 105, 95, 100, 100, 110, 90, 100, 1000]
    statement = make_statement(FLAT_STATEMENT, {"Repairs": repairs, "Rent": [5000] * 12})
    insights = InsightEngine().analyze_anomalies(statement, [])

    assert len(insights) == 1
    anomaly = insights[0]
    assert anomaly.title == "Unusual Spike Detected"
    assert anomaly.type == "warning"
    assert anomaly.priority == "high"
    assert anomaly.timeframe == "recent"
    assert anomaly.message == "Repairs spiked to 1,000"


def test_trend_insights_for_growing_and_declining_streams():
    drivers = [
        make_driver("Subscriptions", [1000] * 12, category="revenue", growth_rate=0.2),
        make_driver("Hardware", [800] * 12, category="revenue", growth_rate=-0.3),
    ]
    insights = InsightEngine().analyze_trends(make_statement(FLAT_STATEMENT), drivers)

    assert [(i.title, i.type) for i in insights] == [
        ("Growth Opportunity", "opportunity"),
        ("Revenue Decline Warning", "warning"),
    ]
    assert insights[0].message == "Subscriptions growing 20% annually"
    assert insights[1].message == "Hardware declining 30% annually"


def test_revenue_concentration():
    engine = InsightEngine()
    statement = make_statement(FLAT_STATEMENT)

    single = engine.analyze_concentration(statement, [make_driver("Consulting", [10000] * 12, category="revenue")])
    assert single[0].title == "High Revenue Concentration"
    assert single[0].message == "100% of revenue from the top 1 streams"

    spread = [make_driver(name, [1000] * 12, category="revenue") for name in ("A", "B", "C", "D")]
    diversified = engine.analyze_concentration(statement, spread)
    assert diversified[0].title == "Well-Diversified Revenue"
    assert diversified[0].message == "Revenue spread across 4 streams"


def test_score_components():
    engine = InsightEngine()
    insight = make_insight(
        "warning", "high", action="Fix it", impact=InsightImpact(value=-2500.0), timeframe="current"
    )
    assert engine.score(insight) == 100 + 80 + 25 + 25 + 30
    assert engine.score(make_insight("success", "low", timeframe="historical")) == 10 + 20


def test_rank_keeps_top_fifteen():
    engine = InsightEngine()
    insights = [make_insight("info", "low") for _ in range(18)] + [make_insight("warning", "high")]
    ranked = engine.rank(insights)
    assert len(ranked) == 15
    assert ranked[0].type == "warning"


def test_data_quality_score_subtracts_penalties():
    engine = InsightEngine()
    report = engine.categorize(
        [
            make_insight("warning", "high", category="data_quality"),
            make_insight("warning", "medium", category="data_quality"),
            make_insight("warning", "high", category="margin"),
        ]
    )
    assert report.data_quality_score == 55
    assert len(report.critical) == 2
    assert len(report.warnings) == 3


def test_select_top_three_prefers_concern_strength_opportunity():
    ranked = [
        make_insight("info", "high"),
        make_insight("warning", "low"),
        make_insight("opportunity", "medium"),
        make_insight("success", "low"),
        make_insight("warning", "medium", category="trend"),
    ]
    selected = InsightEngine.select_top_three(ranked)
    assert [(i.type, i.priority) for i in selected] == [
        ("warning", "medium"),
        ("success", "low"),
        ("opportunity", "medium"),
    ]

    fallback = InsightEngine.select_top_three([make_insight("info", "low"), make_insight("info", "high")])
    assert len(fallback) == 2


def test_failing_analyzer_is_skipped():
    engine = InsightEngine()

    def broken(statement, drivers):
        raise RuntimeError("boom")

    engine.analyzers.insert(0, ("broken", broken))
    statement = make_statement(FLAT_STATEMENT, {"Rent": [5000] * 12})
    drivers = [make_driver("Consulting", [10000] * 12, category="revenue"), make_driver("Rent", [5000] * 12)]

    report = engine.generate(statement, drivers)
    assert "Healthy Profit Margins" in titles(report)
