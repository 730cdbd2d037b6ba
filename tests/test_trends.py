from __future__ import annotations

from pnl_forecast.domain.services.trends import TrendAnalyzer

from builders import make_statement


def test_steady_growth_is_detected_and_not_damped():
    revenue = [1000 * 1.02**i for i in range(12)]
    statement = make_statement({"Sales": revenue}, {"Rent": [500] * 12})
    trend = TrendAnalyzer().analyze(statement)

    assert abs(trend.monthly_growth_rate - 2.0) < 1e-6
    assert abs(trend.annualized_growth_rate - ((1.02**12 - 1) * 100)) < 1e-6
    assert trend.trend_direction == "stable"
    assert trend.confidence_level == "high"
    assert abs(trend.recommended_growth_rate - 2.0) < 1e-6
    assert trend.months_of_history == 12
    assert list(trend.quarterly_revenue) == ["Q1 2023", "Q2 2023", "Q3 2023", "Q4 2023"]
    assert abs(sum(trend.quarterly_revenue.values()) - sum(revenue)) < 1e-6
    assert trend.peak_months[0] == "Dec 2023"
    assert trend.low_months[0] == "Jan 2023"


def test_short_volatile_history_is_damped_and_low_confidence():
    statement = make_statement({"Sales": [100, 300, 100, 300]})
    trend = TrendAnalyzer().analyze(statement)
    # damped mean growth still exceeds the ceiling
    assert trend.recommended_growth_rate == 15.0
    assert trend.confidence_level == "low"
    assert trend.trend_direction == "volatile"


def test_recommended_rate_is_clamped_to_floor():
    statement = make_statement({"Sales": [1000, 500, 250, 125, 62.5, 31.25, 15.625]})
    trend = TrendAnalyzer().analyze(statement)
    assert trend.recommended_growth_rate == -10.0
    assert trend.trend_direction == "decline"


def test_health_metrics():
    statement = make_statement({"Sales": [1000] * 6}, {"Rent": [400] * 6})
    health = TrendAnalyzer().analyze(statement).health
    assert abs(health.average_monthly_revenue - 1000) < 1e-6
    assert abs(health.average_monthly_net_income - 600) < 1e-6
    assert abs(health.net_margin - 60.0) < 1e-6


def test_expense_structure_split():
    revenue = [1000, 1200, 1400, 1600, 1800, 2000]
    statement = make_statement(
        {"Sales": revenue},
        {
            "Rent": [500] * 6,
            "Materials": [r * 0.2 for r in revenue],
            "Repairs": [10, 400, 20, 10, 30, 10],
        },
    )
    structure = TrendAnalyzer().analyze_expense_structure(statement)
    assert structure.fixed_costs == {"Rent": 500.0}
    assert abs(structure.variable_cost_ratios["Materials"] - 20.0) < 1e-6
    assert [cost.name for cost in structure.seasonal_costs] == ["Repairs"]
    assert structure.seasonal_costs[0].peak_months[0] == "Feb 2023"
