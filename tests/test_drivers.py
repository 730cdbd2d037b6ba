from __future__ import annotations

import numpy as np

from pnl_forecast.domain.models.drivers import LineItemAnalysis
from pnl_forecast.domain.services.drivers import (
    DEFAULT_METHOD_RULES,
    SEASONAL_MODEL_RULE,
    DriverDiscoveryService,
    LineItemScorer,
    assign_forecast_method,
)
from pnl_forecast.settings.heuristics import SelectionCriteria

from builders import make_statement, month_labels


def make_analysis(values=None, **overrides) -> LineItemAnalysis:
    values = list(values if values is not None else [100.0] * 12)
    fields = dict(
        name="Line",
        account_id=None,
        category="expense",
        total=sum(values),
        months=month_labels(len(values)),
        monthly_values=values,
        materiality=0.5,
        variability=0.1,
        predictability=0.1,
        growth_impact=0.0,
        data_quality=1.0,
        correlation_with_revenue=0.0,
    )
    fields.update(overrides)
    return LineItemAnalysis(**fields)


def test_scores_stay_in_unit_interval_for_random_series():
    rng = np.random.default_rng(7)
    scorer = LineItemScorer()
    for _ in range(25):
        lines = {}
        for index in range(4):
            series = rng.normal(1000, 900, 12)
            series[rng.random(12) < 0.3] = 0.0
            lines[f"Line {index}"] = series.round(2).tolist()
        statement = make_statement({"Sales": rng.normal(5000, 2000, 12).round(2).tolist()}, lines)
        for analysis in DriverDiscoveryService().analyze_lines(statement):
            for name, value in analysis.scores().items():
                assert 0.0 <= value <= 1.0, (name, value)
            assert -1.0 <= analysis.correlation_with_revenue <= 1.0
            assert 0.0 <= scorer.composite(analysis) <= 1.0 + 1e-9


def test_flat_lines_are_both_selected_with_fallback_method():
    statement = make_statement({"Consulting": [10000] * 12}, {"Rent": [5000] * 12})
    result = DriverDiscoveryService().discover(statement)

    assert [d.name for d in result.drivers] == ["Consulting", "Rent"]
    consulting = result.drivers[0]
    assert abs(consulting.impact_score - 0.4) < 1e-9
    assert consulting.analysis.materiality == 1.0
    assert consulting.analysis.variability == 0.0
    assert consulting.analysis.predictability == 0.0
    assert consulting.forecast_method.kind == "simple_growth"
    assert consulting.growth_rate == 0.0
    assert consulting.trend == "stable"
    assert consulting.business_type == "recurring_revenue"
    assert consulting.seasonal_pattern is None
    assert result.summary.drivers_found == 2
    assert result.summary.months_analyzed == 12
    assert result.summary.data_quality == "excellent"
    assert result.recommendations.primary == ["Consulting", "Rent"]


def test_immaterial_and_tiny_lines_are_not_drivers():
    statement = make_statement(
        {"Consulting": [10000] * 12},
        {"Rent": [5000] * 12, "Stamps": [10] * 12, "Rounding": [0.01] + [0] * 11},
    )
    result = DriverDiscoveryService().discover(statement)
    assert "Stamps" not in {d.name for d in result.drivers}
    assert "Stamps" in result.recommendations.excluded
    assert "Rounding" not in {a.name for a in result.analyses}


def test_raising_minimum_score_never_adds_drivers():
    rng = np.random.default_rng(11)
    lines = {f"Expense {i}": rng.uniform(0, 3000, 12).round(2).tolist() for i in range(8)}
    statement = make_statement({"Sales": [20000 * 1.03**i for i in range(12)]}, lines)
    service = DriverDiscoveryService()

    previous = None
    for threshold in (0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.7, 0.9):
        names = {d.name for d in service.discover(statement, SelectionCriteria(minimum_score=threshold)).drivers}
        if previous is not None:
            assert names <= previous
        previous = names


def test_growing_revenue_is_flagged_as_growing():
    statement = make_statement({"Subscriptions": [1000 * 1.05**i for i in range(12)]})
    driver = DriverDiscoveryService().discover(statement).drivers[0]
    assert driver.trend == "growing"
    assert abs(driver.growth_rate - (1.05**11 - 1)) < 1e-6
    assert driver.analysis.growth_impact == 1.0
    assert driver.analysis.predictability > 0.95


def test_decision_table_first_match_wins():
    correlated = make_analysis(correlation_with_revenue=0.9, predictability=0.95, revenue_share=0.25)
    method = assign_forecast_method(correlated)
    assert method.kind == "percentage_of_revenue"
    assert method.parameters["historical_ratio"] == 0.25
    assert abs(method.confidence - 0.9) < 1e-9

    stable = make_analysis(predictability=0.9, variability=0.1, slope=5.0, intercept=100.0)
    method = assign_forecast_method(stable)
    assert method.kind == "trend_extrapolation"
    assert method.parameters == {"slope": 5.0, "intercept": 100.0}

    noisy = make_analysis(values=[10, 20, 30, 40, 50], variability=0.6)
    method = assign_forecast_method(noisy)
    assert method.kind == "scenario_range"
    assert (method.parameters["low"], method.parameters["base"], method.parameters["high"]) == (20.0, 30.0, 40.0)

    assert assign_forecast_method(make_analysis()).kind == "simple_growth"


def test_seasonal_rule_can_be_inserted_into_the_table():
    spiky = make_analysis(values=[100.0] * 11 + [1000.0], variability=0.3)
    assert assign_forecast_method(spiky).kind == "simple_growth"

    rules = DEFAULT_METHOD_RULES[:-1] + (SEASONAL_MODEL_RULE, DEFAULT_METHOD_RULES[-1])
    method = assign_forecast_method(spiky, rules)
    assert method.kind == "seasonal_model"
    assert abs(method.parameters["peak_multiplier"] - 1000.0 / 175.0) < 1e-9

    statement = make_statement({"Sales": [5000] * 12}, {"Holiday Staff": [100.0] * 11 + [1000.0]})
    service = DriverDiscoveryService(rules=rules)
    result = service.discover(statement)
    assert result.metadata["method_rules"] == ["revenue_correlated", "stable_trend", "high_variability", "seasonal_peaks", "fallback"]


def test_statement_without_activity_yields_no_drivers():
    statement = make_statement({"Sales": [0, 0, 0]})
    result = DriverDiscoveryService().discover(statement)
    assert result.drivers == []
    assert result.summary.drivers_found == 0
    assert result.summary.months_analyzed == 3


def test_short_history_trend_matches_projected_growth():
    statement = make_statement({"Subscriptions": [1000 * 1.05**i for i in range(8)]})
    driver = DriverDiscoveryService().discover(statement).drivers[0]

    assert driver.analysis.cagr > 0.05
    assert driver.growth_rate == 0.0
    assert driver.trend == "stable"
