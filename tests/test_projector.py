from __future__ import annotations

from dataclasses import replace
from datetime import date

from pnl_forecast.domain.models.drivers import SeasonalPattern
from pnl_forecast.domain.models.forecast import DriverAdjustment, ScenarioDefinition
from pnl_forecast.domain.services.projector import DriverProjector

from builders import make_driver


def flat_drivers():
    return [
        make_driver("Consulting", [10000] * 12, category="revenue"),
        make_driver("Rent", [5000] * 12),
    ]


def test_robust_baseline_ignores_catch_all_spikes():
    projector = DriverProjector()
    assert projector.robust_baseline("Miscellaneous", [500, 9000, 520]) == 500
    assert projector.robust_baseline("Other Expenses", [0, 700, 650]) == 650
    # word match only: "Mother" is not "other"
    assert abs(projector.robust_baseline("Mother Supplies", [500, 9000, 520]) - 3340.0) < 1e-9
    assert projector.robust_baseline("Consulting", [100, 100, 100]) == 100
    assert projector.robust_baseline("Refunds", [0, -50, 0]) == 0.0


def test_flat_drivers_project_flat_profit():
    forecast = DriverProjector().generate_base_forecast(flat_drivers(), months=12)

    assert forecast.start == date(2024, 1, 1)
    assert len(forecast.projections) == 12
    for projection in forecast.projections:
        assert projection.revenue == 10000
        assert projection.expenses == 5000
        assert projection.net_income == 5000
        assert projection.driver_values == {"Consulting": 10000, "Rent": 5000}
    first = forecast.projections[0]
    assert first.month == "Jan 2024"
    assert abs(first.confidence_band[0] - 4500) < 1e-9
    assert abs(first.confidence_band[1] - 5500) < 1e-9
    assert forecast.summary.total_net_income == 60000
    assert forecast.summary.break_even_month == 1
    assert forecast.summary.runway_months == 12
    assert forecast.confidence.overall == "high"
    assert "Business projected to remain profitable throughout the period" in forecast.summary.key_insights
    assert "Consulting is the largest driver of financial performance" in forecast.summary.key_insights


def test_growth_runway_and_break_even():
    drivers = [
        make_driver("Sales", [1000] * 6, category="revenue", growth_rate=12.0),
        make_driver("Rent", [5000] * 6),
    ]
    forecast = DriverProjector().generate_base_forecast(drivers, months=4, start=date(2024, 1, 1))

    assert [p.revenue for p in forecast.projections] == [2000, 4000, 8000, 16000]
    assert [p.net_income for p in forecast.projections] == [-3000, -1000, 3000, 11000]
    assert forecast.summary.break_even_month == 3
    assert forecast.summary.runway_months == 3
    assert "Revenue projected to grow 700% over the forecast period" in forecast.summary.key_insights


def test_seasonal_peak_months_are_multiplied():
    driver = replace(
        make_driver("Heating", [100] * 12),
        seasonal_pattern=SeasonalPattern(peak_months=["Dec 2023"], multiplier=2.0),
    )
    projected = DriverProjector().project_driver(driver, 12, date(2024, 1, 1))
    assert projected.projected_values[0] == 100
    assert projected.projected_values[11] == 200


def test_adjustments_produce_a_new_forecast():
    projector = DriverProjector()
    base = projector.generate_base_forecast(flat_drivers(), months=12)
    boost = DriverAdjustment(driver_name="Consulting", impact=0.1, start_month=3, end_month=5)

    adjusted = projector.apply_adjustments(base, [boost])

    revenues = [p.revenue for p in adjusted.forecast.projections]
    assert revenues[2] == 10000
    assert all(abs(value - 11000) < 1e-9 for value in revenues[3:6])
    assert revenues[6] == 10000
    assert abs(adjusted.impact.revenue_change - 3000) < 1e-6
    assert abs(adjusted.impact.net_income_change - 3000) < 1e-6
    assert adjusted.impact.expense_change == 0
    assert adjusted.forecast.adjustments == [boost]
    consulting = adjusted.forecast.drivers[0]
    assert consulting.confidence == "medium"

    # base forecast is untouched
    assert all(p.revenue == 10000 for p in base.projections)
    assert base.drivers[0].adjustments == []
    assert base.drivers[0].confidence == "high"


def test_single_adjustment_drops_medium_driver_to_low():
    projector = DriverProjector()
    drivers = [
        make_driver("Consulting", [10000] * 12, category="revenue", predictability=0.2),
        make_driver("Rent", [5000] * 12),
    ]
    base = projector.generate_base_forecast(drivers, months=6)
    assert base.drivers[0].confidence == "medium"
    low, high = base.projections[0].confidence_band
    assert abs(low - 4500) < 1e-9
    assert abs(high - 5500) < 1e-9

    adjusted = projector.apply_adjustments(
        base, [DriverAdjustment(driver_name="Consulting", impact=0.1, start_month=3)]
    )

    assert adjusted.forecast.drivers[0].confidence == "low"
    assert adjusted.forecast.drivers[1].confidence == "high"
    low, high = adjusted.forecast.projections[0].confidence_band
    assert abs(low - (5000 - 750)) < 1e-9
    assert abs(high - (5000 + 750)) < 1e-9


def test_unknown_adjustment_is_ignored():
    projector = DriverProjector()
    base = projector.generate_base_forecast(flat_drivers(), months=6)
    adjusted = projector.apply_adjustments(base, [DriverAdjustment(driver_name="Marketing", impact=0.5)])

    assert [p.net_income for p in adjusted.forecast.projections] == [p.net_income for p in base.projections]
    assert adjusted.forecast.adjustments == []
    assert adjusted.impact.net_income_change == 0


def test_many_adjustments_lower_confidence_and_widen_band():
    projector = DriverProjector()
    base = projector.generate_base_forecast(flat_drivers(), months=12)
    adjustments = [
        DriverAdjustment(driver_name="Consulting", impact=0.05, start_month=6),
        DriverAdjustment(driver_name="Consulting", impact=0.05, start_month=8),
        DriverAdjustment(driver_name="Consulting", impact=-0.05, start_month=10),
    ]
    adjusted = projector.apply_adjustments(base, adjustments)

    assert adjusted.forecast.drivers[0].confidence == "low"
    assert adjusted.forecast.drivers[1].confidence == "high"
    low, high = adjusted.forecast.projections[0].confidence_band
    assert abs(low - (5000 - 750)) < 1e-9
    assert abs(high - (5000 + 750)) < 1e-9
    assert abs(adjusted.forecast.confidence.adjustment_impact - 0.7) < 1e-9


def test_scenario_comparison_ranges():
    projector = DriverProjector()
    base = projector.generate_base_forecast(flat_drivers(), months=3)
    comparison = projector.generate_scenario_comparison(
        base,
        [
            ScenarioDefinition(id="base", name="Base"),
            ScenarioDefinition(
                id="boost",
                name="Boost",
                adjustments=[DriverAdjustment(driver_name="Consulting", impact=0.2)],
            ),
        ],
    )
    assert set(comparison.projections) == {"base", "boost"}
    assert comparison.revenue_range[0] == 10000
    assert abs(comparison.revenue_range[1] - 12000) < 1e-6
    assert comparison.net_income_range[0] == 5000
    assert abs(comparison.net_income_range[1] - 7000) < 1e-6


def test_no_drivers_yields_empty_forecast():
    forecast = DriverProjector().generate_base_forecast([], months=6, start=date(2024, 1, 1))
    assert forecast.projections == []
    assert forecast.summary.total_net_income == 0.0
    assert forecast.summary.break_even_month is None
