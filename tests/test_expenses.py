from __future__ import annotations

from pnl_forecast.domain.services.expenses import ExpenseCategorizer

from builders import make_statement

REVENUE = [1000 + 100 * i for i in range(12)]


def categorize_sample():
    statement = make_statement(
        {"Sales": REVENUE},
        {
            "Office Rent": [2000] * 12,
            "Raw Materials": [0.3 * value for value in REVENUE],
            "Contractors": [100, 100, 300, 300] * 3,
            "Heating": [100] * 11 + [1000],
        },
    )
    return ExpenseCategorizer().categorize(statement)


def test_behaviors_follow_rule_order():
    result = categorize_sample()
    by_name = {item.name: item for item in result.expenses}

    assert by_name["Office Rent"].behavior == "fixed"
    assert by_name["Raw Materials"].behavior == "variable"
    assert by_name["Contractors"].behavior == "stepped"
    assert by_name["Heating"].behavior == "seasonal"

    assert abs(by_name["Raw Materials"].scaling_factor - 1.0) < 1e-9
    assert by_name["Office Rent"].scaling_factor == 0.0
    assert by_name["Heating"].seasonal_pattern is not None
    assert by_name["Heating"].seasonal_pattern.peak_months == ["Dec 2023"]


def test_categories_and_inflation_rates():
    result = categorize_sample()
    by_name = {item.name: item for item in result.expenses}

    assert by_name["Office Rent"].category == "Facilities & Rent"
    assert by_name["Office Rent"].inflation_rate == 3.8
    assert by_name["Raw Materials"].category == "Materials & Supplies"
    assert by_name["Raw Materials"].inflation_rate == 3.5
    assert by_name["Contractors"].category == "Other Operating Expenses"
    assert by_name["Contractors"].inflation_rate == 3.2
    assert result.categorized_percentage == 50.0
    # Office Rent and Raw Materials match inflation keywords
    assert result.inflation_coverage == 50.0


def test_summary_splits_average_monthly_spend():
    result = categorize_sample()
    summary = result.summary
    materials_average = sum(0.3 * value for value in REVENUE) / 12

    assert abs(summary.fixed_costs - 2000) < 1e-6
    assert abs(summary.variable_costs - materials_average) < 1e-6
    assert abs(summary.seasonal_costs - (200 + 175)) < 1e-6
    assert abs(summary.total_expenses - (2000 + materials_average + 375)) < 1e-6
    assert summary.uncategorized < 1e-6


def test_inflation_scenario_depends_on_revenue_volatility():
    steady = categorize_sample()
    assert steady.inflation.scenario == "base"
    assert steady.inflation.general == 3.2
    assert steady.inflation.labor == 4.5

    statement = make_statement({"Sales": [100, 1000] * 6}, {"Rent": [50] * 12})
    volatile = ExpenseCategorizer().categorize(statement)
    assert volatile.inflation.scenario == "high_inflation"
    assert abs(volatile.inflation.general - 3.2 * 1.2) < 1e-9
    assert abs(volatile.inflation.rent - 3.8 * 1.2) < 1e-9


def test_statement_without_expenses():
    result = ExpenseCategorizer().categorize(make_statement({"Sales": [100] * 6}))
    assert result.expenses == []
    assert result.categorized_percentage == 0.0
    assert result.inflation_coverage == 0.0
    assert result.summary.total_expenses == 0.0
