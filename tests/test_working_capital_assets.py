from __future__ import annotations

from dataclasses import replace

from pnl_forecast.domain.services.assets import AssetModeler
from pnl_forecast.domain.services.scenarios import ScenarioForecastEngine
from pnl_forecast.domain.services.trends import TrendAnalyzer
from pnl_forecast.domain.services.working_capital import WorkingCapitalModeler
from pnl_forecast.settings.heuristics import BASELINE, GROWTH, SERVICE_WORKING_CAPITAL

from builders import make_forecast_months, make_statement


def sample_statement():
    return make_statement({"Sales": [3000] * 6}, {"Rent": [1500] * 6})


def scenario_result(statement):
    analyzer = TrendAnalyzer()
    return ScenarioForecastEngine().generate(
        statement,
        analyzer.analyze(statement),
        analyzer.analyze_expense_structure(statement),
        months=6,
    )


def test_components_follow_business_type():
    modeler = WorkingCapitalModeler()
    service = modeler.estimate_components(sample_statement(), "service")
    assert abs(service.accounts_receivable - 3500) < 1e-9
    assert abs(service.accounts_payable - 1500) < 1e-9
    assert abs(service.inventory - 150) < 1e-9
    assert abs(service.net_working_capital - 2150) < 1e-9

    product = modeler.estimate_components(sample_statement(), "product")
    assert abs(product.accounts_receivable - 4500) < 1e-9
    assert abs(product.accounts_payable - 2000) < 1e-9
    assert abs(product.inventory - 750) < 1e-9

    metrics = modeler.metrics(service, 3000)
    assert metrics.cash_conversion_cycle == 20
    assert abs(metrics.working_capital_percent_of_revenue - 2150 / 36000 * 100) < 1e-9


def test_collection_efficiency_accumulates_up_to_cap():
    modeler = WorkingCapitalModeler()
    components = modeler.estimate_components(sample_statement())
    assumptions = replace(
        modeler.assumptions_for(GROWTH, SERVICE_WORKING_CAPITAL), collection_efficiency_change=5.0
    )
    rolled = modeler.project(
        components, assumptions, make_forecast_months([3000] * 3, [1500] * 3), SERVICE_WORKING_CAPITAL
    )

    assert abs(rolled[0].cash_collected - (3000 * 0.7 * 1.05 + 3500 * 0.4 * 1.05)) < 1e-6
    third = rolled[2]
    expected = 3000 * 0.7 * 1.1 + third.beginning_receivables * 0.4 * 1.1
    assert abs(third.cash_collected - expected) < 1e-6
    assert rolled[1].beginning_receivables == rolled[0].ending_receivables
    assert rolled[1].beginning_payables == rolled[0].ending_payables


def test_balances_never_go_negative():
    modeler = WorkingCapitalModeler()
    components = replace(modeler.estimate_components(sample_statement()), accounts_receivable=0.0)
    assumptions = replace(
        modeler.assumptions_for(GROWTH, SERVICE_WORKING_CAPITAL), collection_efficiency_change=10.0
    )
    rolled = modeler.project(
        components, assumptions, make_forecast_months([1000] * 4, [800] * 4), SERVICE_WORKING_CAPITAL
    )

    assert rolled[0].ending_receivables == 0.0
    assert all(month.ending_receivables >= 0 for month in rolled)
    assert all(month.ending_payables >= 0 for month in rolled)
    for month in rolled:
        assert abs(month.cash_impact + month.working_capital_change) < 1e-9


def test_model_projects_every_scenario():
    statement = sample_statement()
    model = WorkingCapitalModeler().model(statement, scenario_result(statement), business_type="unknown")

    assert model.components.business_type == "service"
    assert set(model.projections) == {"baseline", "growth", "downturn"}
    assert model.projections["growth"].assumptions.scaling_factor == 1.1
    assert model.projections["baseline"].assumptions.scaling_factor == 1.0
    assert len(model.projections["downturn"].months) == 6


def test_depreciation_from_matching_lines():
    statement = make_statement({"Sales": [5000] * 6}, {"Depreciation Expense": [120] * 6, "Rent": [1000] * 6})
    assert abs(AssetModeler().monthly_depreciation(statement) - 120.0) < 1e-9


def test_depreciation_falls_back_to_revenue_share():
    statement = make_statement({"Sales": [5000] * 6}, {"Rent": [1000] * 6})
    assert abs(AssetModeler().monthly_depreciation(statement) - 100.0) < 1e-9


def test_asset_categories_and_first_month_charges():
    modeler = AssetModeler()
    categories = {category.name: category for category in modeler.estimate_categories(100.0)}
    assert abs(categories["Equipment"].gross_value - 4200) < 1e-9
    assert abs(categories["Equipment"].accumulated_depreciation - 1680) < 1e-9
    assert abs(categories["Vehicles"].gross_value - 1800) < 1e-9

    months = make_forecast_months([10000, 11000], [5000, 5000])
    rolled = modeler.project(
        list(categories.values()), modeler.assumptions_for(BASELINE), months, last_actual_revenue=10000
    )
    first, second = rolled
    assert first.growth_capex == 0.0
    assert abs(first.beginning_net_assets - 8160 * 0.6) < 1e-9
    assert abs(first.base_capex - 8160 * 0.6 * 0.15 * 0.05) < 1e-6
    assert abs(first.depreciation_by_category["Equipment"] - 50.0) < 1e-9
    assert abs(first.depreciation_by_category["Vehicles"] - 36.0) < 1e-9
    assert abs(first.capex_cash - first.additions * 0.8) < 1e-9
    assert abs(first.disposals - first.additions * 0.1) < 1e-9
    assert abs(second.growth_capex - 80.0) < 1e-9
    assert second.beginning_net_assets == first.ending_net_assets


def test_asset_model_covers_each_scenario():
    statement = sample_statement()
    model = AssetModeler().model(statement, scenario_result(statement))
    assert abs(model.monthly_depreciation - 60.0) < 1e-9
    assert set(model.projections) == {"baseline", "growth", "downturn"}
    assert model.projections["growth"].assumptions.growth_capex_ratio == 12.0
