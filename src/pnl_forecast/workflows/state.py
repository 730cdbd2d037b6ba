"""Workflow state definitions shared by LangGraph nodes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

from pnl_forecast.domain.models.analysis import (
    ExpenseCategorizationResult,
    ExpenseStructure,
    TrendAnalysis,
)
from pnl_forecast.domain.models.cash_flow import AssetModel, CashFlowProjection, WorkingCapitalModel
from pnl_forecast.domain.models.drivers import DriverDiscoveryResult
from pnl_forecast.domain.models.forecast import (
    AdjustmentImpact,
    DriverAdjustment,
    DriverForecast,
    ScenarioForecastResult,
)
from pnl_forecast.domain.models.insights import InsightReport
from pnl_forecast.domain.models.statement import DataValidationResult, ParsedStatement


class ForecastState(TypedDict, total=False):
    entity_id: str
    run_date: str
    report: Dict[str, Any]
    months: int
    business_type: str
    opening_cash: float
    adjustments: List[DriverAdjustment]

    statement: Optional[ParsedStatement]
    validation: Optional[DataValidationResult]
    trend: Optional[TrendAnalysis]
    expense_structure: Optional[ExpenseStructure]
    discovery: Optional[DriverDiscoveryResult]
    expenses: Optional[ExpenseCategorizationResult]
    scenarios: Optional[ScenarioForecastResult]
    driver_forecast: Optional[DriverForecast]
    adjustment_impact: Optional[AdjustmentImpact]
    working_capital: Optional[WorkingCapitalModel]
    assets: Optional[AssetModel]
    cash_flow: Optional[Dict[str, CashFlowProjection]]
    insights: Optional[InsightReport]
    markdown_report: Optional[str]
    stage_order: List[str]

    logs: List[str]
    errors: List[str]

    extras: Dict[str, Any]
