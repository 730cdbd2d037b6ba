"""Workflow dependency container."""
from __future__ import annotations

from dataclasses import dataclass

from pnl_forecast.config import Config
from pnl_forecast.domain.services.assets import AssetModeler
from pnl_forecast.domain.services.cash_flow import CashFlowAssembler
from pnl_forecast.domain.services.drivers import DriverDiscoveryService
from pnl_forecast.domain.services.expenses import ExpenseCategorizer
from pnl_forecast.domain.services.insights import InsightEngine
from pnl_forecast.domain.services.normalizer import DataValidator, ReportNormalizer
from pnl_forecast.domain.services.projector import DriverProjector
from pnl_forecast.domain.services.scenarios import ScenarioForecastEngine
from pnl_forecast.domain.services.trends import TrendAnalyzer
from pnl_forecast.domain.services.working_capital import WorkingCapitalModeler
from pnl_forecast.infrastructure.cache import ForecastCache
from pnl_forecast.reports.renderer import ReportRenderer
from pnl_forecast.settings.heuristics import HeuristicSettings


@dataclass
class WorkflowContext:
    """Holds the services shared by LangGraph nodes."""

    config: Config
    heuristics: HeuristicSettings
    cache: ForecastCache
    normalizer: ReportNormalizer
    validator: DataValidator
    trend_analyzer: TrendAnalyzer
    discovery: DriverDiscoveryService
    categorizer: ExpenseCategorizer
    scenario_engine: ScenarioForecastEngine
    projector: DriverProjector
    working_capital: WorkingCapitalModeler
    assets: AssetModeler
    cash_flow: CashFlowAssembler
    insight_engine: InsightEngine
    renderer: ReportRenderer
