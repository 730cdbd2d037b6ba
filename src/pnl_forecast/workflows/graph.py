"""LangGraph workflow assembly for the end-to-end forecast pipeline."""
from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from langgraph.graph import END, StateGraph

from pnl_forecast.config import Config
from pnl_forecast.domain.models.forecast import DriverAdjustment
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
from pnl_forecast.settings.loader import load_heuristics
from pnl_forecast.workflows import context as context_module
from pnl_forecast.workflows.blueprint import StageSpec, build_default_stages
from pnl_forecast.workflows.state import ForecastState


class ForecastWorkflow:
    """Compose LangGraph nodes into a runnable forecast workflow."""

    def __init__(
        self,
        config: Config,
        *,
        cache: Optional[ForecastCache] = None,
        heuristics: Optional[HeuristicSettings] = None,
    ) -> None:
        self._config = config
        self._heuristics = heuristics or load_heuristics(config)
        self._cache = cache if cache is not None else ForecastCache()
        self._context = self._build_context()
        self._stages: List[StageSpec] = build_default_stages()
        self._graph = self._build_graph()

    @property
    def context(self) -> context_module.WorkflowContext:
        return self._context

    @property
    def cache(self) -> ForecastCache:
        return self._cache

    def _build_context(self) -> context_module.WorkflowContext:
        heuristics = self._heuristics
        return context_module.WorkflowContext(
            config=self._config,
            heuristics=heuristics,
            cache=self._cache,
            normalizer=ReportNormalizer(heuristics.sections),
            validator=DataValidator(),
            trend_analyzer=TrendAnalyzer(heuristics.trend),
            discovery=DriverDiscoveryService(heuristics),
            categorizer=ExpenseCategorizer(heuristics.expense_behavior, heuristics.inflation),
            scenario_engine=ScenarioForecastEngine(heuristics.scenarios),
            projector=DriverProjector(heuristics),
            working_capital=WorkingCapitalModeler(heuristics),
            assets=AssetModeler(heuristics),
            cash_flow=CashFlowAssembler(heuristics.cash_flow),
            insight_engine=InsightEngine(heuristics.insights, heuristics.catch_all),
            renderer=ReportRenderer(),
        )

    def _build_graph(self):
        builder = StateGraph(dict)

        if not self._stages:
            raise RuntimeError("Workflow blueprint is empty; cannot build LangGraph.")

        for stage in self._stages:
            builder.add_node(stage.key, self._wrap(stage.handler))

        # Stages run in declared order so each sees every upstream result.
        builder.set_entry_point(self._stages[0].key)
        for current, nxt in zip(self._stages, self._stages[1:]):
            builder.add_edge(current.key, nxt.key)
        builder.add_edge(self._stages[-1].key, END)

        return builder.compile(checkpointer=None)

    def _wrap(self, func: Callable[[ForecastState, context_module.WorkflowContext], ForecastState]):
        def wrapper(state: Dict[str, Any]) -> Dict[str, Any]:
            return func(state, self._context)

        return wrapper

    def run(
        self,
        report: Dict[str, Any],
        *,
        entity_id: str = "report",
        months: Optional[int] = None,
        adjustments: Optional[Sequence[DriverAdjustment]] = None,
        opening_cash: Optional[float] = None,
        business_type: Optional[str] = None,
    ) -> ForecastState:
        """Execute the workflow for a single report payload."""
        initial_state: ForecastState = {
            "entity_id": entity_id,
            "run_date": datetime.utcnow().date().isoformat(),
            "report": report,
            "months": months or self._config.forecast_months,
            "business_type": business_type or self._config.business_type,
            "opening_cash": self._config.opening_cash if opening_cash is None else opening_cash,
            "adjustments": list(adjustments or []),
            "logs": [],
            "errors": [],
            "extras": {},
            "stage_order": [stage.key for stage in self._stages],
        }
        result: ForecastState = self._graph.invoke(initial_state)
        result.setdefault("extras", {})["cache"] = {
            "entries": len(self._cache),
            "hits": self._cache.hits,
            "misses": self._cache.misses,
        }
        return result  # type: ignore[return-value]

    def persist_state(self, state: ForecastState, path: Path) -> None:
        """Serialize the workflow state to disk for debugging or auditing."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {key: value for key, value in state.items() if key != "report"}
        text = json.dumps(payload, default=_json_serializer, indent=2, ensure_ascii=False)
        path.write_text(text, encoding="utf-8")

    def persist_markdown(self, markdown: str, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(markdown, encoding="utf-8")

    def describe_stages(self) -> List[str]:
        """Return human-readable workflow stage descriptions."""
        return [f"{stage.key}: {stage.description}" for stage in self._stages]


def _json_serializer(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "tolist"):
        return value.tolist()
    return str(value)
