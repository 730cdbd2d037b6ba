"""Ranked findings produced by the insight analyzers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class InsightImpact:
    """Quantified effect of a finding."""

    value: float
    unit: str = "currency"
    timeframe: str = "monthly"


@dataclass
class Insight:
    """Single finding; ``score`` is only used for ranking."""

    id: str
    type: str  # warning | opportunity | info | success
    priority: str  # high | medium | low
    category: str
    title: str
    message: str
    detail: str = ""
    impact: Optional[InsightImpact] = None
    action: Optional[str] = None
    timeframe: str = "current"  # current | recent | historical
    score: float = 0.0


@dataclass
class InsightReport:
    """Insights bucketed for presentation."""

    all: List[Insight] = field(default_factory=list)
    critical: List[Insight] = field(default_factory=list)
    warnings: List[Insight] = field(default_factory=list)
    opportunities: List[Insight] = field(default_factory=list)
    data_quality: List[Insight] = field(default_factory=list)
    data_quality_score: int = 100
