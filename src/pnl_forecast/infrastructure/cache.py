"""Caller-owned memo store for computed forecasts."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, TypeVar

from pnl_forecast.domain.models.forecast import DriverAdjustment

logger = logging.getLogger(__name__)

T = TypeVar("T")

AdjustmentKey = Tuple[Tuple[str, float, int, Optional[int]], ...]


def adjustment_key(adjustments: Iterable[DriverAdjustment]) -> AdjustmentKey:
    """Hashable, order-insensitive fingerprint of an adjustment set."""
    return tuple(
        sorted(
            (a.driver_name, a.impact, a.start_month, a.end_month) for a in adjustments
        )
    )


@dataclass(frozen=True)
class CacheKey:
    entity_id: str
    period: str
    scenario: str
    adjustments: AdjustmentKey = ()

    @classmethod
    def build(
        cls,
        entity_id: str,
        period: str,
        scenario: str,
        adjustments: Iterable[DriverAdjustment] = (),
    ) -> "CacheKey":
        return cls(entity_id, period, scenario, adjustment_key(adjustments))


class ForecastCache:
    """In-memory cache keyed by entity, period, scenario and adjustments.

    One instance is created by whoever drives the workflow and passed in;
    nothing here is shared across instances.
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, Any] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: CacheKey) -> Optional[Any]:
        return self._entries.get(key)

    def put(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value

    def get_or_compute(self, key: CacheKey, compute: Callable[[], T]) -> T:
        if key in self._entries:
            self.hits += 1
            logger.debug("Cache hit for %s", key)
            return self._entries[key]
        self.misses += 1
        value = compute()
        self._entries[key] = value
        return value

    def invalidate(self, entity_id: str) -> int:
        """Drop every entry for ``entity_id``; returns how many were removed."""
        stale = [key for key in self._entries if key.entity_id == entity_id]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
