from __future__ import annotations

import json

import pytest

from pnl_forecast.domain.models.forecast import DriverAdjustment
from pnl_forecast.domain.services.normalizer import ReportFormatError
from pnl_forecast.infrastructure.cache import CacheKey, ForecastCache
from pnl_forecast.infrastructure.report_loader import entity_id_for, load_report

from builders import make_report


def test_get_or_compute_counts_hits_and_misses():
    cache = ForecastCache()
    key = CacheKey.build("acme", "2023-01-01:2023-12-28", "scenarios:12")
    calls = []

    def compute():
        calls.append(1)
        return {"value": 42}

    first = cache.get_or_compute(key, compute)
    second = cache.get_or_compute(key, compute)

    assert first is second
    assert len(calls) == 1
    assert (cache.hits, cache.misses) == (1, 1)
    assert key in cache
    assert len(cache) == 1


def test_adjustment_order_does_not_change_the_key():
    a = DriverAdjustment(driver_name="Consulting", impact=0.1, start_month=0)
    b = DriverAdjustment(driver_name="Rent", impact=-0.05, start_month=3, end_month=6)
    forward = CacheKey.build("acme", "p", "drivers:12", [a, b])
    backward = CacheKey.build("acme", "p", "drivers:12", [b, a])
    assert forward == backward
    assert forward != CacheKey.build("acme", "p", "drivers:12")


def test_invalidate_and_clear():
    cache = ForecastCache()
    cache.put(CacheKey.build("acme", "p", "scenarios:12"), 1)
    cache.put(CacheKey.build("acme", "p", "drivers:12"), 2)
    cache.put(CacheKey.build("globex", "p", "scenarios:12"), 3)

    assert cache.invalidate("acme") == 2
    assert len(cache) == 1
    assert cache.get(CacheKey.build("globex", "p", "scenarios:12")) == 3
    assert cache.get(CacheKey.build("acme", "p", "scenarios:12")) is None

    cache.get_or_compute(CacheKey.build("globex", "p", "scenarios:12"), lambda: 0)
    cache.clear()
    assert len(cache) == 0
    assert (cache.hits, cache.misses) == (0, 0)


def test_load_report_unwraps_report_key(tmp_path):
    report = make_report({"Sales": [100, 200]})
    path = tmp_path / "acme_2023.json"
    path.write_text(json.dumps({"report": report}), encoding="utf-8")

    assert load_report(path) == report
    assert entity_id_for(path) == "acme_2023"


def test_load_report_rejects_bad_payloads(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ReportFormatError):
        load_report(broken)

    listing = tmp_path / "list.json"
    listing.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ReportFormatError):
        load_report(listing)
