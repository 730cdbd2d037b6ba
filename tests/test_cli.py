from __future__ import annotations

import pytest
import typer

from pnl_forecast.cli.commands import parse_adjustment


def test_parse_adjustment_with_and_without_end():
    open_ended = parse_adjustment("Consulting:0.1:3")
    assert open_ended.driver_name == "Consulting"
    assert open_ended.impact == 0.1
    assert open_ended.start_month == 3
    assert open_ended.end_month is None

    bounded = parse_adjustment("Rent:-0.05:2:5")
    assert (bounded.impact, bounded.start_month, bounded.end_month) == (-0.05, 2, 5)
    assert bounded.description == "Rent:-0.05:2:5"


def test_parse_adjustment_keeps_colons_in_driver_name():
    adjustment = parse_adjustment("Sales: Online:0.2:0")
    assert adjustment.driver_name == "Sales: Online"
    assert adjustment.start_month == 0


@pytest.mark.parametrize("raw", ["Consulting", "Consulting:abc:1", ":0.1:1", "Rent:0.1:5:2"])
def test_parse_adjustment_rejects_bad_values(raw):
    with pytest.raises(typer.BadParameter):
        parse_adjustment(raw)
