"""Per-factor injury rates with empirical-Bayes shrinkage."""

import pytest

from factors import eb_shrink, injury_rates, overall_rate
from models import CollisionRecord


def test_eb_shrink():
    assert eb_shrink(0, 0, 0.4) == pytest.approx(0.4)
    assert eb_shrink(10, 10, 0.5, k=10) == pytest.approx(0.75)
    # Large groups keep close to their raw rate
    assert eb_shrink(900, 1000, 0.1) == pytest.approx(905 / 1050)


def test_injury_rates_by_count():
    records = (
        [CollisionRecord(borough="QUEENS", injured=True)] * 3
        + [CollisionRecord(borough="QUEENS", injured=False)]
        + [CollisionRecord(borough="BRONX", injured=False)] * 2
        + [CollisionRecord(borough=None, injured=True)] * 2
    )
    base = overall_rate(records)
    assert base == pytest.approx(5 / 8)

    rates = injury_rates(records, "borough", k=0)
    assert [r.value for r in rates] == ["QUEENS", "BRONX"]
    assert rates[0].count == 4
    assert rates[0].injured == 3
    assert rates[0].rate == pytest.approx(0.75)
    assert rates[0].shrunkRate == pytest.approx(0.75)
    assert rates[1].rate == 0.0

    shrunk = injury_rates(records, "borough", limit=1)
    assert len(shrunk) == 1
    assert rates[0].rate > shrunk[0].shrunkRate > base


def test_unknown_field():
    with pytest.raises(ValueError):
        injury_rates([], "weather")
    assert overall_rate([]) == 0.0
