"""Greedy risk chains: domains, support, ordering and termination."""

import pytest

from chains import build_domains, support_count, greedy_chain, build_risk_chains, step_label
from config import CHAIN_FIELDS
from ml_model import train_estimator, predict_estimator
from models import CollisionRecord


@pytest.fixture
def trained(synthetic_records):
    model = train_estimator(synthetic_records)
    return synthetic_records, model, build_domains(synthetic_records)


# ─────────────────────────────────────────────────────────────────
# Domains and support
# ─────────────────────────────────────────────────────────────────

def test_domains_rank_by_frequency_then_first_seen():
    vehicles = ["Sedan", "Truck", "Truck", "Bus", "Sedan", "Unspecified", None, " NA "]
    records = [CollisionRecord(vehicleType=v) for v in vehicles]
    domains = build_domains(records, limits={"vehicleType": 2})
    assert domains["vehicleType"] == ["Sedan", "Truck"]
    assert build_domains(records, limits={})["vehicleType"] == ["Sedan", "Truck", "Bus"]
    assert domains["hour"] == []


def test_domains_cover_every_field_in_order(synthetic_records):
    domains = build_domains(synthetic_records)
    assert list(domains) == CHAIN_FIELDS
    assert len(domains["borough"]) == 2
    assert sorted(domains["hour"]) == list(range(24))
    assert sorted(domains["dow"]) == list(range(7))


def test_support_count():
    records = [
        CollisionRecord(vehicleType="Sedan", hour=8),
        CollisionRecord(vehicleType="Sedan", hour=9),
        CollisionRecord(vehicleType=None, hour=8),
        CollisionRecord(vehicleType="Truck", hour=None),
    ]
    assert support_count(records, {}) == 4
    assert support_count(records, {"vehicleType": None, "hour": None}) == 4
    assert support_count(records, {"vehicleType": "Sedan"}) == 2
    assert support_count(records, {"hour": 8}) == 2
    assert support_count(records, {"vehicleType": "Sedan", "hour": 8}) == 1
    assert support_count(records, {"vehicleType": "Bus"}) == 0


def test_step_labels():
    assert step_label("hour", 7) == "Hour = 07:00"
    assert step_label("dow", 0) == "Day = Sun"
    assert step_label("vehicleType", "SUV") == "Vehicle = SUV"


# ─────────────────────────────────────────────────────────────────
# Chain search
# ─────────────────────────────────────────────────────────────────

def test_start_step(trained):
    records, model, domains = trained
    chain = greedy_chain(records, model, domains, "worst")
    start = chain[0]
    assert start.label == "Start"
    assert start.field is None
    assert start.supportCount == len(records)
    assert start.probability == pytest.approx(predict_estimator(model, {}))


def test_worst_chain_is_non_decreasing(trained):
    records, model, domains = trained
    chain = greedy_chain(records, model, domains, "worst", min_support=10)
    assert len(chain) > 1
    probs = [s.probability for s in chain]
    assert all(b >= a for a, b in zip(probs, probs[1:]))


def test_best_chain_is_non_increasing(trained):
    records, model, domains = trained
    chain = greedy_chain(records, model, domains, "best", min_support=10)
    assert len(chain) > 1
    probs = [s.probability for s in chain]
    assert all(b <= a for a, b in zip(probs, probs[1:]))


@pytest.mark.parametrize("direction", ["best", "worst"])
def test_fields_never_repeat_and_support_holds(trained, direction):
    records, model, domains = trained
    chain = greedy_chain(records, model, domains, direction, max_depth=5, min_support=5)
    assert 1 <= len(chain) <= 6
    fields = [s.field for s in chain[1:]]
    assert len(fields) == len(set(fields))

    sel = {}
    for step in chain[1:]:
        sel[step.field] = step.value
        assert step.supportCount == support_count(records, sel)
        assert step.supportCount >= 5
        assert 0.0 <= step.probability <= 1.0


def test_first_step_is_the_strongest_candidate(trained):
    records, model, domains = trained
    chain = greedy_chain(records, model, domains, "worst", max_depth=1, min_support=30)
    assert len(chain) == 2
    start = chain[0].probability
    best_delta = max(
        predict_estimator(model, {f: v}) - start
        for f in CHAIN_FIELDS
        for v in domains[f]
        if support_count(records, {f: v}) >= 30
    )
    assert chain[1].delta == pytest.approx(best_delta)
    assert chain[1].delta > 0


def test_bikes_score_riskier_than_trucks(trained):
    records, model, domains = trained
    assert predict_estimator(model, {"vehicleType": "Bike"}) > predict_estimator(model, {"vehicleType": "Truck"})


def test_support_above_record_count_stops_at_start(trained):
    records, model, domains = trained
    for direction in ("best", "worst"):
        chain = greedy_chain(records, model, domains, direction, min_support=len(records) + 1)
        assert len(chain) == 1
        assert chain[0].label == "Start"


def test_large_min_delta_stops_at_start(trained):
    records, model, domains = trained
    assert len(greedy_chain(records, model, domains, "worst", min_delta=1.0)) == 1


def test_zero_depth(trained):
    records, model, domains = trained
    assert len(greedy_chain(records, model, domains, "best", max_depth=0)) == 1


def test_chains_are_reproducible(trained):
    records, model, domains = trained
    first = build_risk_chains(records, model, domains, min_support=10)
    again = build_risk_chains(records, train_estimator(records), build_domains(records), min_support=10)
    assert [s.model_dump() for s in first["worst"]] == [s.model_dump() for s in again["worst"]]
    assert [s.model_dump() for s in first["best"]] == [s.model_dump() for s in again["best"]]


def test_no_model_yields_single_start_step():
    chain = greedy_chain([], None, {}, "worst")
    assert len(chain) == 1
    assert chain[0].probability == 0.0
    assert chain[0].supportCount == 0


def test_first_candidate_wins_exact_ties(four_records):
    model = train_estimator(four_records, epochs=0)
    # Untrained weights: every candidate scores exactly 0
    chain = greedy_chain(four_records, model, build_domains(four_records), "worst", min_support=1)
    assert chain[1].field == "vehicleType"
    assert chain[1].value == "Sedan"
    assert chain[1].delta == 0.0
    assert len(chain) == 2


def test_unknown_direction():
    with pytest.raises(ValueError):
        greedy_chain([], None, {}, "sideways")
