"""Feature hashing: bucket range, determinism and the active feature set."""

import pytest

from config import UNSPECIFIED_TOKENS, MISSING_TOKENS
from hashing import hash_key, feature_keys, feature_indices
from models import RiskQuery


def test_hash_known_buckets():
    assert hash_key("veh=Sedan", 1024) == 272
    assert hash_key("veh=Truck", 1024) == 782


def test_hash_is_deterministic_and_in_range():
    keys = [f"act=Action {i}" for i in range(200)] + ["", "bor=QUEENS", "hour=0", "vehxact=SUV×Backing"]
    for dim in (1, 7, 64, 1024, 1 << 20):
        for key in keys:
            first = hash_key(key, dim)
            assert first == hash_key(key, dim)
            assert 0 <= first < dim


def test_hash_rejects_non_positive_dimension():
    with pytest.raises(ValueError):
        hash_key("veh=Sedan", 0)


def test_unconstrained_query_has_no_features():
    assert feature_keys({}) == []
    assert feature_indices(RiskQuery(), 1024) == []


def test_missing_values_emit_nothing():
    choice = {"vehicleType": "Unspecified", "preCrash": "", "borough": None}
    assert feature_keys(choice) == []


def test_single_field_and_interaction_keys():
    keys = feature_keys({"vehicleType": "Sedan", "preCrash": "Backing", "hour": 8, "dow": 0})
    assert keys == [
        "veh=Sedan",
        "act=Backing",
        "hour=8",
        "dow=0",
        "actxhour=Backing×8",
        "actxdow=Backing×0",
        "vehxact=Sedan×Backing",
    ]


def test_interactions_need_both_parts():
    keys = feature_keys({"vehicleType": "Sedan", "hour": 0})
    assert keys == ["veh=Sedan", "hour=0"]


def test_model_objects_and_mappings_agree():
    query = RiskQuery(vehicleType="Truck", borough="BRONX", dow=3)
    assert feature_indices(query, 1024) == feature_indices(query.model_dump(), 1024)


def test_colliding_keys_collapse_to_one_index():
    choice = {"vehicleType": "Sedan", "preCrash": "Backing", "hour": 8}
    assert feature_indices(choice, 1) == [0]


def test_hashing_drops_only_unspecified_tokens():
    assert UNSPECIFIED_TOKENS <= MISSING_TOKENS
    for token in UNSPECIFIED_TOKENS:
        assert feature_keys({"borough": token}) == []
    # Loader-level tokens are cleaned before hashing, not by it
    assert feature_keys({"borough": "NA"}) == ["bor=NA"]
