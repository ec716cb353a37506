"""Shared fixtures: small deterministic collision record sets."""

import pytest

from models import CollisionRecord

_VEHICLES = ["Sedan", "SUV", "Truck", "Bike"]
_ACTIONS = ["Going Straight", "Turning Left", "Backing"]
_BOROUGHS = ["QUEENS", "BROOKLYN"]


def make_synthetic_records(n: int = 480) -> list[CollisionRecord]:
    """Bikes and left turns are riskier; backing trucks are safest."""
    rows = []
    for i in range(n):
        veh = _VEHICLES[i % 4]
        act = _ACTIONS[(i // 4) % 3]
        injured = (
            veh == "Bike"
            or (act == "Turning Left" and i % 3 == 0)
            or (act == "Going Straight" and i % 5 == 0)
        )
        if veh == "Truck" and act == "Backing":
            injured = False
        rows.append(CollisionRecord(
            vehicleType=veh,
            preCrash=act,
            borough=_BOROUGHS[(i // 12) % 2],
            hour=(i * 7) % 24,
            dow=i % 7,
            injured=injured,
        ))
    return rows


@pytest.fixture
def synthetic_records():
    return make_synthetic_records()


@pytest.fixture
def four_records():
    return [
        CollisionRecord(vehicleType="Sedan", injured=True),
        CollisionRecord(vehicleType="Sedan", injured=False),
        CollisionRecord(vehicleType="Truck", injured=True),
        CollisionRecord(vehicleType="Truck", injured=True),
    ]
