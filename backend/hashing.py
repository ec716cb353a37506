"""Injury Risk Backend — Feature hashing

Projects (field, value) pairs into a fixed number of buckets so the
estimator never keeps a vocabulary. Distinct keys may share a bucket;
that costs some resolution but is never an error.
"""

from collections.abc import Mapping

from config import UNSPECIFIED_TOKENS

_DJB2_SEED = 5381
_MASK_32 = 0xFFFFFFFF


def hash_key(key: str, dimension: int) -> int:
    """djb2 over the UTF-8 bytes of ``key``, reduced into [0, dimension)."""
    if dimension <= 0:
        raise ValueError(f"dimension must be positive, got {dimension}")
    h = _DJB2_SEED
    for byte in key.encode("utf-8"):
        h = (h * 33 + byte) & _MASK_32
    return h % dimension


def field_value(choice, field: str):
    if isinstance(choice, Mapping):
        return choice.get(field)
    return getattr(choice, field, None)


def _present(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return value is not None and value not in UNSPECIFIED_TOKENS


def feature_keys(choice) -> list[str]:
    """Feature keys for a record or partial query, in a fixed order."""
    veh = field_value(choice, "vehicleType")
    act = field_value(choice, "preCrash")
    bor = field_value(choice, "borough")
    hour = field_value(choice, "hour")
    dow = field_value(choice, "dow")

    keys = []
    for prefix, value in (("veh", veh), ("act", act), ("bor", bor), ("hour", hour), ("dow", dow)):
        if _present(value):
            keys.append(f"{prefix}={value}")

    # Pairwise interactions for the obvious combos
    if _present(act) and _present(hour):
        keys.append(f"actxhour={act}×{hour}")
    if _present(act) and _present(dow):
        keys.append(f"actxdow={act}×{dow}")
    if _present(veh) and _present(act):
        keys.append(f"vehxact={veh}×{act}")
    return keys


def feature_indices(choice, dimension: int) -> list[int]:
    """Active bucket indices for ``choice``, first-seen order, no repeats."""
    seen: dict[int, None] = {}
    for key in feature_keys(choice):
        seen.setdefault(hash_key(key, dimension), None)
    return list(seen)
