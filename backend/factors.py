"""Injury Risk Backend — Per-factor injury rates

Raw and empirically-shrunk injury rates for each value of one field.
Small groups are pulled toward the overall base rate so a handful of
crashes cannot dominate a ranking.
"""

from typing import Optional, Sequence

from chains import build_domains
from config import CHAIN_FIELDS, EB_PRIOR_STRENGTH
from hashing import field_value
from models import FactorRate


def eb_shrink(injured: float, n: float, base_rate: float, k: float = EB_PRIOR_STRENGTH) -> float:
    return (injured + k * base_rate) / (n + k)


def overall_rate(records: Sequence) -> float:
    n = len(records)
    if not n:
        return 0.0
    return sum(1 for r in records if field_value(r, "injured")) / n


def injury_rates(
    records: Sequence,
    field: str,
    limit: Optional[int] = None,
    k: float = EB_PRIOR_STRENGTH,
) -> list[FactorRate]:
    """Rates for the most frequent values of ``field``, by count descending."""
    if field not in CHAIN_FIELDS:
        raise ValueError(f"Unknown field {field!r}; expected one of {CHAIN_FIELDS}")

    base = overall_rate(records)
    values = build_domains(records, limits={field: limit})[field]
    totals = {v: [0, 0] for v in values}
    for r in records:
        bucket = totals.get(field_value(r, field))
        if bucket is None:
            continue
        bucket[0] += 1
        if field_value(r, "injured"):
            bucket[1] += 1

    return [
        FactorRate(
            value=v,
            count=n,
            injured=inj,
            rate=inj / n if n else 0.0,
            shrunkRate=eb_shrink(inj, n, base, k),
        )
        for v, (n, inj) in totals.items()
    ]
