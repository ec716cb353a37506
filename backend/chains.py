"""Injury Risk Backend — Best / worst risk chains

Greedy, depth-bounded walk over the trained estimator. Each step fixes the
one field=value assignment that moves the predicted injury probability the
most in the requested direction, among candidates with enough matching
records. This is an approximation: it does not search all combinations and
can miss the globally most extreme one.

Ties on score keep the first candidate seen. Candidates are visited in
config.CHAIN_FIELDS order, then in domain order (most frequent first).
"""

import logging
from collections import Counter
from typing import Optional, Sequence

from config import (
    CHAIN_FIELDS, CATEGORICAL_FIELDS, CHAIN_DOMAIN_LIMITS, FIELD_LABELS,
    DOW_LABELS, MISSING_TOKENS,
    CHAIN_MAX_DEPTH, CHAIN_MIN_SUPPORT, CHAIN_MIN_DELTA,
)
from hashing import field_value
from ml_model import InjuryModel, predict_estimator
from models import ChainStep

logger = logging.getLogger("injury_risk.chains")

DIRECTIONS = ("worst", "best")


def _domain_value(field: str, raw):
    if raw is None:
        return None
    if field in CATEGORICAL_FIELDS:
        value = str(raw).strip()
        return None if value in MISSING_TOKENS else value
    return raw


def build_domains(records: Sequence, limits: Optional[dict] = None) -> dict[str, list]:
    """Most frequent non-missing values per field, capped per field.

    Ties in frequency keep first-encountered order.
    """
    limits = CHAIN_DOMAIN_LIMITS if limits is None else limits
    domains: dict[str, list] = {}
    for field in CHAIN_FIELDS:
        counts: Counter = Counter()
        for r in records:
            v = _domain_value(field, field_value(r, field))
            if v is not None:
                counts[v] += 1
        # Counter keeps insertion order and sorted() is stable
        ranked = [v for v, _ in sorted(counts.items(), key=lambda kv: -kv[1])]
        cap = limits.get(field)
        domains[field] = ranked[:cap] if cap is not None else ranked
    return domains


def support_count(records: Sequence, selection: dict) -> int:
    """Number of records matching every constrained field of ``selection``."""
    constraints = [(f, v) for f, v in selection.items() if v is not None]
    n = 0
    for r in records:
        if all(field_value(r, f) == v for f, v in constraints):
            n += 1
    return n


def format_value(field: str, value) -> str:
    if field == "hour":
        return f"{int(value):02d}:00"
    if field == "dow":
        try:
            return DOW_LABELS[int(value)]
        except (IndexError, ValueError):
            return str(value)
    return str(value)


def step_label(field: str, value) -> str:
    return f"{FIELD_LABELS.get(field, field)} = {format_value(field, value)}"


def greedy_chain(
    records: Sequence,
    model: Optional[InjuryModel],
    domains: dict[str, list],
    direction: str = "worst",
    max_depth: int = CHAIN_MAX_DEPTH,
    min_support: int = CHAIN_MIN_SUPPORT,
    min_delta: float = CHAIN_MIN_DELTA,
) -> list[ChainStep]:
    """Build one chain. ``direction`` is 'worst' (raise risk) or 'best' (lower it).

    Always returns at least the Start step; stops early when no candidate
    clears ``min_support`` or the best directional change is below
    ``min_delta``.
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")

    sel: dict = {f: None for f in CHAIN_FIELDS}
    p_curr = predict_estimator(model, sel)
    if p_curr is None:
        p_curr = model.base_rate if model is not None else 0.0

    steps = [ChainStep(label="Start", probability=p_curr, supportCount=len(records))]

    for _ in range(max_depth):
        best = None  # (score, field, value, p, n, delta)
        for f in CHAIN_FIELDS:
            if sel[f] is not None:
                continue
            for v in domains.get(f, []):
                trial = {**sel, f: v}
                n = support_count(records, trial)
                if n < min_support:
                    continue
                p = predict_estimator(model, trial)
                if p is None:
                    continue
                delta = p - p_curr
                score = delta if direction == "worst" else -delta
                if best is None or score > best[0]:
                    best = (score, f, v, p, n, delta)

        if best is None:
            break
        score, f, v, p, n, delta = best
        if score < min_delta:
            break

        sel[f] = v
        p_curr = p
        steps.append(ChainStep(
            label=step_label(f, v),
            field=f,
            value=v,
            probability=p,
            supportCount=n,
            delta=delta,
        ))

    logger.debug(f"{direction} chain: {' -> '.join(s.label for s in steps)}")
    return steps


def build_risk_chains(
    records: Sequence,
    model: Optional[InjuryModel],
    domains: Optional[dict[str, list]] = None,
    max_depth: int = CHAIN_MAX_DEPTH,
    min_support: int = CHAIN_MIN_SUPPORT,
    min_delta: float = CHAIN_MIN_DELTA,
) -> dict[str, list[ChainStep]]:
    """Both chains for one record set, keyed 'best' and 'worst'."""
    if domains is None:
        domains = build_domains(records)
    return {
        direction: greedy_chain(
            records, model, domains, direction,
            max_depth=max_depth, min_support=min_support, min_delta=min_delta,
        )
        for direction in ("best", "worst")
    }
