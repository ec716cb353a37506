"""Injury Risk Backend — Per-view estimator session

Owns one record set and everything derived from it: the trained model,
the domain tables and cached chains. Callers create one session per view
and pass it around; nothing here is process-global. Replacing the record
set drops every derived value.

Each record set gets a generation number. Training and chain search run
outside the state lock on a snapshot (generation, records), and their
results are only stored if the generation is still current, so a replace
never waits for a search and never inherits its stale result.
"""

import logging
import threading
from typing import Iterable, Optional

from cachetools import LRUCache

from chains import build_domains, build_risk_chains, format_value
from config import (
    HASH_DIMENSION, EPOCHS, LEARNING_RATE, L2_LAMBDA,
    CHAIN_DOMAIN_LIMITS, UI_DOMAIN_LIMITS, CHAIN_CACHE_SIZE,
    CHAIN_MAX_DEPTH, CHAIN_MIN_SUPPORT, CHAIN_MIN_DELTA,
)
from factors import injury_rates, overall_rate
from ml_model import InjuryModel, train_estimator, describe_estimate
from models import (
    CollisionRecord, RiskQuery, EstimateResponse, ChainsResponse,
    FactorRatesResponse,
)

logger = logging.getLogger("injury_risk.session")

NOT_ENOUGH_DATA = "Not enough data to build an estimate"

_DOMAIN_LIMITS = {
    "chain": CHAIN_DOMAIN_LIMITS,
    "ui": UI_DOMAIN_LIMITS,
}


class EstimatorSession:
    """Lazy model + domain tables for one record set."""

    def __init__(
        self,
        records: Iterable[CollisionRecord] = (),
        dimension: int = HASH_DIMENSION,
        epochs: int = EPOCHS,
        learning_rate: float = LEARNING_RATE,
        l2_lambda: float = L2_LAMBDA,
    ):
        self.dimension = dimension
        self.epochs = epochs
        self.learning_rate = learning_rate
        self.l2_lambda = l2_lambda
        # Short critical sections only; never held while computing
        self._lock = threading.Lock()
        # Serialises training so one record set is trained once
        self._train_lock = threading.Lock()
        self._chain_cache: LRUCache = LRUCache(maxsize=CHAIN_CACHE_SIZE)
        self._generation = 0
        self._reset(tuple(records))

    def _reset(self, records: tuple):
        self._generation += 1
        self._records = records
        self._model: Optional[InjuryModel] = None
        self._trained = False
        self._domains: dict[str, dict[str, list]] = {}
        self._chain_cache.clear()

    def _snapshot(self) -> tuple[int, tuple]:
        with self._lock:
            return self._generation, self._records

    @property
    def records(self) -> tuple:
        return self._snapshot()[1]

    @property
    def generation(self) -> int:
        return self._snapshot()[0]

    def replace_records(self, records: Iterable[CollisionRecord]):
        records = tuple(records)
        with self._lock:
            self._reset(records)
        logger.info(f"Record set replaced ({len(records)} records); model will retrain")

    # ─────────────────────────── Derived values ─────────────────────

    def _model_for(self, generation: int, records: tuple) -> Optional[InjuryModel]:
        with self._lock:
            if self._generation == generation and self._trained:
                return self._model
        with self._train_lock:
            with self._lock:
                if self._generation == generation and self._trained:
                    return self._model
            model = train_estimator(
                records,
                dimension=self.dimension,
                epochs=self.epochs,
                learning_rate=self.learning_rate,
                l2_lambda=self.l2_lambda,
            )
        with self._lock:
            if self._generation == generation:
                self._model = model
                self._trained = True
        return model

    def _domains_for(self, generation: int, records: tuple, kind: str) -> dict[str, list]:
        if kind not in _DOMAIN_LIMITS:
            raise ValueError(f"Unknown domain kind {kind!r}")
        with self._lock:
            if self._generation == generation and kind in self._domains:
                return self._domains[kind]
        domains = build_domains(records, _DOMAIN_LIMITS[kind])
        with self._lock:
            if self._generation == generation:
                self._domains[kind] = domains
        return domains

    @property
    def model(self) -> Optional[InjuryModel]:
        return self._model_for(*self._snapshot())

    @property
    def base_rate(self) -> float:
        model = self.model
        return model.base_rate if model is not None else 0.0

    def domains(self, kind: str = "chain") -> dict[str, list]:
        generation, records = self._snapshot()
        return self._domains_for(generation, records, kind)

    def domain_options(self) -> dict[str, list[dict]]:
        """UI option lists with display labels."""
        return {
            field: [{"value": v, "label": format_value(field, v)} for v in values]
            for field, values in self.domains("ui").items()
        }

    # ─────────────────────────── Queries ────────────────────────────

    def estimate(self, query: RiskQuery) -> EstimateResponse:
        model = self.model
        if model is None:
            return EstimateResponse(available=False, message=NOT_ENOUGH_DATA)
        p = model.predict(query)
        return EstimateResponse(
            available=True,
            probability=p,
            baseRate=model.base_rate,
            summary=describe_estimate(model, p),
        )

    def chains(
        self,
        max_depth: int = CHAIN_MAX_DEPTH,
        min_support: int = CHAIN_MIN_SUPPORT,
        min_delta: float = CHAIN_MIN_DELTA,
    ) -> ChainsResponse:
        generation, records = self._snapshot()
        model = self._model_for(generation, records)
        if model is None or not records:
            return ChainsResponse(available=False, message="Not enough data to build chains")

        key = (generation, max_depth, min_support, min_delta)
        with self._lock:
            cached = self._chain_cache.get(key)
        if cached is not None:
            return cached

        domains = self._domains_for(generation, records, "chain")
        chains = build_risk_chains(
            records, model, domains,
            max_depth=max_depth, min_support=min_support, min_delta=min_delta,
        )
        result = ChainsResponse(available=True, best=chains["best"], worst=chains["worst"])
        with self._lock:
            if self._generation == generation:
                self._chain_cache[key] = result
            else:
                logger.info("Record set replaced during chain search; result not cached")
        return result

    def factor_rates(self, field: str, limit: Optional[int] = None) -> FactorRatesResponse:
        records = self.records
        return FactorRatesResponse(
            field=field,
            baseRate=overall_rate(records),
            rates=injury_rates(records, field, limit=limit),
        )
