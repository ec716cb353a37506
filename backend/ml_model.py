"""Injury Risk Backend — Hashed-feature logistic regression

Trains a fixed-dimension logistic regression with plain per-example SGD
and L2 weight decay. Records are visited in the order supplied and the
learning rate decays per epoch as lr0 / (1 + epoch), so a fixed record
order and fixed hyperparameters always give the same model.

The model predicts the probability (0-1) that a collision involved an
injury. There is no persistence: a model lives as long as its record set.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from config import (
    HASH_DIMENSION, EPOCHS, LEARNING_RATE, L2_LAMBDA,
    LOGIT_EPSILON, SIGMOID_CLAMP,
)
from hashing import feature_indices, field_value
from models import EstimateSummary

logger = logging.getLogger("injury_risk.model")


@dataclass(frozen=True, eq=False)
class InjuryModel:
    dimension: int
    weights: np.ndarray
    bias: float
    base_rate: float

    def __post_init__(self):
        # Shared read-only between sessions and requests
        self.weights.flags.writeable = False

    def predict(self, query) -> float:
        return predict_estimator(self, query)


def sigmoid(z: float) -> float:
    """Logistic function with the argument clamped to avoid overflow."""
    z = max(-SIGMOID_CLAMP, min(SIGMOID_CLAMP, z))
    return 1.0 / (1.0 + math.exp(-z))


def _label(record) -> float:
    return 1.0 if field_value(record, "injured") else 0.0


def train_estimator(
    records: Iterable,
    dimension: int = HASH_DIMENSION,
    epochs: int = EPOCHS,
    learning_rate: float = LEARNING_RATE,
    l2_lambda: float = L2_LAMBDA,
) -> Optional[InjuryModel]:
    """Fit the estimator. Returns None when there are no records."""
    rows = list(records)
    n = len(rows)
    if not n:
        logger.warning("No records to train on — estimator unavailable")
        return None

    t0 = time.perf_counter()
    y = np.fromiter((_label(r) for r in rows), dtype=np.float64, count=n)
    base_rate = float(y.sum()) / max(1, n)

    w = np.zeros(dimension, dtype=np.float64)
    b = math.log((base_rate + LOGIT_EPSILON) / (1.0 - base_rate + LOGIT_EPSILON))

    # Index arrays built once, reused every epoch
    x_idx = [np.asarray(feature_indices(r, dimension), dtype=np.intp) for r in rows]

    for epoch in range(epochs):
        lr = learning_rate / (1 + epoch)
        decay = 1.0 - lr * l2_lambda
        for idx, label in zip(x_idx, y):
            z = b + float(w[idx].sum())
            g = sigmoid(z) - float(label)  # log-loss gradient
            b -= lr * g
            if idx.size:
                w[idx] = w[idx] * decay - lr * g

    elapsed_ms = (time.perf_counter() - t0) * 1000
    logger.info(
        f"Trained injury estimator on {n} records "
        f"(D={dimension}, epochs={epochs}, base rate {base_rate:.3f}) in {elapsed_ms:.0f}ms"
    )
    return InjuryModel(dimension=dimension, weights=w, bias=float(b), base_rate=base_rate)


def predict_estimator(model: Optional[InjuryModel], query) -> Optional[float]:
    """Probability in [0, 1] for a partial query, or None without a model."""
    if model is None:
        return None
    idx = feature_indices(query, model.dimension)
    z = model.bias
    if idx:
        z += float(model.weights[idx].sum())
    p = sigmoid(z)
    return max(0.0, min(1.0, p))


def describe_estimate(model: InjuryModel, probability: float) -> EstimateSummary:
    """Relative-risk summary of an estimate against the model's base rate."""
    base = model.base_rate
    rr = probability / base if base > 0 else 1.0
    direction = "higher" if rr >= 1 else "lower"
    pct = abs((rr - 1) * 100)
    text = (
        f"{probability:.1%} chance that a crash involved injuries "
        f"(about {pct:.0f}% {direction} than average in this dataset)."
    )
    return EstimateSummary(
        probability=probability,
        baseRate=base,
        relativeRisk=rr,
        direction=direction,
        percentDifference=pct,
        text=text,
    )
