"""Injury Risk Backend — Offline estimator report

Loads a collision CSV, trains the injury estimator and prints the best and
worst risk chains. Nothing is saved; the model is rebuilt on every run.

Run from project root:
    python backend/train_estimator.py data/collisions_severity.csv
    python backend/train_estimator.py data.csv --min-support 50 --depth 3
"""

import argparse
import logging
import sys
import time

from chains import build_risk_chains
from config import (
    DATA_PATH, HASH_DIMENSION, EPOCHS, LEARNING_RATE, L2_LAMBDA,
    CHAIN_MAX_DEPTH, CHAIN_MIN_SUPPORT, CHAIN_MIN_DELTA,
)
from ml_model import train_estimator
from records import load_records

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(message)s")
logger = logging.getLogger("train")


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train the injury estimator and print risk chains")
    parser.add_argument("csv", nargs="?", default=DATA_PATH, help="collision CSV path")
    parser.add_argument("--dimension", type=int, default=HASH_DIMENSION)
    parser.add_argument("--epochs", type=int, default=EPOCHS)
    parser.add_argument("--learning-rate", type=float, default=LEARNING_RATE)
    parser.add_argument("--l2", type=float, default=L2_LAMBDA)
    parser.add_argument("--depth", type=int, default=CHAIN_MAX_DEPTH)
    parser.add_argument("--min-support", type=int, default=CHAIN_MIN_SUPPORT)
    parser.add_argument("--min-delta", type=float, default=CHAIN_MIN_DELTA)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    t0 = time.time()

    records = load_records(args.csv)
    model = train_estimator(
        records,
        dimension=args.dimension,
        epochs=args.epochs,
        learning_rate=args.learning_rate,
        l2_lambda=args.l2,
    )
    if model is None:
        logger.error("Not enough data to train the estimator")
        return 1

    logger.info(f"\n{'='*50}")
    logger.info(f"Records:    {len(records)}")
    logger.info(f"Base rate:  {model.base_rate:.2%}")
    logger.info(f"Bias:       {model.bias:+.4f}")
    logger.info(f"{'='*50}")

    chains = build_risk_chains(
        records, model,
        max_depth=args.depth, min_support=args.min_support, min_delta=args.min_delta,
    )
    for direction, steps in chains.items():
        logger.info(f"\n{direction.title()} chain:")
        for step in steps:
            logger.info(f"  {step.label:30s} {step.probability:6.1%}  n={step.supportCount:,}")

    logger.info(f"\nTotal time: {time.time() - t0:.1f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
