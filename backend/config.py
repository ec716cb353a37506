"""Injury Risk Backend — Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from backend/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (ValueError, TypeError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (ValueError, TypeError):
        return default


# ── Data ──
DATA_PATH = os.environ.get(
    "INJURY_RISK_DATA_PATH",
    str(Path(__file__).resolve().parent.parent / "data" / "collisions_severity.csv"),
)

# ── Estimator hyperparameters ──
HASH_DIMENSION = _env_int("INJURY_RISK_HASH_DIM", 1024)
EPOCHS = _env_int("INJURY_RISK_EPOCHS", 3)
LEARNING_RATE = _env_float("INJURY_RISK_LEARNING_RATE", 0.2)
L2_LAMBDA = _env_float("INJURY_RISK_L2", 1e-3)
LOGIT_EPSILON = 1e-6
SIGMOID_CLAMP = 30.0

# ── Chain search ──
CHAIN_MAX_DEPTH = _env_int("INJURY_RISK_CHAIN_DEPTH", 5)
CHAIN_MIN_SUPPORT = _env_int("INJURY_RISK_MIN_SUPPORT", 30)
CHAIN_MIN_DELTA = _env_float("INJURY_RISK_MIN_DELTA", 0.0)
CHAIN_CACHE_SIZE = 32

# Field order — MUST stay fixed, chain tie-breaks depend on it
CHAIN_FIELDS = ["vehicleType", "preCrash", "borough", "hour", "dow"]
CATEGORICAL_FIELDS = ["vehicleType", "preCrash", "borough"]

FIELD_LABELS = {
    "vehicleType": "Vehicle",
    "preCrash": "Action",
    "borough": "Borough",
    "hour": "Hour",
    "dow": "Day",
}

# Sunday = 0
DOW_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# Feature hashing drops only these; the record loader also clears NA / Unknown
UNSPECIFIED_TOKENS = frozenset({"", "Unspecified"})
MISSING_TOKENS = UNSPECIFIED_TOKENS | {"NA", "Unknown"}

# Per-field caps for the domain tables
CHAIN_DOMAIN_LIMITS = {
    "vehicleType": 12,
    "preCrash": 12,
    "borough": 6,
    "hour": 24,
    "dow": 7,
}

UI_DOMAIN_LIMITS = {
    "vehicleType": 25,
    "preCrash": 25,
    "borough": 10,
    "hour": 24,
    "dow": 7,
}

# Empirical-Bayes prior strength for factor rates
EB_PRIOR_STRENGTH = 50
