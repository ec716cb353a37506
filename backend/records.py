"""Collision record loader.

Turns raw CSV rows into cleaned, immutable CollisionRecord values:
  - categorical cells are trimmed and "Unspecified" / "NA" / "Unknown" become None
  - station wagon / sport utility vehicle variants collapse to "SUV"
  - hour and day-of-week come from explicit columns or from CRASH_TIME / CRASH_DATE
  - the injured label comes from an explicit flag or an injured-person count

Column names are matched case-insensitively; both camelCase exports
(vehicleType, preCrash, ...) and NYC open-data style headers are accepted.
"""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from config import MISSING_TOKENS
from models import CollisionRecord

logger = logging.getLogger("injury_risk.records")

# Field → accepted (upper-cased) column names, first match wins
_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "vehicleType": ("VEHICLETYPE", "VEHICLE_TYPE", "VEHICLE TYPE CODE 1", "VEHICLE_TYPE_CODE1"),
    "preCrash": ("PRECRASH", "PRE_CRASH", "PRE CRASH"),
    "borough": ("BOROUGH",),
    "hour": ("HOUR",),
    "dow": ("DOW", "DAY_OF_WEEK"),
    "injured": ("INJURED",),
    "injuredCount": ("INJUREDCOUNT", "INJURED_COUNT", "NUMBER OF PERSONS INJURED"),
    "severity": ("SEVERITY",),
    "date": ("CRASH_DATE", "CRASH DATE", "DATE"),
    "time": ("CRASH_TIME", "CRASH TIME", "TIME"),
}

_TRUE = {"true", "1", "yes", "y", "t"}
_FALSE = {"false", "0", "no", "n", "f"}

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
)


# ── Helpers ────────────────────────────────────────────────────

def _safe_int(val, default=None):
    try:
        return int(float(val))
    except (ValueError, TypeError):
        return default


def _safe_float(val, default=None):
    try:
        return float(val)
    except (ValueError, TypeError):
        return default


def _safe_bool(val) -> Optional[bool]:
    if isinstance(val, bool):
        return val
    if val is None:
        return None
    s = str(val).strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return None


def _pick(row: dict, field: str):
    for col in _COLUMN_ALIASES[field]:
        if col in row:
            return row[col]
    return None


def clean_category(value) -> Optional[str]:
    """Trim a categorical cell; missing-value tokens become None."""
    if value is None:
        return None
    s = str(value).strip()
    return None if s in MISSING_TOKENS else s


def normalize_vehicle_label(value) -> Optional[str]:
    """Collapse station wagon / sport utility variants to 'SUV'."""
    label = clean_category(value)
    if label is None:
        return None
    low = label.lower()
    if (
        "station wagon" in low
        or "sport utility" in low
        or "sport-utility" in low
        or ("sport" in low and "utility" in low)
        or "suv" in low
    ):
        return "SUV"
    return label


def _parse_date(raw) -> Optional[datetime]:
    if not raw or not str(raw).strip():
        return None
    raw = str(raw).strip().strip('"')
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    return None


def _parse_hour(raw) -> Optional[int]:
    """Hour from 'HH:MM' (or 'H:MM:SS') time text."""
    if not raw or not str(raw).strip():
        return None
    return _safe_int(str(raw).strip().split(":")[0])


def _in_range(value: Optional[int], lo: int, hi: int) -> Optional[int]:
    if value is None or value < lo or value > hi:
        return None
    return value


# ── Row → record ───────────────────────────────────────────────

def build_record(row: dict) -> Optional[CollisionRecord]:
    """Build a record from one CSV row, or None when no label can be derived."""
    row = {str(k).strip().upper(): v for k, v in row.items() if k is not None}

    injured_count = _safe_float(_pick(row, "injuredCount"))
    if injured_count is not None and injured_count < 0:
        injured_count = None
    injured = _safe_bool(_pick(row, "injured"))
    if injured is None:
        if injured_count is None:
            return None
        injured = injured_count > 0

    hour = _safe_int(_pick(row, "hour"))
    if hour is None:
        hour = _parse_hour(_pick(row, "time"))

    dow = _safe_int(_pick(row, "dow"))
    if dow is None:
        dt = _parse_date(_pick(row, "date"))
        if dt is not None:
            dow = (dt.weekday() + 1) % 7  # Sunday = 0

    severity = _safe_float(_pick(row, "severity"))
    if severity is not None and severity < 0:
        severity = None

    return CollisionRecord(
        vehicleType=normalize_vehicle_label(_pick(row, "vehicleType")),
        preCrash=clean_category(_pick(row, "preCrash")),
        borough=clean_category(_pick(row, "borough")),
        hour=_in_range(hour, 0, 23),
        dow=_in_range(dow, 0, 6),
        injured=injured,
        severity=severity,
        injuredCount=injured_count,
    )


def build_records(rows: Iterable[dict]) -> list[CollisionRecord]:
    records = []
    skipped = 0
    for row in rows:
        record = build_record(row)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.warning(f"Skipped {skipped} rows without an injury label")
    return records


def _stream_csv(filepath: Path):
    with open(filepath, "r", encoding="utf-8", errors="replace", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            yield row


def load_records(path) -> list[CollisionRecord]:
    """Load cleaned records from a CSV file. Missing file → empty list."""
    filepath = Path(path)
    if not filepath.exists():
        logger.warning(f"Collision data not found: {filepath}")
        return []
    records = build_records(_stream_csv(filepath))
    logger.info(f"Loaded {len(records)} collision records from {filepath.name}")
    return records
