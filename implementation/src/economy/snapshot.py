"""Versioned state records for save/restore.

Every stateful module captures a plain JSON-compatible dict tagged with
``kind`` and ``version``. Restoring goes through ``prepare_record``, which
checks the tag and runs registered migrations step by step up to the current
version. Field readers never raise: malformed values fall back to defaults and
are logged.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Optional, Tuple

from economy.bignum import ZERO, BigNumber

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Migration = Callable[[Record], Record]

_MIGRATIONS: Dict[Tuple[str, int], Migration] = {}


def migration(kind: str, from_version: int) -> Callable[[Migration], Migration]:
    """Register a function upgrading ``kind`` records from ``from_version`` to the next."""
    def register(fn: Migration) -> Migration:
        _MIGRATIONS[(kind, from_version)] = fn
        return fn
    return register


def make_record(kind: str, version: int, **fields: Any) -> Record:
    record: Record = {"kind": kind, "version": version}
    record.update(fields)
    return record


def prepare_record(record: Any, kind: str, version: int) -> Optional[Record]:
    """Validate and migrate a record; None means "restore defaults"."""
    if not isinstance(record, dict):
        logger.warning("Ignoring %s state: expected a mapping, got %s", kind, type(record).__name__)
        return None
    found_kind = record.get("kind", kind)
    if found_kind != kind:
        logger.warning("Ignoring state tagged %r where %r was expected", found_kind, kind)
        return None
    found_version = read_int(record, "version", 1)
    if found_version > version:
        logger.warning(
            "Ignoring %s state version %d (newest supported is %d)", kind, found_version, version
        )
        return None
    current = dict(record)
    while found_version < version:
        step = _MIGRATIONS.get((kind, found_version))
        if step is None:
            logger.warning("No migration for %s state version %d; using defaults", kind, found_version)
            return None
        current = step(current)
        found_version += 1
        current["version"] = found_version
        logger.info("Migrated %s state to version %d", kind, found_version)
    return current


# ── Field encoding ────────────────────────────────────────────────

def encode_number(value: BigNumber) -> Dict[str, Any]:
    return {"mantissa": value.mantissa, "exponent": value.exponent}


def decode_number(raw: Any, default: BigNumber = ZERO) -> BigNumber:
    """Decode a mantissa/exponent pair; the pair may be unnormalized."""
    try:
        if isinstance(raw, dict):
            mantissa = float(raw.get("mantissa", 0.0))
            exponent = int(raw.get("exponent", 0))
        elif isinstance(raw, (list, tuple)) and len(raw) == 2:
            mantissa = float(raw[0])
            exponent = int(raw[1])
        elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return BigNumber.from_float(raw)
        else:
            raise TypeError(f"unsupported number encoding {raw!r}")
        if not math.isfinite(mantissa):
            raise ValueError(f"non-finite mantissa {mantissa!r}")
        return BigNumber.from_unnormalized(mantissa, exponent)
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning("Malformed number in saved state (%s); using %s", e, default)
        return default


def read_int(record: Record, key: str, default: int = 0) -> int:
    try:
        return int(record.get(key, default))
    except (TypeError, ValueError):
        logger.warning("Malformed integer field %r in saved state; using %d", key, default)
        return default


def read_float(record: Record, key: str, default: float = 0.0) -> float:
    try:
        value = float(record.get(key, default))
    except (TypeError, ValueError):
        value = math.nan
    if not math.isfinite(value):
        logger.warning("Malformed number field %r in saved state; using %s", key, default)
        return default
    return value


def read_bool(record: Record, key: str, default: bool = False) -> bool:
    value = record.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def read_str(record: Record, key: str, default: str = "") -> str:
    value = record.get(key, default)
    return value if isinstance(value, str) else default


def read_mapping(record: Record, key: str) -> Dict[str, Any]:
    value = record.get(key, {})
    if not isinstance(value, dict):
        logger.warning("Malformed mapping field %r in saved state; ignoring", key)
        return {}
    return value


def read_list(record: Record, key: str) -> list:
    value = record.get(key, [])
    if not isinstance(value, list):
        logger.warning("Malformed list field %r in saved state; ignoring", key)
        return []
    return value
