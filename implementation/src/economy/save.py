"""Save/load and export/import of engine snapshots.

Save file: JSON envelope ``{format, saved_at, engine}`` written atomically
(tmp + rename).
Export: base64 of the same envelope plus a sha256 checksum of the engine
record, for copy/paste transfer between machines.
Import: accepts raw JSON or base64-JSON; older envelope formats are upgraded
on read.

The engine itself never touches the filesystem; everything here works on the
plain dict returned by ``Engine.capture_state``.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

if TYPE_CHECKING:
    from economy.engine import Engine

logger = logging.getLogger(__name__)

SAVE_FORMAT = 2
SAVE_FILE_NAME = "economy_save.json"

_FORMAT_MIGRATIONS: Dict[int, Callable[[dict], dict]] = {}


def _format_migration(from_format: int):
    def register(fn: Callable[[dict], dict]) -> Callable[[dict], dict]:
        _FORMAT_MIGRATIONS[from_format] = fn
        return fn
    return register


@_format_migration(1)
def _wrap_bare_engine_record(data: dict) -> dict:
    """Format 1 files held the engine record itself, with no envelope."""
    return {"format": 2, "saved_at": "", "engine": data}


def _save_format(data: dict) -> int:
    if "format" in data:
        try:
            return int(data["format"])
        except (TypeError, ValueError):
            return -1
    # Bare engine records predate the envelope.
    return 1 if data.get("kind") == "engine" else -1


def upgrade_save_dict(data: Any) -> Optional[dict]:
    """Bring a parsed save up to SAVE_FORMAT; None if it is not a save."""
    if not isinstance(data, dict):
        return None
    found = _save_format(data)
    if found < 1 or found > SAVE_FORMAT:
        logger.warning("Unsupported save format %r", data.get("format"))
        return None
    while found < SAVE_FORMAT:
        step = _FORMAT_MIGRATIONS.get(found)
        if step is None:
            logger.warning("No migration from save format %d", found)
            return None
        data = step(data)
        found += 1
        logger.info("Upgraded save to format %d", found)
    if not isinstance(data.get("engine"), dict):
        return None
    return data


def build_save_dict(engine: Engine) -> dict:
    """Build the JSON-serializable save envelope from the engine's state."""
    return {
        "format": SAVE_FORMAT,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "engine": engine.capture_state(),
    }


def _checksum(record: dict) -> str:
    canonical = json.dumps(record, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# ── Files ──────────────────────────────────────────────────────────

def save_game(engine: Engine, path: Path) -> bool:
    """Write the save JSON atomically (tmp + rename)."""
    data = build_save_dict(engine)
    tmp_path = path.with_suffix(".tmp")
    try:
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(path)
    except OSError as e:
        logger.error("Error saving game to %s: %s", path, e)
        return False
    logger.debug("Saved game to %s", path)
    return True


def load_game(path: Path) -> Optional[dict]:
    """Read a save file and return the engine snapshot; None on missing/corrupt file."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Error loading save file %s: %s", path, e)
        return None
    data = upgrade_save_dict(data)
    if data is None:
        logger.error("Save file %s is not a valid save", path)
        return None
    return data["engine"]


def delete_save(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error("Error deleting save file %s: %s", path, e)
        return False
    logger.info("Deleted save file %s", path)
    return True


# ── Text transfer ──────────────────────────────────────────────────

def export_save_text(engine: Engine) -> str:
    data = build_save_dict(engine)
    data["checksum"] = _checksum(data["engine"])
    return base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")


def import_save_text(text: str) -> Optional[dict]:
    """Parse exported text (base64-JSON) or a raw JSON save; returns the engine snapshot."""
    text = text.strip()
    data = None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            raw = base64.b64decode(text, validate=True)
            data = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
            logger.error("Could not parse imported save text")
            return None

    expected = data.get("checksum") if isinstance(data, dict) else None
    data = upgrade_save_dict(data)
    if data is None:
        logger.error("Imported text is not a valid save")
        return None
    if expected is not None and expected != _checksum(data["engine"]):
        logger.error("Imported save failed its checksum; it may be truncated")
        return None
    return data["engine"]
