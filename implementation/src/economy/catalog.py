"""Game definition loading from JSON.

The bundled ``game_data.json`` sits next to this module; hosts may point
``load_config`` at their own file or hand ``config_from_dict`` an already
parsed mapping. Optional fields fall back to the dataclass defaults.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from economy.bignum import NumberFormat
from economy.definitions import (
    EffectType,
    EventDef,
    GameBalance,
    GameConfig,
    GeneratorDef,
    MapNodeDef,
    PrestigeDef,
    PrestigeTier,
    ResourceDef,
    SoftCapThreshold,
    UnlockCondition,
    UpgradeDef,
)

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    pass


def default_config_path() -> Path:
    return Path(__file__).resolve().parent / "game_data.json"


def load_config(path: Optional[Path] = None) -> GameConfig:
    if path is None:
        path = default_config_path()
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read game data {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"game data {path} is not valid JSON: {e}") from e
    config = config_from_dict(raw)
    logger.info(
        "Loaded %d resources, %d generators, %d upgrades from %s",
        len(config.resources),
        len(config.generators),
        len(config.upgrades),
        path,
    )
    return config


# ── Field helpers ──────────────────────────────────────────────────

def _float(entry: Dict[str, Any], key: str, default: float, where: str) -> float:
    try:
        return float(entry.get(key, default))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{where}: {key} must be a number") from e


def _int(entry: Dict[str, Any], key: str, default: int, where: str) -> int:
    try:
        return int(entry.get(key, default))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{where}: {key} must be an integer") from e


def _strings(entry: Dict[str, Any], key: str, where: str) -> Tuple[str, ...]:
    value = entry.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where}: {key} must be a list of strings")
    return tuple(v for v in value if v)


def _entries(data: Dict[str, Any], section: str) -> List[Dict[str, Any]]:
    items = data.get(section, [])
    if not isinstance(items, list) or not all(isinstance(e, dict) for e in items):
        raise ConfigError(f"{section} must be a list of objects")
    return items


def _ids(section: str, entries: Iterable[Dict[str, Any]]) -> List[str]:
    ids: List[str] = []
    seen: Set[str] = set()
    for index, entry in enumerate(entries):
        entry_id = entry.get("id")
        if not isinstance(entry_id, str) or not entry_id:
            raise ConfigError(f"{section}[{index}] has no id")
        if entry_id in seen:
            raise ConfigError(f"duplicate {section} id {entry_id!r}")
        seen.add(entry_id)
        ids.append(entry_id)
    return ids


def _enum(enum_type, raw: Any, default, where: str):
    if raw is None:
        return default
    if isinstance(raw, str):
        for member in enum_type:
            if raw.casefold() in (member.name.casefold(), str(member.value).casefold()):
                return member
    elif isinstance(raw, int) and not isinstance(raw, bool):
        try:
            return enum_type(raw)
        except ValueError:
            pass
    raise ConfigError(f"{where}: unknown {enum_type.__name__} {raw!r}")


def _unlock(raw: Any, where: str) -> UnlockCondition:
    if raw is None:
        return UnlockCondition(unlocked_by_default=True)
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: unlock must be an object")
    return UnlockCondition(
        unlocked_by_default=bool(raw.get("unlocked_by_default", False)),
        required_resource_id=str(raw.get("required_resource_id", "")),
        required_resource_amount=_float(raw, "required_resource_amount", 0.0, where),
        required_map_node_id=str(raw.get("required_map_node_id", "")),
    )


# ── Sections ───────────────────────────────────────────────────────

def _resource(entry: Dict[str, Any]) -> ResourceDef:
    where = f"resource {entry['id']!r}"
    caps = []
    for cap in entry.get("soft_caps", []):
        if not isinstance(cap, dict):
            raise ConfigError(f"{where}: soft_caps entries must be objects")
        caps.append(SoftCapThreshold(
            amount=_float(cap, "amount", 0.0, where),
            exponent=_float(cap, "exponent", 1.0, where),
        ))
    caps.sort(key=lambda c: c.amount)
    return ResourceDef(
        id=entry["id"],
        display_name=entry.get("display_name", entry["id"]),
        starting_amount=_float(entry, "starting_amount", 0.0, where),
        soft_caps=tuple(caps),
        display_format=_enum(NumberFormat, entry.get("display_format"), NumberFormat.SCIENTIFIC, where),
    )


def _generator(entry: Dict[str, Any]) -> GeneratorDef:
    where = f"generator {entry['id']!r}"
    produces = entry.get("produces_resource_id")
    cost_resource = entry.get("cost_resource_id")
    if not produces or not cost_resource:
        raise ConfigError(f"{where}: produces_resource_id and cost_resource_id are required")
    return GeneratorDef(
        id=entry["id"],
        produces_resource_id=produces,
        cost_resource_id=cost_resource,
        display_name=entry.get("display_name", entry["id"]),
        tags=_strings(entry, "tags", where),
        base_cost=_float(entry, "base_cost", 10.0, where),
        cost_multiplier=_float(entry, "cost_multiplier", 1.15, where),
        base_production=_float(entry, "base_production", 1.0, where),
        unlock=_unlock(entry.get("unlock"), where),
    )


def _upgrade(entry: Dict[str, Any]) -> UpgradeDef:
    where = f"upgrade {entry['id']!r}"
    if not entry.get("cost_resource_id"):
        raise ConfigError(f"{where}: cost_resource_id is required")
    return UpgradeDef(
        id=entry["id"],
        cost_resource_id=entry["cost_resource_id"],
        display_name=entry.get("display_name", entry["id"]),
        description=entry.get("description", ""),
        base_cost=_float(entry, "base_cost", 10.0, where),
        cost_multiplier=_float(entry, "cost_multiplier", 1.15, where),
        tags=_strings(entry, "tags", where),
        effect_type=_enum(EffectType, entry.get("effect_type"), EffectType.MULTIPLICATIVE, where),
        effect_value=_float(entry, "effect_value", 0.1, where),
        max_level=_int(entry, "max_level", -1, where),
        unlock=_unlock(entry.get("unlock"), where),
    )


def _prestige(entry: Dict[str, Any]) -> PrestigeDef:
    where = f"prestige {entry['id']!r}"
    if not entry.get("reward_currency_id"):
        raise ConfigError(f"{where}: reward_currency_id is required")
    return PrestigeDef(
        id=entry["id"],
        requirement_metric_id=entry.get("requirement_metric_id", ""),
        reward_currency_id=entry["reward_currency_id"],
        tier=_enum(PrestigeTier, entry.get("tier"), PrestigeTier.WARP, where),
        display_name=entry.get("display_name", entry["id"]),
        required_metric_value=_float(entry, "required_metric_value", 1e6, where),
        reward_coefficient=_float(entry, "reward_coefficient", 1.0, where),
        reward_divisor=_float(entry, "reward_divisor", 1e6, where),
        reward_exponent=_float(entry, "reward_exponent", 0.5, where),
    )


def _event(entry: Dict[str, Any]) -> EventDef:
    where = f"event {entry['id']!r}"
    return EventDef(
        id=entry["id"],
        display_name=entry.get("display_name", entry["id"]),
        duration_seconds=_float(entry, "duration_seconds", 60.0, where),
        production_multiplier=_float(entry, "production_multiplier", 2.0, where),
    )


def _map_node(entry: Dict[str, Any]) -> MapNodeDef:
    where = f"map node {entry['id']!r}"
    required = entry.get("required_resources", {})
    if not isinstance(required, dict):
        raise ConfigError(f"{where}: required_resources must map resource ids to amounts")
    return MapNodeDef(
        id=entry["id"],
        display_name=entry.get("display_name", entry["id"]),
        required_resources=tuple((rid, _float(required, rid, 0.0, where)) for rid in required),
        required_nodes=_strings(entry, "required_nodes", where),
        production_multiplier=_float(entry, "production_multiplier", 1.0, where),
    )


def _balance(raw: Any) -> GameBalance:
    if raw is None:
        return GameBalance()
    if not isinstance(raw, dict):
        raise ConfigError("balance must be an object")
    defaults = GameBalance()
    values = {}
    for name in defaults.__dataclass_fields__:
        values[name] = _float(raw, name, getattr(defaults, name), "balance")
    if not 0.0 < values["offline_efficiency"] <= 1.0:
        raise ConfigError(
            f"balance: offline_efficiency must be in (0, 1], got {values['offline_efficiency']}"
        )
    return GameBalance(**values)


def _check_references(config: GameConfig) -> None:
    resources = {r.id for r in config.resources}
    nodes = {n.id for n in config.map_nodes}
    for p in config.prestiges:
        if p.reward_currency_id in resources:
            raise ConfigError(
                f"prestige {p.id!r} pays its reward in resource {p.reward_currency_id!r}; "
                "rewards must use a meta currency"
            )
    for g in config.generators:
        if g.produces_resource_id not in resources:
            raise ConfigError(f"generator {g.id!r} produces unknown resource {g.produces_resource_id!r}")
        if g.cost_resource_id not in resources:
            raise ConfigError(f"generator {g.id!r} costs unknown resource {g.cost_resource_id!r}")

    gated = [(f"generator {g.id!r}", g.unlock) for g in config.generators]
    gated += [(f"upgrade {u.id!r}", u.unlock) for u in config.upgrades]
    for where, unlock in gated:
        if unlock.has_resource_gate and unlock.required_resource_id not in resources:
            logger.warning("%s is gated on unknown resource %r", where, unlock.required_resource_id)
        if unlock.has_map_gate and unlock.required_map_node_id not in nodes:
            logger.warning("%s is gated on unknown map node %r", where, unlock.required_map_node_id)
    for node in config.map_nodes:
        for required in node.required_nodes:
            if required not in nodes:
                logger.warning("map node %r requires unknown node %r", node.id, required)
    for p in config.prestiges:
        if p.requirement_metric_id and p.requirement_metric_id not in resources:
            logger.warning("prestige %r measures unknown resource %r", p.id, p.requirement_metric_id)


def config_from_dict(data: Dict[str, Any]) -> GameConfig:
    if not isinstance(data, dict):
        raise ConfigError("game data must be a JSON object")
    sections = {}
    for section in ("resources", "generators", "upgrades", "prestiges", "events", "map_nodes"):
        entries = _entries(data, section)
        _ids(section, entries)
        sections[section] = entries
    config = GameConfig(
        resources=tuple(_resource(e) for e in sections["resources"]),
        generators=tuple(_generator(e) for e in sections["generators"]),
        upgrades=tuple(_upgrade(e) for e in sections["upgrades"]),
        prestiges=tuple(_prestige(e) for e in sections["prestiges"]),
        events=tuple(_event(e) for e in sections["events"]),
        map_nodes=tuple(_map_node(e) for e in sections["map_nodes"]),
        balance=_balance(data.get("balance")),
    )
    _check_references(config)
    return config
