import base64
import json

from economy.bignum import BigNumber
from economy.save import (
    SAVE_FORMAT,
    build_save_dict,
    delete_save,
    export_save_text,
    import_save_text,
    load_game,
    save_game,
    upgrade_save_dict,
)


def played(engine):
    engine.production.credit("credits", BigNumber.from_float(400))
    engine.buy_generator("miner")
    engine.tick(3.0)
    return engine


def test_save_and_load_round_trip(engine, make_engine, tmp_path):
    played(engine)
    path = tmp_path / "economy_save.json"
    assert save_game(engine, path)
    assert not path.with_suffix(".tmp").exists()

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["format"] == SAVE_FORMAT
    assert data["engine"]["kind"] == "engine"

    snapshot = load_game(path)
    restored = make_engine()
    restored.init(snapshot)
    assert restored.balance("credits") == engine.balance("credits")
    assert restored.generator_level("miner") == 1


def test_missing_or_corrupt_file_loads_nothing(tmp_path):
    assert load_game(tmp_path / "nope.json") is None
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{\"format\": 2, \"engine\":", encoding="utf-8")
    assert load_game(corrupt) is None
    foreign = tmp_path / "foreign.json"
    foreign.write_text(json.dumps({"format": 99, "engine": {}}), encoding="utf-8")
    assert load_game(foreign) is None


def test_bare_engine_record_is_upgraded(engine, tmp_path):
    record = played(engine).capture_state()
    path = tmp_path / "old.json"
    path.write_text(json.dumps(record), encoding="utf-8")
    assert load_game(path) == record

    upgraded = upgrade_save_dict(record)
    assert upgraded["format"] == SAVE_FORMAT
    assert upgraded["engine"] == record


def test_non_saves_are_rejected():
    assert upgrade_save_dict([1, 2, 3]) is None
    assert upgrade_save_dict({"kind": "map"}) is None
    assert upgrade_save_dict({"format": 2, "engine": "text"}) is None


def test_export_import_round_trip(engine):
    text = export_save_text(played(engine))
    assert import_save_text(text) == engine.capture_state()
    assert import_save_text("  " + text + "\n") == engine.capture_state()


def test_import_accepts_raw_json(engine):
    raw = json.dumps(build_save_dict(played(engine)))
    assert import_save_text(raw)["kind"] == "engine"


def test_import_rejects_tampered_text(engine):
    data = json.loads(base64.b64decode(export_save_text(played(engine))))
    data["engine"]["meta"]["balances"] = {"warp_cores": {"mantissa": 9.0, "exponent": 9}}
    tampered = base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")
    assert import_save_text(tampered) is None


def test_import_rejects_garbage():
    assert import_save_text("definitely not a save!") is None
    assert import_save_text(base64.b64encode(b"[1, 2]").decode("ascii")) is None


def test_delete_save(engine, tmp_path):
    path = tmp_path / "economy_save.json"
    save_game(engine, path)
    assert delete_save(path)
    assert not path.exists()
    assert not delete_save(path)
