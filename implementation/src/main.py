from __future__ import annotations

import argparse
import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

from economy.catalog import load_config
from economy.costs import PurchaseMode
from economy.engine import Engine
from economy.notifications import PrestigeEligibilityChanged
from economy.save import SAVE_FILE_NAME, load_game, save_game

logger = logging.getLogger("economy.host")

TICKS_PER_SECOND = 10


def _parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the idle economy headless.")
    parser.add_argument("--config", type=Path, default=None, help="game data JSON (default: bundled)")
    parser.add_argument(
        "--save",
        type=Path,
        default=Path(__file__).resolve().parent / SAVE_FILE_NAME,
        help="save file path",
    )
    parser.add_argument("--tps", type=int, default=TICKS_PER_SECOND, help="ticks per second")
    parser.add_argument("--seconds", type=float, default=0.0, help="stop after this long (0 = run until Ctrl+C)")
    parser.add_argument("--autobuy", action="store_true", help="buy the cheapest affordable generator each second")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def _autobuy(engine: Engine) -> None:
    candidates = [
        g.definition.id
        for g in engine.production.generators
        if g.unlocked and engine.max_affordable_generator(g.definition.id) > 0
    ]
    if candidates:
        cheapest = min(candidates, key=engine.generator_cost)
        engine.buy_generator(cheapest, PurchaseMode.X1)
    for node in engine.map.nodes():
        engine.unlock_map_node(node.id)


def _status_line(engine: Engine) -> str:
    parts = []
    for resource in engine.config.resources:
        parts.append(
            f"{resource.display_name} {engine.balance(resource.id).to_short_string(3, resource.display_format)}"
            f" (+{engine.production_per_second(resource.id).to_short_string(3, resource.display_format)}/s)"
        )
    event = engine.active_event()
    if event is not None:
        parts.append(f"[{event.display_name} x{engine.event_multiplier():g}]")
    return " | ".join(parts)


async def main(argv: Optional[list] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    engine = Engine(config)
    snapshot = load_game(args.save)
    engine.init(snapshot)

    tick_interval = 1.0 / max(1, args.tps)
    autosave_interval = config.balance.autosave_interval_seconds
    started = last_tick = last_status = last_save = time.monotonic()

    try:
        while True:
            now = time.monotonic()
            dt = now - last_tick
            last_tick = now
            for note in engine.tick(dt):
                if isinstance(note, PrestigeEligibilityChanged) and note.eligible:
                    logger.info("Prestige %s is available", note.prestige_id)

            if now - last_status >= 1.0:
                last_status = now
                if args.autobuy:
                    _autobuy(engine)
                logger.info(_status_line(engine))

            if now - last_save >= autosave_interval:
                last_save = now
                save_game(engine, args.save)

            if args.seconds and now - started >= args.seconds:
                break
            await asyncio.sleep(tick_interval)
    except KeyboardInterrupt:
        pass
    finally:
        save_game(engine, args.save)
        engine.shutdown()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
