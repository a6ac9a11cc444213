from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Mapping

from harvest_bot.app.factory import create_default_modules
from harvest_bot.core.actions import PathingFeedback
from harvest_bot.core.config import load_config
from harvest_bot.core.interfaces import WaypointTag
from harvest_bot.core.world import Block


def _find_config_file() -> Path:
    """Return path to the primary config file, preferring config.json."""
    project_root = Path(__file__).resolve().parents[3]
    configs_dir = project_root / "configs"

    candidates = [
        configs_dir / "config.json",
        configs_dir / "config.example.json",
    ]

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    raise FileNotFoundError(
        f"Could not find configuration file in {configs_dir} "
        "(expected config.json or config.example.json)."
    )


def _setup_logging(level: int = logging.INFO) -> None:
    """Configure root logger with colored output."""
    root_logger = logging.getLogger()

    # Avoid reconfiguring logging if it's already set up.
    if root_logger.handlers:
        return

    root_logger.setLevel(level)

    from colorlog import ColoredFormatter

    handler = logging.StreamHandler()
    formatter = ColoredFormatter(
        "%(log_color)s[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        },
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def _place_stash(world: Any) -> None:
    """Put a chest next to the field and look at it so it can be selected."""
    chest = world.player.offset(-2, 0, 0)
    world.set_block(chest, Block.CHEST)
    rotation = world.reachable(chest)
    if rotation is not None:
        world.look(rotation)


def main() -> None:
    """Entry point for the harvest_bot application."""
    _setup_logging()
    logger = logging.getLogger(__name__)

    config_path = _find_config_file()
    config: Mapping[str, Any] = load_config(config_path)

    modules = create_default_modules(config)
    world = modules["world"]
    process = modules["process"]
    scheduler = modules["scheduler"]

    runtime_cfg = config.get("runtime", {}) or {}
    max_ticks = int(runtime_cfg.get("max_ticks", 300))
    max_seconds = float(runtime_cfg.get("max_seconds", 0))
    tick_delay = float(runtime_cfg.get("tick_delay", 0.05))

    world.add(WaypointTag.HOME, world.player)
    if (config.get("farm", {}) or {}).get("put_drops_in_chest", False):
        _place_stash(world)
        process.select_stash()

    stop_reason = "normal"
    try:
        process.farm()
        logger.info("[harvest_bot] starting main loop: %s", process.display_name())

        start_time = time.time()
        feedback = PathingFeedback()

        for _ in range(max_ticks):
            now = time.time()
            if max_seconds > 0 and (now - start_time) >= max_seconds:
                stop_reason = f"max_seconds reached: {max_seconds}"
                logger.info(
                    "Main loop time limit reached (%.1f seconds), breaking",
                    max_seconds,
                )
                break

            directive = process.on_tick(feedback)
            if directive is None:
                stop_reason = "farm task inactive"
                break

            logger.debug("Main loop tick %s: %s", world.tick_counter, directive)
            feedback = world.submit(directive)

            if tick_delay > 0:
                time.sleep(tick_delay)
        else:
            stop_reason = f"max_ticks reached: {max_ticks}"

        logger.info("[harvest_bot] stopping main loop")
    finally:
        process.on_lost_control()
        try:
            scheduler.close()
        except Exception:
            logger.exception("Error while stopping the scan worker")
        logger.info(
            "Main loop finished, reason=%s, total_ticks=%d, inventory=%s",
            stop_reason,
            world.tick_counter,
            ", ".join(
                f"{stack.item.value}x{stack.count}" for stack in world.main_inventory() if stack is not None
            ),
        )
