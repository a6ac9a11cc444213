from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any, Dict, Mapping, Optional

from harvest_bot.core.config import FarmSettings, ScanSettings
from harvest_bot.core.world import Item, Position
from harvest_bot.drivers.simulated import LoggingDiagnostics, SimulatedWorld, build_demo_field, stock_inventory
from harvest_bot.modules.classifier import WorldClassifier
from harvest_bot.modules.crops import CropCatalog
from harvest_bot.modules.deposit import DepositStateMachine
from harvest_bot.modules.farm import FarmProcess, FarmTickProcessor
from harvest_bot.modules.scanner import ScanScheduler

logger = logging.getLogger(__name__)

_STARTING_ITEMS = (
    (Item.IRON_HOE, 1),
    (Item.WHEAT_SEEDS, 16),
    (Item.BONE_MEAL, 8),
)


def create_farm_process(
    world: SimulatedWorld,
    diagnostics: LoggingDiagnostics,
    farm_settings: FarmSettings,
    scan_settings: ScanSettings,
    executor: Optional[Executor] = None,
) -> FarmProcess:
    """Wire the farm task against *world*, which plays every collaborator."""

    catalog = CropCatalog(farm_settings)
    classifier = WorldClassifier(catalog)
    deposit = DepositStateMachine(
        farm_settings,
        world=world,
        pathfinder=world,
        reach=world,
        interactions=world,
        inventory=world,
        waypoints=world,
        diagnostics=diagnostics,
    )

    process: Optional[FarmProcess] = None

    def is_active() -> bool:
        return process is not None and process.is_active()

    scheduler = ScanScheduler(world, scan_settings, is_active=is_active, executor=executor)
    processor = FarmTickProcessor(
        farm_settings,
        catalog,
        classifier,
        scheduler,
        deposit,
        world=world,
        pathfinder=world,
        reach=world,
        interactions=world,
        inventory=world,
        diagnostics=diagnostics,
    )
    process = FarmProcess(processor, world=world, reach=world, waypoints=world, diagnostics=diagnostics)
    return process


def create_default_modules(config: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Create default module instances used by the bot.

    The returned dict contains the simulated world, the diagnostics sink,
    the farm process and its scan scheduler.
    """

    cfg: Mapping[str, Any] = config or {}
    sim_cfg = cfg.get("simulation", {}) or {}

    farm_settings = FarmSettings.from_config(cfg)
    scan_settings = ScanSettings.from_config(cfg)

    field_size = int(sim_cfg.get("field_size", 4))
    world = SimulatedWorld(
        player=Position(0, 1, -field_size - 1),
        growth_chance=float(sim_cfg.get("growth_chance", 0.1)),
        seed=int(sim_cfg.get("seed", 0)),
    )
    build_demo_field(world, field_size=field_size)
    stock_inventory(world, _STARTING_ITEMS)

    diagnostics = LoggingDiagnostics()
    process = create_farm_process(world, diagnostics, farm_settings, scan_settings)

    modules: Dict[str, Any] = {
        "world": world,
        "diagnostics": diagnostics,
        "process": process,
        "scheduler": process.scheduler,
    }

    logger.info(
        "Created default modules: %s (field_size=%d, scan_interval=%d)",
        ", ".join(sorted(modules.keys())),
        field_size,
        scan_settings.interval,
    )
    return modules
