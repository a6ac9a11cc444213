"""Shared fixtures for the farm task tests."""

from __future__ import annotations

from typing import Callable, Iterator, List, Optional

import pytest

from harvest_bot.app.factory import create_farm_process
from harvest_bot.core.config import FarmSettings, ScanSettings
from harvest_bot.core.world import Position
from harvest_bot.drivers.simulated import LoggingDiagnostics, SimulatedWorld
from harvest_bot.modules.farm import FarmProcess

from tests.helpers import ImmediateExecutor


@pytest.fixture
def world() -> SimulatedWorld:
    return SimulatedWorld(player=Position(0, 1, 0))


@pytest.fixture
def diagnostics() -> LoggingDiagnostics:
    return LoggingDiagnostics()


@pytest.fixture
def make_process(
    world: SimulatedWorld,
    diagnostics: LoggingDiagnostics,
) -> Iterator[Callable[..., FarmProcess]]:
    """Build a farm process on the ``world`` fixture.

    Scans run synchronously and, by default, on every tick.
    """

    created: List[FarmProcess] = []

    def factory(
        farm: Optional[FarmSettings] = None,
        scan: Optional[ScanSettings] = None,
        start: bool = True,
    ) -> FarmProcess:
        process = create_farm_process(
            world,
            diagnostics,
            farm or FarmSettings(),
            scan or ScanSettings(interval=1),
            executor=ImmediateExecutor(),
        )
        if start:
            process.farm()
        created.append(process)
        return process

    yield factory

    for process in created:
        process.scheduler.close()
