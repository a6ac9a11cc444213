"""Shared helpers for the farm task tests."""

from __future__ import annotations

from concurrent.futures import Executor, Future
from typing import Any, Callable

from harvest_bot.core.world import Block, Item, Position
from harvest_bot.drivers.simulated import INVENTORY_SIZE, SimulatedWorld, make_stack


class ImmediateExecutor(Executor):
    """Runs submitted work on the calling thread so scans finish inside the tick."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # pragma: no cover - mirrors a worker thread
            future.set_exception(exc)
        return future


def plant(world: SimulatedWorld, position: Position, crop: Block, age: int = 0) -> None:
    """Put *crop* at *position* with farmland underneath."""
    world.set_block(position.down(), Block.FARMLAND)
    world.set_block(position, crop, age)


def fill_inventory(world: SimulatedWorld, item: Item = Item.WHEAT, count: int = 64) -> None:
    """Occupy every inventory slot with a stack of *item*."""
    world.slots = [make_stack(item, count) for _ in range(INVENTORY_SIZE)]
