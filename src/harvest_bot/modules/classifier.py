from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from harvest_bot.core.interfaces import WorldView
from harvest_bot.core.world import Block, Position
from harvest_bot.modules.crops import CropCatalog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    """Snapshot positions sorted into the actions they call for.

    The four buckets are disjoint and keep snapshot order.
    """

    breakable: Tuple[Position, ...] = ()
    open_farmland: Tuple[Position, ...] = ()
    open_soul_sand: Tuple[Position, ...] = ()
    bonemealable: Tuple[Position, ...] = ()

    def is_empty(self) -> bool:
        return not (self.breakable or self.open_farmland or self.open_soul_sand or self.bonemealable)

    def __repr__(self) -> str:
        return (
            "Classification("
            f"breakable={len(self.breakable)}, "
            f"open_farmland={len(self.open_farmland)}, "
            f"open_soul_sand={len(self.open_soul_sand)}, "
            f"bonemealable={len(self.bonemealable)}"
            ")"
        )


class WorldClassifier:
    def __init__(self, catalog: CropCatalog) -> None:
        self._catalog = catalog

    def classify(self, snapshot: Sequence[Position], world: WorldView) -> Classification:
        breakable: List[Position] = []
        open_farmland: List[Position] = []
        open_soul_sand: List[Position] = []
        bonemealable: List[Position] = []

        for pos in snapshot:
            state = world.block_at(pos)

            # Soil is only ever a planting target, covered or not.
            if state.block is Block.FARMLAND:
                if world.is_air_above(pos):
                    open_farmland.append(pos)
                continue
            if state.block is Block.SOUL_SAND:
                if world.is_air_above(pos):
                    open_soul_sand.append(pos)
                continue

            if self._catalog.is_ready(world, pos, state):
                breakable.append(pos)
                continue

            growth = world.growable(pos)
            if growth is not None and growth.can_grow and growth.can_accept_boost:
                bonemealable.append(pos)

        result = Classification(
            breakable=tuple(breakable),
            open_farmland=tuple(open_farmland),
            open_soul_sand=tuple(open_soul_sand),
            bonemealable=tuple(bonemealable),
        )
        logger.debug("WorldClassifier.classify: %d positions -> %r", len(snapshot), result)
        return result
