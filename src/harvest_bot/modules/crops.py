from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional, Tuple

from harvest_bot.core.config import FarmSettings
from harvest_bot.core.interfaces import WorldView
from harvest_bot.core.world import Block, BlockState, Item, ItemStack, Position

logger = logging.getLogger(__name__)

ReadyPredicate = Callable[[WorldView, Position, BlockState], bool]

# Growth tables differ per crop: beetroots only have four stages.
MAX_AGE = {
    Block.WHEAT: 7,
    Block.CARROTS: 7,
    Block.POTATOES: 7,
    Block.BEETROOTS: 3,
}

NETHER_WART_RIPE_AGE = 3

# Items that can be planted on farmland.
FARMLAND_PLANTABLE: FrozenSet[Item] = frozenset(
    {
        Item.BEETROOT_SEEDS,
        Item.MELON_SEEDS,
        Item.WHEAT_SEEDS,
        Item.PUMPKIN_SEEDS,
        Item.POTATO,
        Item.CARROT,
    }
)

# Harvest drops worth walking to and worth depositing.
PICKUP_DROPPED: FrozenSet[Item] = frozenset(
    {
        Item.BEETROOT_SEEDS,
        Item.BEETROOT,
        Item.MELON_SEEDS,
        Item.MELON_SLICE,
        Item.MELON,
        Item.WHEAT_SEEDS,
        Item.WHEAT,
        Item.PUMPKIN_SEEDS,
        Item.PUMPKIN,
        Item.POTATO,
        Item.CARROT,
        Item.NETHER_WART,
        Item.SUGAR_CANE,
        Item.CACTUS,
    }
)


def is_plantable(stack: Optional[ItemStack]) -> bool:
    return stack is not None and stack.item in FARMLAND_PLANTABLE


def is_bone_meal(stack: Optional[ItemStack]) -> bool:
    return stack is not None and stack.item is Item.BONE_MEAL


def is_nether_wart(stack: Optional[ItemStack]) -> bool:
    return stack is not None and stack.item is Item.NETHER_WART


def is_pickup_drop(stack: Optional[ItemStack]) -> bool:
    return stack is not None and stack.item in PICKUP_DROPPED


@dataclass(frozen=True)
class CropVariant:
    """One harvestable block kind and the rule that says when to break it."""

    name: str
    block: Block
    ready: ReadyPredicate

    def matches(self, block: Block) -> bool:
        return block is self.block

    def is_ready(self, world: WorldView, position: Position, state: BlockState) -> bool:
        return self.ready(world, position, state)


def _at_max_age(block: Block) -> ReadyPredicate:
    max_age = MAX_AGE[block]

    def ready(world: WorldView, position: Position, state: BlockState) -> bool:  # noqa: ARG001
        return state.age == max_age

    return ready


def _always(world: WorldView, position: Position, state: BlockState) -> bool:  # noqa: ARG001
    return True


def _nether_wart_ripe(world: WorldView, position: Position, state: BlockState) -> bool:  # noqa: ARG001
    return state.age >= NETHER_WART_RIPE_AGE


def _column(block: Block, replant: bool) -> ReadyPredicate:
    """Column crops keep their bottom segment when replanting is on."""

    def ready(world: WorldView, position: Position, state: BlockState) -> bool:  # noqa: ARG001
        if replant:
            return world.block_at(position.down()).block is block
        return True

    return ready


def build_variants(replant_crops: bool) -> Tuple[CropVariant, ...]:
    return (
        CropVariant("wheat", Block.WHEAT, _at_max_age(Block.WHEAT)),
        CropVariant("carrots", Block.CARROTS, _at_max_age(Block.CARROTS)),
        CropVariant("potatoes", Block.POTATOES, _at_max_age(Block.POTATOES)),
        CropVariant("beetroot", Block.BEETROOTS, _at_max_age(Block.BEETROOTS)),
        CropVariant("pumpkin", Block.PUMPKIN, _always),
        CropVariant("melon", Block.MELON, _always),
        CropVariant("netherwart", Block.NETHER_WART, _nether_wart_ripe),
        CropVariant("sugarcane", Block.SUGAR_CANE, _column(Block.SUGAR_CANE, replant_crops)),
        CropVariant("cactus", Block.CACTUS, _column(Block.CACTUS, replant_crops)),
    )


class CropCatalog:
    """Fixed, ordered table of harvestable crops."""

    def __init__(self, settings: Optional[FarmSettings] = None) -> None:
        self._settings = settings or FarmSettings()
        self._variants = build_variants(self._settings.replant_crops)
        self._by_block = {variant.block: variant for variant in self._variants}
        logger.debug(
            "CropCatalog: %d variants (replant_crops=%s)",
            len(self._variants),
            self._settings.replant_crops,
        )

    @property
    def variants(self) -> Tuple[CropVariant, ...]:
        return self._variants

    def classify(self, block: Block) -> Optional[CropVariant]:
        return self._by_block.get(block)

    def is_ready(self, world: WorldView, position: Position, state: BlockState) -> bool:
        """Return ``True`` if *state* at *position* is a crop ready to break."""

        variant = self.classify(state.block)
        if variant is None:
            return False
        return variant.is_ready(world, position, state)

    def scan_kinds(self) -> Tuple[Block, ...]:
        """Block kinds the world scan should look for."""

        kinds = [variant.block for variant in self._variants]
        if self._settings.replant_crops:
            kinds.append(Block.FARMLAND)
            if self._settings.replant_nether_wart:
                kinds.append(Block.SOUL_SAND)
        return tuple(kinds)
