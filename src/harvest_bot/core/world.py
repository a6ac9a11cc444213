from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


@dataclass(frozen=True)
class Position:
    """Integer block position in the world."""

    x: int
    y: int
    z: int

    def up(self, n: int = 1) -> Position:
        return Position(self.x, self.y + n, self.z)

    def down(self, n: int = 1) -> Position:
        return Position(self.x, self.y - n, self.z)

    def offset(self, dx: int = 0, dy: int = 0, dz: int = 0) -> Position:
        return Position(self.x + dx, self.y + dy, self.z + dz)

    def distance_to(self, other: Position) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return math.sqrt(dx * dx + dy * dy + dz * dz)

    def center(self) -> Tuple[float, float, float]:
        return (self.x + 0.5, self.y + 0.5, self.z + 0.5)

    @classmethod
    def floor(cls, x: float, y: float, z: float) -> Position:
        return cls(math.floor(x), math.floor(y), math.floor(z))


class Block(Enum):
    """Block kinds the farming task cares about."""

    AIR = "air"
    STONE = "stone"
    DIRT = "dirt"
    GRASS = "grass"
    SAND = "sand"
    WATER = "water"
    FARMLAND = "farmland"
    SOUL_SAND = "soul_sand"
    WHEAT = "wheat"
    CARROTS = "carrots"
    POTATOES = "potatoes"
    BEETROOTS = "beetroots"
    PUMPKIN = "pumpkin"
    MELON = "melon"
    PUMPKIN_STEM = "pumpkin_stem"
    MELON_STEM = "melon_stem"
    NETHER_WART = "nether_wart"
    SUGAR_CANE = "sugar_cane"
    CACTUS = "cactus"
    CHEST = "chest"
    ENDER_CHEST = "ender_chest"
    TRAPPED_CHEST = "trapped_chest"


class Item(Enum):
    """Item kinds that can sit in an inventory slot or lie on the ground."""

    WHEAT_SEEDS = "wheat_seeds"
    BEETROOT_SEEDS = "beetroot_seeds"
    MELON_SEEDS = "melon_seeds"
    PUMPKIN_SEEDS = "pumpkin_seeds"
    POTATO = "potato"
    CARROT = "carrot"
    WHEAT = "wheat"
    BEETROOT = "beetroot"
    MELON_SLICE = "melon_slice"
    MELON = "melon"
    PUMPKIN = "pumpkin"
    NETHER_WART = "nether_wart"
    SUGAR_CANE = "sugar_cane"
    CACTUS = "cactus"
    BONE_MEAL = "bone_meal"
    COBBLESTONE = "cobblestone"
    DIRT = "dirt"
    IRON_HOE = "iron_hoe"
    IRON_AXE = "iron_axe"


class Face(Enum):
    UP = "up"
    DOWN = "down"
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"


@dataclass(frozen=True)
class BlockState:
    """Block kind plus its growth stage (0 for blocks that do not grow)."""

    block: Block
    age: int = 0


AIR = BlockState(Block.AIR)


@dataclass(frozen=True)
class ItemStack:
    item: Item
    count: int = 1
    max_stack_size: int = 64

    @property
    def is_full(self) -> bool:
        return self.count >= self.max_stack_size


@dataclass(frozen=True)
class DroppedItem:
    """Item entity lying in the world."""

    stack: ItemStack
    x: float
    y: float
    z: float
    on_ground: bool = True

    def feet_position(self) -> Position:
        # +0.1 so an item resting on farmland (0.9375 high) maps to the block above it.
        return Position.floor(self.x, self.y + 0.1, self.z)


@dataclass(frozen=True)
class GrowthInfo:
    """What a growable block reports about accepting bone meal."""

    can_grow: bool
    can_accept_boost: bool


@dataclass(frozen=True)
class Rotation:
    yaw: float
    pitch: float


@dataclass(frozen=True)
class RayHit:
    """First block hit by a ray, and the face it entered through."""

    position: Position
    face: Face
