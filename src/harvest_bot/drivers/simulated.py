from __future__ import annotations

import logging
import math
import random
import threading
from collections import defaultdict
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Tuple

from harvest_bot.core.actions import (
    BreakGoal,
    CommandType,
    CompositeGoal,
    Directive,
    Goal,
    Input,
    PathingFeedback,
    StandOnGoal,
)
from harvest_bot.core.interfaces import (
    Diagnostics,
    Interactions,
    Inventory,
    ItemPredicate,
    Pathfinder,
    Reachability,
    WaypointStore,
    WaypointTag,
    WorldScanner,
    WorldView,
)
from harvest_bot.core.world import (
    AIR,
    Block,
    BlockState,
    DroppedItem,
    Face,
    GrowthInfo,
    Item,
    ItemStack,
    Position,
    RayHit,
    Rotation,
)
from harvest_bot.modules.crops import MAX_AGE

logger = logging.getLogger(__name__)

REACH_DISTANCE = 4.5
EYE_HEIGHT = 1.62
INVENTORY_SIZE = 36
CHEST_SIZE = 27
_RAY_STEP = 0.02

# Blocks the player can walk through and the ray passes over without a hit.
_PASSABLE = {
    Block.AIR,
    Block.WATER,
    Block.WHEAT,
    Block.CARROTS,
    Block.POTATOES,
    Block.BEETROOTS,
    Block.NETHER_WART,
    Block.PUMPKIN_STEM,
    Block.MELON_STEM,
    Block.SUGAR_CANE,
}
_NOT_HITTABLE = {Block.AIR, Block.WATER}

_SEED_TO_CROP = {
    Item.WHEAT_SEEDS: Block.WHEAT,
    Item.CARROT: Block.CARROTS,
    Item.POTATO: Block.POTATOES,
    Item.BEETROOT_SEEDS: Block.BEETROOTS,
    Item.MELON_SEEDS: Block.MELON_STEM,
    Item.PUMPKIN_SEEDS: Block.PUMPKIN_STEM,
}

_HARVEST_DROPS = {
    Block.WHEAT: ((Item.WHEAT, 1), (Item.WHEAT_SEEDS, 1)),
    Block.CARROTS: ((Item.CARROT, 2),),
    Block.POTATOES: ((Item.POTATO, 2),),
    Block.BEETROOTS: ((Item.BEETROOT, 1), (Item.BEETROOT_SEEDS, 1)),
    Block.PUMPKIN: ((Item.PUMPKIN, 1),),
    Block.MELON: ((Item.MELON_SLICE, 3),),
    Block.NETHER_WART: ((Item.NETHER_WART, 2),),
    Block.SUGAR_CANE: ((Item.SUGAR_CANE, 1),),
    Block.CACTUS: ((Item.CACTUS, 1),),
}

_UNRIPE_DROPS = {
    Block.WHEAT: ((Item.WHEAT_SEEDS, 1),),
    Block.CARROTS: ((Item.CARROT, 1),),
    Block.POTATOES: ((Item.POTATO, 1),),
    Block.BEETROOTS: ((Item.BEETROOT_SEEDS, 1),),
    Block.NETHER_WART: ((Item.NETHER_WART, 1),),
}

_STEM_MAX_AGE = 7
_NETHER_WART_MAX_AGE = 3

_TOOLS = (Item.IRON_HOE, Item.IRON_AXE)
_STACK_SIZE = {Item.IRON_HOE: 1, Item.IRON_AXE: 1}


def max_stack_size(item: Item) -> int:
    return _STACK_SIZE.get(item, 64)


def make_stack(item: Item, count: int = 1) -> ItemStack:
    return ItemStack(item, count, max_stack_size(item))


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _flatten(goal: Goal) -> List[Goal]:
    if isinstance(goal, CompositeGoal):
        flat: List[Goal] = []
        for sub in goal:
            flat.extend(_flatten(sub))
        return flat
    return [goal]


def _goal_target(goal: Goal) -> Position:
    if isinstance(goal, (StandOnGoal, BreakGoal)):
        return goal.position
    raise TypeError(f"Unsupported goal type: {type(goal).__name__}")


class LoggingDiagnostics(Diagnostics):
    """Diagnostics sink that logs status messages and keeps them for inspection."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(f"{__name__}.diagnostics")
        self.messages: List[str] = []

    def emit(self, message: str) -> None:
        self.messages.append(message)
        self._logger.warning("%s", message)


class SimulatedWorld(
    WorldView,
    WorldScanner,
    Reachability,
    Interactions,
    Inventory,
    WaypointStore,
    Pathfinder,
):
    """In-memory block world that plays every collaborator of the farm task.

    Blocks live in a dictionary (missing positions are air). The player
    moves one block per submitted goal directive, inputs held during a tick
    take effect when the directive is submitted, and crops grow at random
    with ``growth_chance`` per tick.
    """

    def __init__(
        self,
        player: Position = Position(0, 1, 0),
        growth_chance: float = 0.0,
        seed: int = 0,
    ) -> None:
        self._lock = threading.RLock()
        self._blocks: Dict[Position, BlockState] = {}
        self._dropped: List[DroppedItem] = []
        self._waypoints: Dict[WaypointTag, List[Position]] = defaultdict(list)
        self._inputs: Dict[Input, bool] = {}
        self._rng = random.Random(seed)

        self.player = player
        self.rotation: Optional[Rotation] = None
        self.growth_chance = growth_chance
        self.slots: List[Optional[ItemStack]] = [None] * INVENTORY_SIZE
        self.chest_slots: List[Optional[ItemStack]] = [None] * CHEST_SIZE
        self.held_slot = 0
        self.interface_open = False
        self.returning_home = False
        self.always_fail_pathing = False
        self.tick_counter = 0

    # ------------------------------------------------------------------
    # World editing helpers
    # ------------------------------------------------------------------
    def set_block(self, position: Position, block: Block, age: int = 0) -> None:
        with self._lock:
            if block is Block.AIR:
                self._blocks.pop(position, None)
            else:
                self._blocks[position] = BlockState(block, age)

    def give(self, item: Item, count: int = 1) -> bool:
        """Add items to the inventory, merging into existing stacks first."""

        remaining = count
        limit = max_stack_size(item)
        for index, stack in enumerate(self.slots):
            if remaining == 0:
                break
            if stack is not None and stack.item is item and stack.count < limit:
                moved = min(limit - stack.count, remaining)
                self.slots[index] = make_stack(item, stack.count + moved)
                remaining -= moved
        for index, stack in enumerate(self.slots):
            if remaining == 0:
                break
            if stack is None:
                moved = min(limit, remaining)
                self.slots[index] = make_stack(item, moved)
                remaining -= moved
        return remaining == 0

    def drop(self, item: Item, position: Position, count: int = 1, on_ground: bool = True) -> None:
        with self._lock:
            self._dropped.append(
                DroppedItem(make_stack(item, count), position.x + 0.5, float(position.y), position.z + 0.5, on_ground)
            )

    def held(self) -> Optional[ItemStack]:
        return self.slots[self.held_slot]

    # ------------------------------------------------------------------
    # WorldView
    # ------------------------------------------------------------------
    def block_at(self, position: Position) -> BlockState:
        with self._lock:
            return self._blocks.get(position, AIR)

    def growable(self, position: Position) -> Optional[GrowthInfo]:
        state = self.block_at(position)
        max_age = self._max_age(state.block)
        if max_age is None or state.block is Block.NETHER_WART:
            return None
        can_grow = state.age < max_age
        return GrowthInfo(can_grow=can_grow, can_accept_boost=can_grow)

    def player_feet(self) -> Position:
        return self.player

    def dropped_items(self) -> Sequence[DroppedItem]:
        with self._lock:
            return tuple(self._dropped)

    # ------------------------------------------------------------------
    # WorldScanner
    # ------------------------------------------------------------------
    def scan(
        self,
        kinds: Collection[Block],
        max_results: int,
        radius_xz: int,
        radius_y: int,
    ) -> List[Position]:
        wanted = set(kinds)
        with self._lock:
            blocks = list(self._blocks.items())
            origin = self.player
        found = [
            pos
            for pos, state in blocks
            if state.block in wanted
            and abs(pos.x - origin.x) <= radius_xz
            and abs(pos.z - origin.z) <= radius_xz
            and abs(pos.y - origin.y) <= radius_y
        ]
        found.sort(key=lambda pos: (pos.distance_to(origin), pos.x, pos.y, pos.z))
        return found[:max_results]

    # ------------------------------------------------------------------
    # Reachability
    # ------------------------------------------------------------------
    def _eye(self) -> Tuple[float, float, float]:
        return (self.player.x + 0.5, self.player.y + EYE_HEIGHT, self.player.z + 0.5)

    def _rotation_towards(self, point: Tuple[float, float, float]) -> Rotation:
        ex, ey, ez = self._eye()
        dx, dy, dz = point[0] - ex, point[1] - ey, point[2] - ez
        horizontal = math.sqrt(dx * dx + dz * dz)
        yaw = math.degrees(math.atan2(-dx, dz))
        pitch = math.degrees(-math.atan2(dy, horizontal))
        return Rotation(yaw, pitch)

    def reachable(self, position: Position) -> Optional[Rotation]:
        return self.reachable_offset(position, position.center())

    def reachable_offset(
        self, position: Position, point: Tuple[float, float, float]
    ) -> Optional[Rotation]:
        ex, ey, ez = self._eye()
        distance = math.sqrt((point[0] - ex) ** 2 + (point[1] - ey) ** 2 + (point[2] - ez) ** 2)
        if distance > REACH_DISTANCE:
            return None
        rotation = self._rotation_towards(point)
        hit = self.ray_trace(rotation)
        if hit is None or hit.position != position:
            return None
        return rotation

    def ray_trace(self, rotation: Rotation) -> Optional[RayHit]:
        yaw = math.radians(rotation.yaw)
        pitch = math.radians(rotation.pitch)
        direction = (
            -math.sin(yaw) * math.cos(pitch),
            -math.sin(pitch),
            math.cos(yaw) * math.cos(pitch),
        )
        ex, ey, ez = self._eye()
        previous = Position.floor(ex, ey, ez)
        steps = int(REACH_DISTANCE / _RAY_STEP)
        for step in range(1, steps + 1):
            t = step * _RAY_STEP
            cell = Position.floor(ex + direction[0] * t, ey + direction[1] * t, ez + direction[2] * t)
            if cell == previous:
                continue
            state = self.block_at(cell)
            if state.block not in _NOT_HITTABLE:
                return RayHit(cell, self._entry_face(previous, cell))
            previous = cell
        return None

    @staticmethod
    def _entry_face(previous: Position, cell: Position) -> Face:
        if previous.y != cell.y:
            return Face.UP if previous.y > cell.y else Face.DOWN
        if previous.x != cell.x:
            return Face.EAST if previous.x > cell.x else Face.WEST
        return Face.SOUTH if previous.z > cell.z else Face.NORTH

    def look(self, rotation: Rotation) -> None:
        self.rotation = rotation

    def is_looking_at(self, position: Position) -> bool:
        return self.selected_block() == position

    def selected_block(self) -> Optional[Position]:
        if self.rotation is None:
            return None
        hit = self.ray_trace(self.rotation)
        return hit.position if hit is not None else None

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------
    def set_input(self, kind: Input, active: bool) -> None:
        self._inputs[kind] = active

    def clear_all_inputs(self) -> None:
        self._inputs.clear()

    def input_active(self, kind: Input) -> bool:
        return self._inputs.get(kind, False)

    def is_interface_open(self) -> bool:
        return self.interface_open

    def close_active_interface(self) -> None:
        self.interface_open = False

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------
    def main_inventory(self) -> Sequence[Optional[ItemStack]]:
        return tuple(self.slots)

    def select(self, predicate: ItemPredicate, select: bool) -> bool:
        for index, stack in enumerate(self.slots):
            if stack is not None and predicate(stack):
                if select:
                    self.held_slot = index
                return True
        return False

    def transfer_one_matching(self, predicate: ItemPredicate) -> bool:
        if not self.interface_open:
            return False
        try:
            target = self.chest_slots.index(None)
        except ValueError:
            return False
        for index, stack in enumerate(self.slots):
            if stack is not None and predicate(stack):
                self.chest_slots[target] = stack
                self.slots[index] = None
                return True
        return False

    def switch_to_best_tool(self, state: BlockState) -> None:
        preferred = Item.IRON_AXE if state.block in (Block.PUMPKIN, Block.MELON) else Item.IRON_HOE
        for item in (preferred,) + tuple(tool for tool in _TOOLS if tool is not preferred):
            for index, stack in enumerate(self.slots):
                if stack is not None and stack.item is item:
                    self.held_slot = index
                    return

    # ------------------------------------------------------------------
    # WaypointStore
    # ------------------------------------------------------------------
    def most_recent_by_tag(self, tag: WaypointTag) -> Optional[Position]:
        waypoints = self._waypoints.get(tag)
        return waypoints[-1] if waypoints else None

    def add(self, tag: WaypointTag, position: Position) -> None:
        self._waypoints[tag].append(position)

    # ------------------------------------------------------------------
    # Pathfinder
    # ------------------------------------------------------------------
    def path_start(self) -> Position:
        return self.player

    def return_home(self) -> None:
        home = self.most_recent_by_tag(WaypointTag.HOME)
        logger.info("SimulatedWorld: returning home to %s", home)
        self.returning_home = True
        if home is not None:
            self.player = home

    def submit(self, directive: Directive) -> PathingFeedback:
        """Apply held inputs, then move one step if a goal was set."""

        self.tick_counter += 1
        self._apply_inputs()

        calc_failed = False
        if directive.command is CommandType.SET_GOAL_AND_PATH and directive.goal is not None:
            calc_failed = self.always_fail_pathing or not self._step_towards(directive.goal)

        self._pick_up_items()
        self._grow_crops()
        return PathingFeedback(calc_failed=calc_failed, is_safe_to_cancel=True)

    def _step_towards(self, goal: Goal) -> bool:
        if goal.is_in_goal(self.player):
            return True
        goals = _flatten(goal)
        if not goals:
            return False
        nearest = min(goals, key=lambda g: g.heuristic(self.player))
        target = _goal_target(nearest)

        delta = (target.x - self.player.x, target.y - self.player.y, target.z - self.player.z)
        for axis in sorted(range(3), key=lambda i: -abs(delta[i])):
            if delta[axis] == 0:
                continue
            step = [0, 0, 0]
            step[axis] = _sign(delta[axis])
            candidate = self.player.offset(*step)
            if self._passable(candidate) and self._passable(candidate.up()):
                self.player = candidate
                return True
        return False

    def _passable(self, position: Position) -> bool:
        return self.block_at(position).block in _PASSABLE

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------
    def _apply_inputs(self) -> None:
        target = self.selected_block()
        if target is None:
            return
        if self.input_active(Input.PRIMARY):
            self._break(target)
        elif self.input_active(Input.SECONDARY):
            self._use_on(target)

    def _break(self, position: Position) -> None:
        state = self.block_at(position)
        if state.block in (Block.SUGAR_CANE, Block.CACTUS):
            cursor = position
            while self.block_at(cursor).block is state.block:
                self.set_block(cursor, Block.AIR)
                self._spawn_drops(state.block, cursor, ripe=True)
                cursor = cursor.up()
            return
        max_age = self._max_age(state.block)
        ripe = max_age is None or state.age >= max_age
        self.set_block(position, Block.AIR)
        self._spawn_drops(state.block, position, ripe)
        logger.debug("SimulatedWorld: broke %s at %s", state.block.value, position)

    def _spawn_drops(self, block: Block, position: Position, ripe: bool) -> None:
        table = _HARVEST_DROPS if ripe else _UNRIPE_DROPS
        for item, count in table.get(block, ()):
            self.drop(item, position, count)

    def _use_on(self, position: Position) -> None:
        state = self.block_at(position)
        held = self.held()

        if state.block in (Block.CHEST, Block.TRAPPED_CHEST, Block.ENDER_CHEST):
            self.interface_open = True
            return
        if held is None:
            return

        above = position.up()
        if state.block is Block.FARMLAND and held.item in _SEED_TO_CROP and self.block_at(above) == AIR:
            self.set_block(above, _SEED_TO_CROP[held.item])
            self._consume_held()
        elif state.block is Block.SOUL_SAND and held.item is Item.NETHER_WART and self.block_at(above) == AIR:
            self.set_block(above, Block.NETHER_WART)
            self._consume_held()
        elif held.item is Item.BONE_MEAL:
            growth = self.growable(position)
            if growth is not None and growth.can_accept_boost:
                max_age = self._max_age(state.block) or 0
                self.set_block(position, state.block, min(max_age, state.age + 2))
                self._consume_held()

    def _consume_held(self) -> None:
        held = self.held()
        if held is None:
            return
        self.slots[self.held_slot] = make_stack(held.item, held.count - 1) if held.count > 1 else None

    def _pick_up_items(self) -> None:
        with self._lock:
            remaining: List[DroppedItem] = []
            for dropped in self._dropped:
                near = dropped.feet_position().distance_to(self.player) <= 1.0
                if near and self.give(dropped.stack.item, dropped.stack.count):
                    continue
                remaining.append(dropped)
            self._dropped = remaining

    def _grow_crops(self) -> None:
        if self.growth_chance <= 0:
            return
        with self._lock:
            for pos, state in list(self._blocks.items()):
                max_age = self._max_age(state.block)
                if max_age is not None and state.age < max_age and self._rng.random() < self.growth_chance:
                    self._blocks[pos] = BlockState(state.block, state.age + 1)

    @staticmethod
    def _max_age(block: Block) -> Optional[int]:
        if block in MAX_AGE:
            return MAX_AGE[block]
        if block in (Block.PUMPKIN_STEM, Block.MELON_STEM):
            return _STEM_MAX_AGE
        if block is Block.NETHER_WART:
            return _NETHER_WART_MAX_AGE
        return None


def build_demo_field(
    world: SimulatedWorld,
    field_size: int = 4,
    origin: Position = Position(0, 0, 0),
) -> List[Position]:
    """Lay out a square farmland field with a water source in the middle.

    Returns the farmland positions. Crops are planted at random ages on
    about half of the tiles, the rest are left open.
    """

    farmland: List[Position] = []
    for dx in range(-field_size, field_size + 1):
        for dz in range(-field_size, field_size + 1):
            pos = origin.offset(dx, 0, dz)
            if dx == 0 and dz == 0:
                world.set_block(pos, Block.WATER)
                continue
            world.set_block(pos, Block.FARMLAND)
            farmland.append(pos)
            if world._rng.random() < 0.5:
                world.set_block(pos.up(), Block.WHEAT, world._rng.randint(0, MAX_AGE[Block.WHEAT]))
    _place_cane(world, origin.offset(field_size + 2, 0, 0), height=3)
    return farmland


def _place_cane(world: SimulatedWorld, ground: Position, height: int) -> None:
    world.set_block(ground, Block.SAND)
    for level in range(1, height + 1):
        world.set_block(ground.up(level), Block.SUGAR_CANE)


def stock_inventory(world: SimulatedWorld, items: Iterable[Tuple[Item, int]]) -> None:
    for item, count in items:
        world.give(item, count)
