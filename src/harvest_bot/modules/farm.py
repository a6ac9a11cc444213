from __future__ import annotations

import logging
from typing import List, Optional, Tuple

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
from harvest_bot.core.config import FarmSettings
from harvest_bot.core.interfaces import (
    Diagnostics,
    Interactions,
    Inventory,
    Pathfinder,
    Process,
    Reachability,
    WaypointStore,
    WaypointTag,
    WorldView,
)
from harvest_bot.core.state import FarmTaskState
from harvest_bot.core.world import Block, Face
from harvest_bot.modules.classifier import Classification, WorldClassifier
from harvest_bot.modules.crops import (
    CropCatalog,
    is_bone_meal,
    is_nether_wart,
    is_pickup_drop,
    is_plantable,
)
from harvest_bot.modules.deposit import DepositStateMachine
from harvest_bot.modules.scanner import ScanScheduler

logger = logging.getLogger(__name__)

STASH_BLOCKS = frozenset({Block.CHEST, Block.ENDER_CHEST, Block.TRAPPED_CHEST})
STASH_SELECT_RANGE = 6.0

TickResult = Tuple[FarmTaskState, Optional[Directive]]


class FarmTickProcessor:
    """Decides the single action of one farming tick.

    Priority, highest first:

    * deposit handling while the inventory is full (when enabled),
    * breaking a ready crop within reach,
    * planting on open farmland / soul sand within reach,
    * bone-mealing a growing crop within reach,
    * otherwise a composite goal over every target and loose drop.
    """

    def __init__(
        self,
        settings: FarmSettings,
        catalog: CropCatalog,
        classifier: WorldClassifier,
        scheduler: ScanScheduler,
        deposit: DepositStateMachine,
        world: WorldView,
        pathfinder: Pathfinder,
        reach: Reachability,
        interactions: Interactions,
        inventory: Inventory,
        diagnostics: Diagnostics,
    ) -> None:
        self._settings = settings
        self._classifier = classifier
        self._scheduler = scheduler
        self._deposit = deposit
        self._world = world
        self._pathfinder = pathfinder
        self._reach = reach
        self._interactions = interactions
        self._inventory = inventory
        self._diagnostics = diagnostics
        self._scan_kinds = catalog.scan_kinds()

    @property
    def scheduler(self) -> ScanScheduler:
        return self._scheduler

    def tick(self, state: FarmTaskState, feedback: PathingFeedback) -> TickResult:
        """Run one tick and return the updated state and the directive."""

        if not state.active:
            return state, None

        if self._settings.check_inventory:
            result = self._deposit.step(state, feedback)
            state = result.state
            if result.directive is not None:
                return state, result.directive

        # The counter only moves while periodic rescans are configured.
        if self._scheduler.interval != 0:
            self._scheduler.maybe_trigger(state.tick_counter, self._scan_kinds)
            state = state.next_tick()

        snapshot = self._scheduler.snapshot
        if snapshot is None:
            logger.debug("FarmTickProcessor: no snapshot yet, pausing")
            return state, Directive.pause()

        buckets = self._classifier.classify(snapshot, self._world)
        self._interactions.clear_all_inputs()

        directive = self._act_in_place(buckets, feedback)
        if directive is not None:
            return state, directive

        if feedback.calc_failed:
            logger.info("FarmTickProcessor: pathing failed, stopping farm task")
            self._diagnostics.emit("Farm failed")
            if self._settings.go_home:
                self._pathfinder.return_home()
            return state.deactivated(), Directive.pause()

        goal = self._long_range_goal(buckets)
        logger.debug("FarmTickProcessor: pathing towards %d targets", len(goal))
        return state, Directive.set_goal(goal)

    def _act_in_place(self, buckets: Classification, feedback: PathingFeedback) -> Optional[Directive]:
        if not feedback.is_safe_to_cancel:
            return None

        reach = self._reach

        for pos in buckets.breakable:
            rotation = reach.reachable(pos)
            if rotation is None:
                continue
            reach.look(rotation)
            self._inventory.switch_to_best_tool(self._world.block_at(pos))
            if reach.is_looking_at(pos):
                self._interactions.set_input(Input.PRIMARY, True)
            logger.debug("FarmTickProcessor: breaking %s", pos)
            return Directive.pause()

        soul_sand = set(buckets.open_soul_sand)
        for pos in buckets.open_farmland + buckets.open_soul_sand:
            top_face = (pos.x + 0.5, pos.y + 1.0, pos.z + 0.5)
            rotation = reach.reachable_offset(pos, top_face)
            if rotation is None:
                continue
            seed = is_nether_wart if pos in soul_sand else is_plantable
            if not self._inventory.select(seed, True):
                continue
            hit = reach.ray_trace(rotation)
            if hit is None or hit.face is not Face.UP:
                continue
            reach.look(rotation)
            if reach.is_looking_at(pos):
                self._interactions.set_input(Input.SECONDARY, True)
            logger.debug("FarmTickProcessor: planting on %s", pos)
            return Directive.pause()

        for pos in buckets.bonemealable:
            rotation = reach.reachable(pos)
            if rotation is None or not self._inventory.select(is_bone_meal, True):
                continue
            reach.look(rotation)
            if reach.is_looking_at(pos):
                self._interactions.set_input(Input.SECONDARY, True)
            logger.debug("FarmTickProcessor: bone-mealing %s", pos)
            return Directive.pause()

        return None

    def _long_range_goal(self, buckets: Classification) -> CompositeGoal:
        goals: List[Goal] = [BreakGoal(pos) for pos in buckets.breakable]

        if self._inventory.select(is_plantable, False):
            goals.extend(StandOnGoal(pos.up()) for pos in buckets.open_farmland)
        if self._inventory.select(is_nether_wart, False):
            goals.extend(StandOnGoal(pos.up()) for pos in buckets.open_soul_sand)
        if self._inventory.select(is_bone_meal, False):
            goals.extend(StandOnGoal(pos) for pos in buckets.bonemealable)

        for dropped in self._world.dropped_items():
            if dropped.on_ground and is_pickup_drop(dropped.stack):
                goals.append(StandOnGoal(dropped.feet_position()))

        return CompositeGoal(tuple(goals))


class FarmProcess(Process):
    """Owns the farming task state and feeds it through the tick processor."""

    def __init__(
        self,
        processor: FarmTickProcessor,
        world: WorldView,
        reach: Reachability,
        waypoints: WaypointStore,
        diagnostics: Diagnostics,
    ) -> None:
        self._processor = processor
        self._world = world
        self._reach = reach
        self._waypoints = waypoints
        self._diagnostics = diagnostics
        self.state = FarmTaskState()
        self._last_command: Optional[CommandType] = None

    @property
    def scheduler(self) -> ScanScheduler:
        return self._processor.scheduler

    def is_active(self) -> bool:
        return self.state.active

    def farm(self) -> None:
        """Start (or restart) farming from a clean state."""

        self._processor.scheduler.reset()
        self.state = FarmTaskState.started()
        self._last_command = None
        logger.info("FarmProcess: farming started")

    def on_lost_control(self) -> None:
        if self.state.active:
            logger.info("FarmProcess: farming stopped")
        self.state = self.state.deactivated()
        self._processor.scheduler.reset()

    def display_name(self) -> str:
        return "Farming"

    def on_tick(self, feedback: PathingFeedback) -> Optional[Directive]:
        before = self.state
        self.state, directive = self._processor.tick(before, feedback)

        if before.active and not self.state.active:
            self.on_lost_control()
        if before.deposit is not self.state.deposit:
            logger.info(
                "FarmProcess: deposit %s -> %s",
                before.deposit.value,
                self.state.deposit.value,
            )
        if directive is not None and directive.command is not self._last_command:
            logger.info("FarmProcess: directive now %s", directive.command.value)
            self._last_command = directive.command
        return directive

    def select_stash(self) -> bool:
        """Remember the chest under the crosshair as the deposit stash.

        The chest gets a ``STASH`` waypoint and the player's current feet
        position a ``STASH_USE`` waypoint.
        """

        feet = self._world.player_feet()
        target = self._reach.selected_block()
        if target is None:
            self._diagnostics.emit("Please look at a chest")
            return False
        if feet.distance_to(target) >= STASH_SELECT_RANGE:
            self._diagnostics.emit("Block is not in range")
            return False
        if self._world.block_at(target).block not in STASH_BLOCKS:
            self._diagnostics.emit("Block is not a chest")
            return False

        self._waypoints.add(WaypointTag.STASH, target)
        self._waypoints.add(WaypointTag.STASH_USE, feet)
        logger.info("FarmProcess: stash set to %s (use from %s)", target, feet)
        return True
