from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from harvest_bot.core.actions import Directive, Input, PathingFeedback, StandOnGoal
from harvest_bot.core.config import FarmSettings
from harvest_bot.core.interfaces import (
    Diagnostics,
    Interactions,
    Inventory,
    Pathfinder,
    Reachability,
    WaypointStore,
    WaypointTag,
    WorldView,
)
from harvest_bot.core.state import DepositState, FarmTaskState
from harvest_bot.core.world import Item, ItemStack
from harvest_bot.modules.crops import is_pickup_drop

logger = logging.getLogger(__name__)


def is_inventory_full(slots: Sequence[Optional[ItemStack]]) -> bool:
    """Return ``True`` when the farming drops have nowhere left to go.

    Every slot must be occupied. Then, for each drop kind present, the
    smallest stack is found; the inventory only counts as full if at
    least one of those smallest stacks is already at its max size.
    """

    smallest: Dict[Item, ItemStack] = {}
    for stack in slots:
        if stack is None:
            return False
        if is_pickup_drop(stack):
            current = smallest.get(stack.item)
            if current is None or stack.count < current.count:
                smallest[stack.item] = stack

    all_drops_have_space = all(not stack.is_full for stack in smallest.values())
    return not all_drops_have_space


@dataclass(frozen=True)
class DepositResult:
    """Outcome of one deposit step.

    ``directive`` is ``None`` when farming may proceed this tick.
    """

    state: FarmTaskState
    directive: Optional[Directive] = None


class DepositStateMachine:
    """Inventory full -> walk to the stash -> transfer drops -> resume or abort."""

    def __init__(
        self,
        settings: FarmSettings,
        world: WorldView,
        pathfinder: Pathfinder,
        reach: Reachability,
        interactions: Interactions,
        inventory: Inventory,
        waypoints: WaypointStore,
        diagnostics: Diagnostics,
    ) -> None:
        self._settings = settings
        self._world = world
        self._pathfinder = pathfinder
        self._reach = reach
        self._interactions = interactions
        self._inventory = inventory
        self._waypoints = waypoints
        self._diagnostics = diagnostics

    def _abort(self, state: FarmTaskState, message: str) -> DepositResult:
        logger.info("DepositStateMachine: aborting farm task (%s)", message)
        self._diagnostics.emit(message)
        if self._settings.go_home:
            self._pathfinder.return_home()
        return DepositResult(state.deactivated(), Directive.pause())

    def step(self, state: FarmTaskState, feedback: PathingFeedback) -> DepositResult:
        full = is_inventory_full(self._inventory.main_inventory())

        if state.deposit is DepositState.TRANSFERRING:
            return self._transfer(state, full)

        if not full:
            if state.deposit is not DepositState.IDLE:
                logger.info("DepositStateMachine: inventory has room again, back to farming")
                return DepositResult(state.with_deposit(DepositState.IDLE))
            return DepositResult(state)

        if not self._settings.put_drops_in_chest:
            return self._abort(state, "Cancel farming, inventory full")

        use_point = self._waypoints.most_recent_by_tag(WaypointTag.STASH_USE)
        stash = self._waypoints.most_recent_by_tag(WaypointTag.STASH)
        if use_point is None or stash is None:
            self._diagnostics.emit("No stash set, please select a chest")
            return DepositResult(state, Directive.pause())
        if use_point.distance_to(stash) >= self._settings.stash_max_distance:
            self._diagnostics.emit("Stash not properly set, please select the chest again")
            return DepositResult(state, Directive.pause())

        # One transition per tick: a task that just noticed it is full only
        # starts travelling, even if it already stands at the use point.
        was_traveling = state.deposit is DepositState.TRAVELING_TO_STASH
        if not was_traveling:
            logger.info("DepositStateMachine: inventory full, heading to stash at %s", stash)
            state = state.with_deposit(DepositState.TRAVELING_TO_STASH)

        goal = StandOnGoal(use_point)
        if not (
            goal.is_in_goal(self._world.player_feet())
            and goal.is_in_goal(self._pathfinder.path_start())
        ):
            return DepositResult(state, Directive.set_goal(goal))

        rotation = self._reach.reachable(stash)
        if rotation is None or not feedback.is_safe_to_cancel:
            return DepositResult(state, Directive.pause())

        self._reach.look(rotation)
        if self._reach.is_looking_at(stash):
            if not self._interactions.is_interface_open():
                self._interactions.set_input(Input.SECONDARY, True)
            elif was_traveling:
                self._interactions.clear_all_inputs()
                logger.info("DepositStateMachine: stash open, transferring drops")
                state = state.with_deposit(DepositState.TRANSFERRING)
        return DepositResult(state, Directive.pause())

    def _transfer(self, state: FarmTaskState, full: bool) -> DepositResult:
        if self._inventory.transfer_one_matching(is_pickup_drop):
            logger.debug("DepositStateMachine: moved one stack into the stash")
            return DepositResult(state, Directive.pause())

        self._interactions.close_active_interface()
        if full:
            return self._abort(state, "Inventory and stash are full, cancelling farming")

        logger.info("DepositStateMachine: nothing left to deposit, resuming farming")
        return DepositResult(state.with_deposit(DepositState.IDLE), Directive.pause())
