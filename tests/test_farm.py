from __future__ import annotations

import threading
import time
from typing import Callable, Collection, List

from harvest_bot.core.actions import BreakGoal, CommandType, CompositeGoal, Input, PathingFeedback, StandOnGoal
from harvest_bot.core.config import FarmSettings, ScanSettings
from harvest_bot.core.interfaces import WaypointTag
from harvest_bot.core.state import DepositState
from harvest_bot.app.factory import create_farm_process
from harvest_bot.core.world import Block, Item, Position
from harvest_bot.drivers.simulated import LoggingDiagnostics, SimulatedWorld
from harvest_bot.modules.farm import FarmProcess

from tests.helpers import fill_inventory, plant

MakeProcess = Callable[..., FarmProcess]
NEXT_TO_PLAYER = Position(1, 1, 0)


def _goal(directive) -> CompositeGoal:
    assert directive is not None
    assert directive.command is CommandType.SET_GOAL_AND_PATH
    assert isinstance(directive.goal, CompositeGoal)
    return directive.goal


# ----------------------------------------------------------------------
# End-to-end scenarios
# ----------------------------------------------------------------------
def test_no_snapshot_pauses(world: SimulatedWorld, make_process: MakeProcess) -> None:
    plant(world, NEXT_TO_PLAYER, Block.WHEAT, 7)
    process = make_process(scan=ScanSettings(interval=0))

    directive = process.on_tick(PathingFeedback())

    assert directive is not None and directive.is_pause
    assert process.scheduler.snapshot is None
    assert not world.input_active(Input.PRIMARY)


def test_ripe_crop_in_reach_is_broken_in_place(world: SimulatedWorld, make_process: MakeProcess) -> None:
    plant(world, NEXT_TO_PLAYER, Block.WHEAT, 7)
    world.give(Item.IRON_HOE)
    world.give(Item.COBBLESTONE, 10)
    world.held_slot = 1
    process = make_process()

    directive = process.on_tick(PathingFeedback())

    assert directive is not None and directive.is_pause
    assert world.input_active(Input.PRIMARY)
    assert world.held() is not None and world.held().item is Item.IRON_HOE
    assert world.is_looking_at(NEXT_TO_PLAYER)


def test_full_inventory_without_stash_stops_task(
    world: SimulatedWorld, diagnostics: LoggingDiagnostics, make_process: MakeProcess
) -> None:
    fill_inventory(world)
    process = make_process(farm=FarmSettings(check_inventory=True, put_drops_in_chest=False))

    directive = process.on_tick(PathingFeedback())

    assert directive is not None and directive.is_pause
    assert not process.is_active()
    assert diagnostics.messages == ["Cancel farming, inventory full"]
    assert process.on_tick(PathingFeedback()) is None


def test_unreachable_open_farmland_becomes_stand_on_goal(world: SimulatedWorld, make_process: MakeProcess) -> None:
    world.set_block(Position(10, 0, 0), Block.FARMLAND)
    world.give(Item.WHEAT_SEEDS, 4)
    process = make_process()

    goal = _goal(process.on_tick(PathingFeedback()))

    assert goal.goals == (StandOnGoal(Position(10, 1, 0)),)
    assert not world.input_active(Input.SECONDARY)


# ----------------------------------------------------------------------
# Priority order and in-place actions
# ----------------------------------------------------------------------
def test_breaking_beats_planting(world: SimulatedWorld, make_process: MakeProcess) -> None:
    plant(world, NEXT_TO_PLAYER, Block.WHEAT, 7)
    world.set_block(Position(-1, 0, 0), Block.FARMLAND)
    world.give(Item.WHEAT_SEEDS, 4)
    process = make_process()

    directive = process.on_tick(PathingFeedback())

    assert directive is not None and directive.is_pause
    assert world.input_active(Input.PRIMARY)
    assert not world.input_active(Input.SECONDARY)


def test_open_farmland_in_reach_is_planted(world: SimulatedWorld, make_process: MakeProcess) -> None:
    farmland = Position(1, 0, 0)
    world.set_block(farmland, Block.FARMLAND)
    world.give(Item.COBBLESTONE, 10)
    world.give(Item.WHEAT_SEEDS, 4)
    process = make_process()

    directive = process.on_tick(PathingFeedback())
    assert directive is not None and directive.is_pause
    assert world.input_active(Input.SECONDARY)
    assert world.held() is not None and world.held().item is Item.WHEAT_SEEDS

    world.submit(directive)
    assert world.block_at(farmland.up()).block is Block.WHEAT
    assert world.held() is not None and world.held().count == 3


def test_soul_sand_in_reach_gets_nether_wart(world: SimulatedWorld, make_process: MakeProcess) -> None:
    soul_sand = Position(1, 0, 0)
    world.set_block(soul_sand, Block.SOUL_SAND)
    world.give(Item.NETHER_WART, 2)
    process = make_process(farm=FarmSettings(replant_nether_wart=True))

    directive = process.on_tick(PathingFeedback())
    world.submit(directive)

    assert world.block_at(soul_sand.up()).block is Block.NETHER_WART


def test_growing_crop_in_reach_gets_bone_meal(world: SimulatedWorld, make_process: MakeProcess) -> None:
    plant(world, NEXT_TO_PLAYER, Block.WHEAT, 2)
    world.give(Item.BONE_MEAL, 3)
    process = make_process()

    directive = process.on_tick(PathingFeedback())
    assert directive is not None and directive.is_pause
    assert world.input_active(Input.SECONDARY)

    world.submit(directive)
    assert world.block_at(NEXT_TO_PLAYER).age == 4


def test_no_in_place_action_while_path_is_busy(world: SimulatedWorld, make_process: MakeProcess) -> None:
    plant(world, NEXT_TO_PLAYER, Block.WHEAT, 7)
    process = make_process()

    goal = _goal(process.on_tick(PathingFeedback(is_safe_to_cancel=False)))

    assert BreakGoal(NEXT_TO_PLAYER) in goal.goals
    assert not world.input_active(Input.PRIMARY)


# ----------------------------------------------------------------------
# Long-range goal
# ----------------------------------------------------------------------
def test_goal_gating_on_carried_items(world: SimulatedWorld, make_process: MakeProcess) -> None:
    far_farmland = Position(9, 0, 0)
    world.set_block(far_farmland, Block.FARMLAND)
    far_soul_sand = Position(-9, 0, 0)
    world.set_block(far_soul_sand, Block.SOUL_SAND)
    growing = Position(0, 1, 9)
    plant(world, growing, Block.CARROTS, 1)
    ripe = Position(0, 1, -9)
    plant(world, ripe, Block.BEETROOTS, 3)
    process = make_process(farm=FarmSettings(replant_nether_wart=True))

    goal = _goal(process.on_tick(PathingFeedback()))
    assert goal.goals == (BreakGoal(ripe),)

    world.give(Item.CARROT, 1)
    world.give(Item.NETHER_WART, 1)
    world.give(Item.BONE_MEAL, 1)
    goal = _goal(process.on_tick(PathingFeedback()))

    assert set(goal.goals) == {
        BreakGoal(ripe),
        StandOnGoal(far_farmland.up()),
        StandOnGoal(far_soul_sand.up()),
        StandOnGoal(growing),
    }


def test_dropped_harvest_items_are_collected(world: SimulatedWorld, make_process: MakeProcess) -> None:
    world.drop(Item.WHEAT, Position(5, 1, 5))
    world.drop(Item.COBBLESTONE, Position(6, 1, 6))
    world.drop(Item.CARROT, Position(7, 1, 7), on_ground=False)
    process = make_process()

    goal = _goal(process.on_tick(PathingFeedback()))

    assert goal.goals == (StandOnGoal(Position(5, 1, 5)),)


def test_pathing_failure_stops_task(
    world: SimulatedWorld, diagnostics: LoggingDiagnostics, make_process: MakeProcess
) -> None:
    process = make_process(farm=FarmSettings(go_home=True))

    directive = process.on_tick(PathingFeedback(calc_failed=True))

    assert directive is not None and directive.is_pause
    assert not process.is_active()
    assert world.returning_home
    assert diagnostics.messages == ["Farm failed"]


def test_empty_goal_fails_pathing_on_next_tick(world: SimulatedWorld, make_process: MakeProcess) -> None:
    process = make_process()

    directive = process.on_tick(PathingFeedback())
    assert _goal(directive).goals == ()

    feedback = world.submit(directive)
    assert feedback.calc_failed

    process.on_tick(feedback)
    assert not process.is_active()


# ----------------------------------------------------------------------
# Task state
# ----------------------------------------------------------------------
def test_inactive_task_emits_nothing(world: SimulatedWorld, make_process: MakeProcess) -> None:
    plant(world, NEXT_TO_PLAYER, Block.WHEAT, 7)
    process = make_process(start=False)

    assert process.on_tick(PathingFeedback()) is None
    assert not world.input_active(Input.PRIMARY)
    assert process.display_name() == "Farming"


def test_tick_counter_only_runs_with_periodic_scans(make_process: MakeProcess) -> None:
    scanning = make_process(scan=ScanSettings(interval=5))
    for _ in range(3):
        scanning.on_tick(PathingFeedback())
    assert scanning.state.tick_counter == 3

    idle = make_process(scan=ScanSettings(interval=0))
    for _ in range(3):
        idle.on_tick(PathingFeedback())
    assert idle.state.tick_counter == 0


def test_deposit_preempts_farming(world: SimulatedWorld, make_process: MakeProcess) -> None:
    plant(world, NEXT_TO_PLAYER, Block.WHEAT, 7)
    fill_inventory(world)
    use_point = Position(-8, 1, 0)
    world.add(WaypointTag.STASH_USE, use_point)
    world.add(WaypointTag.STASH, use_point.offset(dx=-2))
    process = make_process(farm=FarmSettings(check_inventory=True, put_drops_in_chest=True))

    directive = process.on_tick(PathingFeedback())

    assert directive is not None
    assert directive.goal == StandOnGoal(use_point)
    assert process.state.deposit is DepositState.TRAVELING_TO_STASH
    assert process.state.tick_counter == 0
    assert not world.input_active(Input.PRIMARY)


def test_restart_forgets_old_snapshot(world: SimulatedWorld, make_process: MakeProcess) -> None:
    plant(world, NEXT_TO_PLAYER, Block.WHEAT, 7)
    process = make_process()
    process.on_tick(PathingFeedback())
    assert process.scheduler.snapshot

    process.on_lost_control()
    assert process.scheduler.snapshot is None

    process.farm()
    assert process.is_active()
    assert process.state.tick_counter == 0


class GatedWorld(SimulatedWorld):
    """Simulated world whose second scan holds the worker until released."""

    def __init__(self, player: Position) -> None:
        super().__init__(player=player)
        self.release = threading.Event()
        self.second_scan_started = threading.Event()
        self.scans = 0

    def scan(
        self,
        kinds: Collection[Block],
        max_results: int,
        radius_xz: int,
        radius_y: int,
    ) -> List[Position]:
        self.scans += 1
        if self.scans == 2:
            self.second_scan_started.set()
            assert self.release.wait(timeout=5)
        return super().scan(kinds, max_results, radius_xz, radius_y)


def _wait_for(condition: Callable[[], bool], timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not condition():
        assert time.monotonic() < deadline, "condition not met in time"
        time.sleep(0.005)


def test_ticks_keep_previous_snapshot_while_rescanning(diagnostics: LoggingDiagnostics) -> None:
    world = GatedWorld(player=Position(0, 1, 0))
    far_wheat = Position(8, 1, 0)
    plant(world, far_wheat, Block.WHEAT, 7)
    process = create_farm_process(world, diagnostics, FarmSettings(), ScanSettings(interval=1))
    scheduler = process.scheduler
    try:
        process.farm()
        process.on_tick(PathingFeedback())
        _wait_for(lambda: scheduler.snapshot is not None and not scheduler.scan_in_flight)
        first = scheduler.snapshot

        process.on_tick(PathingFeedback())
        assert world.second_scan_started.wait(timeout=5)

        started = time.monotonic()
        directive = process.on_tick(PathingFeedback())
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert scheduler.scan_in_flight
        assert scheduler.snapshot is first
        assert BreakGoal(far_wheat) in _goal(directive).goals
        assert world.scans == 2
    finally:
        world.release.set()
        process.on_lost_control()
        scheduler.close()


# ----------------------------------------------------------------------
# Stash selection
# ----------------------------------------------------------------------
def test_select_stash_records_waypoints(world: SimulatedWorld, make_process: MakeProcess) -> None:
    chest = Position(2, 1, 0)
    world.set_block(chest, Block.CHEST)
    world.look(world.reachable(chest))
    process = make_process(start=False)

    assert process.select_stash()
    assert world.most_recent_by_tag(WaypointTag.STASH) == chest
    assert world.most_recent_by_tag(WaypointTag.STASH_USE) == world.player


def test_select_stash_requires_a_chest(
    world: SimulatedWorld, diagnostics: LoggingDiagnostics, make_process: MakeProcess
) -> None:
    process = make_process(start=False)

    assert not process.select_stash()

    stone = Position(2, 1, 0)
    world.set_block(stone, Block.STONE)
    world.look(world.reachable(stone))
    assert not process.select_stash()

    assert diagnostics.messages == ["Please look at a chest", "Block is not a chest"]
    assert world.most_recent_by_tag(WaypointTag.STASH) is None


# ----------------------------------------------------------------------
# Full run on the simulated world
# ----------------------------------------------------------------------
def test_harvests_collects_and_replants_a_row(
    world: SimulatedWorld, diagnostics: LoggingDiagnostics, make_process: MakeProcess
) -> None:
    row = [Position(x, 1, 0) for x in (-1, 0, 1)]
    for pos in row:
        plant(world, pos, Block.WHEAT, 7)
    world.player = Position(0, 1, -2)
    process = make_process()

    feedback = PathingFeedback()
    for _ in range(60):
        directive = process.on_tick(feedback)
        if directive is None:
            break
        feedback = world.submit(directive)

    wheat = sum(stack.count for stack in world.main_inventory() if stack is not None and stack.item is Item.WHEAT)
    assert wheat == 3
    assert all(world.block_at(pos) == world.block_at(row[0]) for pos in row)
    assert world.block_at(row[0]).block is Block.WHEAT
    assert not world.dropped_items()
    # Nothing left to do: the empty goal fails to path and the task ends.
    assert not process.is_active()
    assert diagnostics.messages == ["Farm failed"]
