from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple

from .world import Position


class CommandType(Enum):
    """How the pathfinder should treat the directive of the current tick."""

    REQUEST_PAUSE = "request_pause"
    SET_GOAL_AND_PATH = "set_goal_and_path"


class Input(Enum):
    """Simulated inputs the task can hold down."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class Goal(ABC):
    """Travel target handed to the pathfinder."""

    @abstractmethod
    def is_in_goal(self, position: Position) -> bool:
        """Return ``True`` if standing at *position* satisfies the goal."""

    @abstractmethod
    def heuristic(self, position: Position) -> float:
        """Estimated cost of reaching the goal from *position*."""


@dataclass(frozen=True)
class StandOnGoal(Goal):
    """Stand with feet exactly at ``position``."""

    position: Position

    def is_in_goal(self, position: Position) -> bool:
        return position == self.position

    def heuristic(self, position: Position) -> float:
        return position.distance_to(self.position)


@dataclass(frozen=True)
class BreakGoal(Goal):
    """Get within one block of ``position`` (feet or head counts).

    The player occupies two blocks, so a feet position one below the
    target is treated as level with it.
    """

    position: Position

    def is_in_goal(self, position: Position) -> bool:
        dx = position.x - self.position.x
        dy = position.y - self.position.y
        dz = position.z - self.position.z
        if dy < 0:
            dy += 1
        return abs(dx) + abs(dy) + abs(dz) <= 1

    def heuristic(self, position: Position) -> float:
        return max(0.0, position.distance_to(self.position) - 1.0)


@dataclass(frozen=True)
class CompositeGoal(Goal):
    """Reach any one of ``goals``."""

    goals: Tuple[Goal, ...] = ()

    def is_in_goal(self, position: Position) -> bool:
        return any(goal.is_in_goal(position) for goal in self.goals)

    def heuristic(self, position: Position) -> float:
        if not self.goals:
            return float("inf")
        return min(goal.heuristic(position) for goal in self.goals)

    def __iter__(self) -> Iterator[Goal]:
        return iter(self.goals)

    def __len__(self) -> int:
        return len(self.goals)


@dataclass(frozen=True)
class Directive:
    """Single per-tick output of the farming task.

    Either a pause request (act in place, or wait) or a goal the
    pathfinder should set and path towards.
    """

    command: CommandType
    goal: Optional[Goal] = None

    @classmethod
    def pause(cls) -> Directive:
        return cls(CommandType.REQUEST_PAUSE)

    @classmethod
    def set_goal(cls, goal: Goal) -> Directive:
        return cls(CommandType.SET_GOAL_AND_PATH, goal)

    @property
    def is_pause(self) -> bool:
        return self.command is CommandType.REQUEST_PAUSE


@dataclass(frozen=True)
class PathingFeedback:
    """What the pathfinder reports back after a directive was submitted."""

    calc_failed: bool = False
    is_safe_to_cancel: bool = True
