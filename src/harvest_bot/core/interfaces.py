from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Collection, List, Optional, Sequence, Tuple

from .actions import Directive, Input, PathingFeedback
from .world import Block, BlockState, DroppedItem, GrowthInfo, ItemStack, Position, RayHit, Rotation

ItemPredicate = Callable[[ItemStack], bool]


class WaypointTag(Enum):
    STASH = "stash"
    STASH_USE = "stash_use"
    HOME = "home"


class Pathfinder(ABC):
    """Movement engine that consumes the per-tick directive."""

    @abstractmethod
    def submit(self, directive: Directive) -> PathingFeedback:
        """Apply *directive* and report whether pathing failed and whether it is safe to cancel."""

    @abstractmethod
    def path_start(self) -> Position:
        """Position the current (or next) path starts from."""

    @abstractmethod
    def return_home(self) -> None:
        """Start navigating back to the home waypoint."""


class WorldView(ABC):
    """Read-only live queries against the loaded world."""

    @abstractmethod
    def block_at(self, position: Position) -> BlockState:
        """Return the block kind and growth stage at *position*."""

    def is_air_above(self, position: Position) -> bool:
        return self.block_at(position.up()).block is Block.AIR

    @abstractmethod
    def growable(self, position: Position) -> Optional[GrowthInfo]:
        """Bone-meal capability of the block at *position*, or ``None`` if it cannot grow."""

    @abstractmethod
    def player_feet(self) -> Position:
        """Block position of the player's feet."""

    @abstractmethod
    def dropped_items(self) -> Sequence[DroppedItem]:
        """Item entities currently loaded in the world."""


class WorldScanner(ABC):
    """Block search run on the background scan worker."""

    @abstractmethod
    def scan(
        self,
        kinds: Collection[Block],
        max_results: int,
        radius_xz: int,
        radius_y: int,
    ) -> List[Position]:
        """Return up to *max_results* positions of the given kinds around the player."""


class Reachability(ABC):
    """Aim solving and look control."""

    @abstractmethod
    def reachable(self, position: Position) -> Optional[Rotation]:
        """Rotation that puts the crosshair on *position*, if it is in reach."""

    @abstractmethod
    def reachable_offset(
        self, position: Position, point: Tuple[float, float, float]
    ) -> Optional[Rotation]:
        """Rotation that aims at *point* on the block at *position*, if in reach."""

    @abstractmethod
    def ray_trace(self, rotation: Rotation) -> Optional[RayHit]:
        """First block hit when looking along *rotation* within reach."""

    @abstractmethod
    def look(self, rotation: Rotation) -> None:
        """Turn the player to *rotation*."""

    @abstractmethod
    def is_looking_at(self, position: Position) -> bool:
        """Return ``True`` if the crosshair is on *position*."""

    @abstractmethod
    def selected_block(self) -> Optional[Position]:
        """Block under the crosshair, if any."""


class Interactions(ABC):
    """Simulated input dispatch."""

    @abstractmethod
    def set_input(self, kind: Input, active: bool) -> None:
        """Hold or release *kind* for the current tick."""

    @abstractmethod
    def clear_all_inputs(self) -> None:
        """Release every held input."""

    @abstractmethod
    def is_interface_open(self) -> bool:
        """Return ``True`` if a container screen (e.g. a chest) is open."""

    @abstractmethod
    def close_active_interface(self) -> None:
        """Close the open container screen, if any."""


class Inventory(ABC):
    """Inventory queries and slot mechanics."""

    @abstractmethod
    def main_inventory(self) -> Sequence[Optional[ItemStack]]:
        """Main inventory slots in order; ``None`` for an empty slot."""

    @abstractmethod
    def select(self, predicate: ItemPredicate, select: bool) -> bool:
        """Return ``True`` if a matching item is carried; with *select*, also hold it."""

    @abstractmethod
    def transfer_one_matching(self, predicate: ItemPredicate) -> bool:
        """Move one matching stack into the first free slot of the open container."""

    @abstractmethod
    def switch_to_best_tool(self, state: BlockState) -> None:
        """Hold the best tool for breaking a block in *state*."""


class WaypointStore(ABC):
    @abstractmethod
    def most_recent_by_tag(self, tag: WaypointTag) -> Optional[Position]:
        """Location of the newest waypoint carrying *tag*."""

    @abstractmethod
    def add(self, tag: WaypointTag, position: Position) -> None:
        """Record a new waypoint."""


class Diagnostics(ABC):
    """User-visible status messages."""

    @abstractmethod
    def emit(self, message: str) -> None:
        """Show *message* to the user. Must not raise."""


class Process(ABC):
    """A task that can take control of the pathfinder tick by tick."""

    @abstractmethod
    def is_active(self) -> bool:
        """Return ``True`` while the task wants control."""

    @abstractmethod
    def on_tick(self, feedback: PathingFeedback) -> Optional[Directive]:
        """Produce the directive for the current tick, or ``None`` when inactive."""

    @abstractmethod
    def on_lost_control(self) -> None:
        """Deactivate the task."""

    @abstractmethod
    def display_name(self) -> str:
        """Short human-readable task name."""
