from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class DepositState(Enum):
    """Where the task is in the inventory deposit cycle."""

    IDLE = "idle"
    TRAVELING_TO_STASH = "traveling_to_stash"
    TRANSFERRING = "transferring"


@dataclass(frozen=True)
class FarmTaskState:
    """Everything the tick function carries from one tick to the next.

    The value is never mutated; every tick returns a new instance so a
    transition can be inspected by comparing the before and after values.
    """

    active: bool = False
    tick_counter: int = 0
    deposit: DepositState = DepositState.IDLE

    @classmethod
    def started(cls) -> FarmTaskState:
        return cls(active=True)

    def deactivated(self) -> FarmTaskState:
        return replace(self, active=False, deposit=DepositState.IDLE)

    def with_deposit(self, deposit: DepositState) -> FarmTaskState:
        return replace(self, deposit=deposit)

    def next_tick(self) -> FarmTaskState:
        return replace(self, tick_counter=self.tick_counter + 1)

    def __repr__(self) -> str:
        return (
            "FarmTaskState("
            f"active={self.active}, "
            f"tick={self.tick_counter}, "
            f"deposit={self.deposit.value}"
            ")"
        )
