"""
Game state for the push-your-luck race.

A turn flows:
    RESTING ──roll(d)──▶ MID-ROLL ──go_success()──▶ MID-ROLL ...
                            │
                            └──stop()──▶ RESTING (at the banked square)

A failed continuation is not a state transition of its own: the player
returns to the turn's ``original_pos``, which every mid-roll state carries.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of one player's turn.

    Frozen (hashable) so it can key memo tables.

    Attributes:
        original_pos: Square the turn started from (restart point on failure).
        pos:          Square the player currently stands on.
        die:          Face rolled this turn, or None while resting.
    """

    original_pos: int
    pos: int
    die: int | None = None

    @classmethod
    def resting(cls, position: int) -> GameState:
        """Player standing on ``position``, about to roll."""
        return cls(original_pos=position, pos=position, die=None)

    @property
    def is_resting(self) -> bool:
        return self.die is None

    @property
    def is_mid_roll(self) -> bool:
        return self.die is not None

    def finished(self, goal: int) -> bool:
        """True once the player has reached or passed ``goal``."""
        return self.pos >= goal

    def roll(self, die: int) -> GameState:
        """Roll ``die`` from a resting state.

        Examples:
            >>> GameState.resting(3).roll(4)
            GameState(original_pos=3, pos=7, die=4)
        """
        if not self.is_resting:
            raise ValueError(f"Cannot roll from a mid-roll state: {self}")
        if die < 1:
            raise ValueError(f"Die face must be >= 1, got {die}.")
        return GameState(
            original_pos=self.original_pos,
            pos=self.original_pos + die,
            die=die,
        )

    def go_success(self) -> GameState:
        """Advance by the pending die value again after a successful continue.

        Examples:
            >>> GameState.resting(3).roll(4).go_success()
            GameState(original_pos=3, pos=11, die=4)
        """
        if self.die is None:
            raise ValueError(f"Cannot continue from a resting state: {self}")
        return GameState(
            original_pos=self.original_pos,
            pos=self.pos + self.die,
            die=self.die,
        )

    def stop(self) -> GameState:
        """Bank the current square; the next turn starts here."""
        if self.die is None:
            raise ValueError(f"Cannot stop from a resting state: {self}")
        return GameState.resting(self.pos)
