"""
Tests for src/engine/state.py — resting / mid-roll transitions.
"""

from __future__ import annotations

import pytest

from src.engine.state import GameState


class TestResting:
    def test_resting_fields(self):
        s = GameState.resting(5)
        assert s == GameState(original_pos=5, pos=5, die=None)
        assert s.is_resting
        assert not s.is_mid_roll

    def test_finished(self):
        assert GameState.resting(20).finished(20)
        assert GameState.resting(25).finished(20)
        assert not GameState.resting(19).finished(20)

    def test_hashable(self):
        memo = {GameState.resting(3): 1.0}
        assert memo[GameState.resting(3)] == 1.0


class TestRoll:
    def test_roll_moves_from_original(self):
        s = GameState.resting(3).roll(4)
        assert s == GameState(original_pos=3, pos=7, die=4)
        assert s.is_mid_roll

    def test_roll_from_mid_roll_rejected(self):
        with pytest.raises(ValueError):
            GameState.resting(3).roll(4).roll(2)

    @pytest.mark.parametrize("die", [0, -1])
    def test_roll_rejects_non_positive_die(self, die):
        with pytest.raises(ValueError):
            GameState.resting(0).roll(die)


class TestGoSuccess:
    def test_advances_by_same_die(self):
        s = GameState.resting(3).roll(4).go_success()
        assert s == GameState(original_pos=3, pos=11, die=4)

    def test_repeated_successes(self):
        s = GameState.resting(0).roll(2)
        for _ in range(3):
            s = s.go_success()
        assert s.pos == 8
        assert s.original_pos == 0
        assert s.die == 2

    def test_from_resting_rejected(self):
        with pytest.raises(ValueError):
            GameState.resting(3).go_success()


class TestStop:
    def test_banks_current_square(self):
        s = GameState.resting(3).roll(4).go_success().stop()
        assert s == GameState.resting(11)

    def test_from_resting_rejected(self):
        with pytest.raises(ValueError):
            GameState.resting(3).stop()
