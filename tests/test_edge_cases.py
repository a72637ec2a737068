"""
Integration tests for degenerate configurations and reference scenarios.

Edge Case Reference:
    1.  Goal 0 produces empty tables
    2.  Goal 1 with any die finishes in one turn
    3.  One-faced die: pushing never fails, every race is one turn
    4.  Die larger than the board: one roll always finishes from square 0
    5.  Squares past the goal cost zero and are never memoised
    6.  Three-piece min equation reaches its fixed point
    7.  Expected turns from square 0 exceed those from the last square
    8.  Solving is deterministic across solver instances
"""

from __future__ import annotations

import pytest

from src.engine.expr import constant, min_of
from src.solvers.race_dp import RaceSolver, solve
from tests.conftest import linear


def test_goal_zero_empty():
    values, strategy = solve(dice=6, goal=0)
    assert values == {} and strategy == {}


@pytest.mark.parametrize("dice", [1, 2, 6, 10])
def test_goal_one_single_turn(dice):
    solver = RaceSolver(dice=dice, goal=1)
    assert solver.solved_value(0) == pytest.approx(1.0, abs=1e-9)


def test_single_face_die():
    values, _ = solve(dice=1, goal=25)
    assert all(v == pytest.approx(1.0, abs=1e-9) for v in values.values())


def test_die_larger_than_board():
    solver = RaceSolver(dice=12, goal=1)
    assert solver.first_decisions() == {}
    total, stop_only = solver.query(0, 12)
    assert stop_only == 0.0


def test_past_goal_zero_and_unmemoised():
    solver = RaceSolver(dice=6, goal=10)
    for p in (10, 11, 50):
        assert solver.solved_value(p) == 0.0
    assert solver.memo == {}


def test_three_piece_fixed_point():
    f = min_of(linear(0.5, 0.5), constant(2.0))
    g = min_of(linear(0.4, 1.0), constant(3.0))
    h = min_of(linear(0.6, 2.0), constant(1.5))
    e = (f + g + h) / 3.0
    x = e.bisect()
    assert abs(e.eval(x) - x) < 1e-6


def test_start_costs_more_than_last_square(solver_6_20):
    assert solver_6_20.solved_value(0) > solver_6_20.solved_value(19) > 0.0


def test_deterministic_across_instances():
    a = RaceSolver(dice=4, goal=15).solve_all()
    b = RaceSolver(dice=4, goal=15).solve_all()
    assert a == b
