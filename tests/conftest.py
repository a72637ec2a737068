"""
Shared pytest fixtures for race solver tests.

Provides a small helper for building affine expressions and pre-solved
solvers for the configurations most tests use.
"""

from __future__ import annotations

import pytest

from src.engine.expr import Expr, constant, self_consistent
from src.solvers.race_dp import RaceSolver


def linear(k: float, c: float) -> Expr:
    """Build the affine expression ``k*x + c``.

    Examples:
        >>> linear(1.5, 1.0).eval(10.0)
        16.0
    """
    return self_consistent(k) + constant(c)


@pytest.fixture(scope="session")
def solver_6_20() -> RaceSolver:
    """Default six-faced die, goal 20, fully solved."""
    solver = RaceSolver(dice=6, goal=20)
    solver.solve_all()
    return solver


@pytest.fixture(scope="session")
def solver_2_12() -> RaceSolver:
    """Coin-flip race to 12, fully solved."""
    solver = RaceSolver(dice=2, goal=12)
    solver.solve_all()
    return solver


@pytest.fixture
def lin():
    """Expose the linear() helper as a fixture for convenience."""
    return linear
