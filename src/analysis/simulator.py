"""
Monte Carlo simulator for race strategy validation.

Plays complete races under a policy and accumulates the number of turns
taken, producing mean/CI statistics that can be compared against the
solver's expected-turn values.

Turn accounting matches the solver's equations exactly:
    - every turn costs 1;
    - a failed continuation costs 1 more and returns the player to the
      square the turn started from;
    - landing on or past the goal ends the race immediately.

Primary use: cross-validate ``RaceSolver.solved_value``.  With the optimal
policy the simulated mean should fall inside the 95% CI around V(start).
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy import stats

from src.engine.state import GameState
from src.solvers.race_dp import DEFAULT_DICE, DEFAULT_GOAL, Action, RaceSolver

Policy = Callable[[GameState], Action]
"""Maps a mid-roll state (not yet past the goal) to GO or STOP."""

DEFAULT_MAX_TURNS: int = 10_000
"""Per-game turn cap; games hitting it are counted as truncated."""

# ─── Result type ──────────────────────────────────────────────────────────────


@dataclass
class SimulationResult:
    """Aggregate statistics from a Monte Carlo run.

    Attributes:
        n_games:     Number of races simulated.
        start:       Resting square every race started from.
        mean_turns:  Mean turns to finish.
        std_turns:   Sample standard deviation of turns to finish.
        ci_low:      Lower bound of the confidence interval for mean_turns.
        ci_high:     Upper bound of the confidence interval for mean_turns.
        confidence:  Confidence level of the interval (e.g. 0.95).
        skewness:    Sample skewness of the turn distribution.
        max_turns:   Longest race observed.
        n_truncated: Races stopped at the per-game turn cap.
        turns:       Raw per-game turn counts (int64), or None if
                     simulate_games() was called with return_turns=False.
    """

    n_games: int
    start: int
    mean_turns: float
    std_turns: float
    ci_low: float
    ci_high: float
    confidence: float
    skewness: float
    max_turns: int
    n_truncated: int = 0
    turns: np.ndarray | None = None

    def __str__(self) -> str:
        return (
            f"Games: {self.n_games:,} | "
            f"Start: {self.start} | "
            f"Mean turns: {self.mean_turns:.4f} | "
            f"{self.confidence:.0%} CI: [{self.ci_low:.4f}, {self.ci_high:.4f}] | "
            f"Max: {self.max_turns}"
        )

    def contains(self, value: float) -> bool:
        """True if ``value`` lies inside the confidence interval."""
        return self.ci_low <= value <= self.ci_high


# ─── Core simulation loop ─────────────────────────────────────────────────────


def play_game(
    policy: Policy,
    dice: int,
    goal: int,
    rng: np.random.Generator,
    start: int = 0,
    max_turns: int = DEFAULT_MAX_TURNS,
) -> int:
    """Play one race from ``start`` and return the number of turns taken.

    Args:
        policy:    GO/STOP decision for each mid-roll state.
        dice:      Number of die faces.
        goal:      Finish square.
        rng:       NumPy random generator.
        start:     Resting square to start from.
        max_turns: Stop early once this many turns have been charged.

    Returns:
        Turns charged, capped at ``max_turns``.
    """
    turns = 0
    pos = start
    while pos < goal and turns < max_turns:
        turns += 1
        state = GameState.resting(pos).roll(int(rng.integers(1, dice + 1)))
        while not state.finished(goal) and policy(state) is Action.GO:
            if rng.integers(dice) == 0:
                state = state.go_success()
            else:
                turns += 1
                state = GameState.resting(state.original_pos)
                break
        pos = state.pos
    return min(turns, max_turns)


def simulate_games(
    policy: Policy,
    dice: int = DEFAULT_DICE,
    goal: int = DEFAULT_GOAL,
    n_games: int = 10_000,
    seed: int | None = 42,
    start: int = 0,
    confidence: float = 0.95,
    max_turns: int = DEFAULT_MAX_TURNS,
    return_turns: bool = False,
) -> SimulationResult:
    """Simulate ``n_games`` races and return aggregate statistics.

    Args:
        policy:       Callable matching the Policy signature.
        dice:         Number of die faces.
        goal:         Finish square.
        n_games:      Number of races to play.
        seed:         Seed for ``np.random.default_rng``.  None for a
                      non-deterministic run.
        start:        Resting square every race starts from.
        confidence:   Two-sided confidence level for the interval.
        max_turns:    Per-game turn cap.
        return_turns: If True, attach the raw per-game turn counts.

    Returns:
        SimulationResult for the run.

    Raises:
        ValueError: If ``n_games < 1`` or ``confidence`` is not in (0, 1).
    """
    if n_games < 1:
        raise ValueError(f"n_games must be >= 1, got {n_games}.")
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}.")

    rng = np.random.default_rng(seed)
    arr = np.array(
        [play_game(policy, dice, goal, rng, start, max_turns) for _ in range(n_games)],
        dtype=np.int64,
    )

    mean = float(np.mean(arr))
    std = float(np.std(arr, ddof=1)) if n_games > 1 else 0.0
    z = float(stats.norm.ppf((1.0 + confidence) / 2.0))
    ci_margin = z * std / math.sqrt(n_games)
    # skew is undefined (nan) for a constant sample
    skewness = float(stats.skew(arr)) if std > 0.0 else 0.0

    return SimulationResult(
        n_games=n_games,
        start=start,
        mean_turns=mean,
        std_turns=std,
        ci_low=mean - ci_margin,
        ci_high=mean + ci_margin,
        confidence=confidence,
        skewness=skewness,
        max_turns=int(arr.max()),
        n_truncated=int(np.count_nonzero(arr >= max_turns)),
        turns=arr if return_turns else None,
    )


# ─── Policy factories ─────────────────────────────────────────────────────────


def make_optimal_policy(solver: RaceSolver) -> Policy:
    """Return the solver's optimal GO/STOP policy.

    Decisions are cached per state; the solver's memo table is shared.
    """

    @functools.cache
    def _policy(state: GameState) -> Action:
        return solver.decide(state).action

    return _policy


def make_always_stop_policy() -> Policy:
    """Bank every roll.  Baseline that never risks a restart."""

    def _policy(state: GameState) -> Action:
        return Action.STOP

    return _policy


def make_threshold_policy(max_continues: int = 1) -> Policy:
    """Continue until ``max_continues`` pushes have succeeded, then bank.

    Args:
        max_continues: Successful pushes allowed per turn.  0 = always stop.
    """

    def _policy(state: GameState) -> Action:
        if state.die is None:
            raise ValueError(f"Threshold policy needs a mid-roll state, got {state}.")
        successes = (state.pos - state.original_pos) // state.die - 1
        return Action.GO if successes < max_continues else Action.STOP

    return _policy


# ─── Validation convenience ───────────────────────────────────────────────────


def run_validation(
    dice: int = DEFAULT_DICE,
    goal: int = DEFAULT_GOAL,
    n_games: int = 20_000,
    seed: int = 42,
) -> dict[str, object]:
    """Simulate the optimal and always-stop policies from square 0.

    Returns:
        ``{'predicted': V(0), 'optimal': SimulationResult,
        'always_stop': SimulationResult}``.
    """
    solver = RaceSolver(dice=dice, goal=goal)
    predicted = solver.solved_value(0)
    optimal = simulate_games(
        make_optimal_policy(solver), dice=dice, goal=goal, n_games=n_games, seed=seed
    )
    always_stop = simulate_games(
        make_always_stop_policy(), dice=dice, goal=goal, n_games=n_games, seed=seed
    )
    return {"predicted": predicted, "optimal": optimal, "always_stop": always_stop}


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    print("Race Monte Carlo Validation — 20,000 games per policy\n")
    results = run_validation()
    print(f"Solver V(0):  {results['predicted']:.4f}")
    print(f"Optimal:      {results['optimal']}")
    print(f"Always stop:  {results['always_stop']}")
