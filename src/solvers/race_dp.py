"""
Position solver for the push-your-luck race.

Each turn the player rolls a ``D``-faced die and lands ``d`` squares ahead.
From there they either bank the square (STOP) or push their luck (GO).  A
push succeeds with probability 1/D and advances ``d`` squares again; it fails
with probability (D-1)/D, costing one extra turn and sending the player back
to the square the turn started from.

The expected number of turns from a resting square ``p`` is therefore

    V(p)    = 1 + (1/D) Σ_d B(p, p+d, d)
    B(p,q,d) = 0                                             if q >= goal
             = min( (1/D)·B(p, q+d, d) + ((D-1)/D)·(V(p) + 1),  V(q) )

``V(p)`` appears on both sides, so each square is an equation in one
unknown.  It is built with the expression algebra in ``src.engine.expr``
(``x`` standing for ``V(p)``) and closed by bisection.  Squares nearer the
goal never depend on squares further back, so solved values are memoised
permanently.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from enum import Enum

from src.engine.expr import Expr, constant, min_of, self_consistent
from src.engine.state import GameState

# ─── Constants ────────────────────────────────────────────────────────────────

DEFAULT_DICE: int = 6
"""Faces on the die when none is given."""

DEFAULT_GOAL: int = 20
"""Finish line when none is given."""

_FRAMES_PER_SQUARE: int = 6
"""Interpreter frames used per square of Min nesting while evaluating."""


# ─── Action / Decision ────────────────────────────────────────────────────────


class Action(Enum):
    """Choice available in a mid-roll state."""

    GO = "GO"
    STOP = "STOP"


@dataclass(frozen=True)
class Decision:
    """Optimal choice at a mid-roll state with both branch values.

    Attributes:
        action:     GO if ``go_value <= stop_value`` else STOP.
        go_value:   Expected turns remaining if the player continues.
        stop_value: Expected turns remaining if the player banks now.
    """

    action: Action
    go_value: float
    stop_value: float

    @property
    def margin(self) -> float:
        """``stop_value - go_value``; positive when continuing is better."""
        return self.stop_value - self.go_value


# ─── Solver ───────────────────────────────────────────────────────────────────


class RaceSolver:
    """Memoised fixed-point solver for a ``dice``-faced race to ``goal``.

    Solved values are memoised per square (``memo``) and mid-roll equations
    per ``(pos, die)`` (``equations``); the strategy and decision tables are
    cached after their first build.

    Side effect: evaluating an equation recurses once per node along its
    longest GO chain, so construction raises the interpreter-wide recursion
    limit (``sys.setrecursionlimit``) to ``6 * goal + 1000`` when it is
    lower.  The limit is never lowered.

    Args:
        dice: Number of die faces (>= 1).
        goal: Finish square (>= 0).  Squares ``>= goal`` cost nothing.

    Raises:
        ValueError: If either argument is not an int or is out of range.
    """

    def __init__(self, dice: int = DEFAULT_DICE, goal: int = DEFAULT_GOAL) -> None:
        if isinstance(dice, bool) or not isinstance(dice, int) or dice < 1:
            raise ValueError(f"dice must be a positive integer, got {dice!r}.")
        if isinstance(goal, bool) or not isinstance(goal, int) or goal < 0:
            raise ValueError(f"goal must be a non-negative integer, got {goal!r}.")
        self.dice = dice
        self.goal = goal
        self.memo: dict[int, float] = {}
        self.equations: dict[tuple[int, int], Expr] = {}
        self._strategy: dict[tuple[int, int], tuple[float, float]] | None = None
        self._decisions: dict[tuple[int, int], Decision] | None = None

        # A GO chain with die 1 nests one Min per square, and evaluation
        # recurses through each of them.
        needed = _FRAMES_PER_SQUARE * goal + 1000
        if sys.getrecursionlimit() < needed:
            sys.setrecursionlimit(needed)

    def __repr__(self) -> str:
        return f"RaceSolver(dice={self.dice}, goal={self.goal}, solved={len(self.memo)})"

    @property
    def dice_n(self) -> float:
        return float(self.dice)

    @property
    def fail_prob(self) -> float:
        """Probability that a continuation fails: (D-1)/D."""
        return (self.dice_n - 1.0) / self.dice_n

    # ─── Resting squares ──────────────────────────────────────────────────────

    def solved_value(self, position: int) -> float:
        """Minimum expected turns to finish from resting on ``position``.

        Returns 0.0 for ``position >= goal``.  Unsolved squares between the
        goal and ``position`` are solved first, furthest first, so the
        recursion inside :meth:`resting_equation` only meets memoised values.
        """
        if position < 0:
            raise ValueError(f"position must be >= 0, got {position}.")
        if position >= self.goal:
            return 0.0
        if position in self.memo:
            return self.memo[position]
        for p in range(self.goal - 1, position - 1, -1):
            if p not in self.memo:
                self.memo[p] = self.resting_equation(p).bisect()
        return self.memo[position]

    def resting_equation(self, position: int) -> Expr:
        """Equation for V(position): one turn plus the average over die faces.

        ``x`` inside the returned expression stands for V(position) itself
        (it enters through every failed continuation).
        """
        state = GameState.resting(position)
        eq: Expr = constant(1.0)
        for die in range(1, self.dice + 1):
            eq = eq + self.solved_equation(state.roll(die)) / self.dice_n
        return eq

    # Alias kept for callers that think in terms of "solve square n".
    def solve(self, position: int) -> float:
        return self.solved_value(position)

    # ─── Mid-roll squares ─────────────────────────────────────────────────────

    def _failure_equation(self) -> Expr:
        # Lose this attempt: pay the turn and restart from original_pos.
        return self_consistent(1.0) + constant(1.0)

    def _go_equation(self, after_success: Expr) -> Expr:
        return after_success / self.dice_n + self._failure_equation() * self.fail_prob

    def solved_equation(self, state: GameState) -> Expr:
        """Equation for the optimal GO/STOP choice in mid-roll ``state``.

        The GO branch recurses along successive successes with the same die
        value.  The chain is walked forward to the goal or to the first
        memoised link, then folded back so the Python stack does not grow
        with its length.  The equation does not involve ``original_pos``,
        so each link is built once and memoised by ``(pos, die)``.

        Returns:
            ``constant(0.0)`` if ``state`` is past the goal, else
            ``min_of(go_equation, constant(V(state.pos)))``.
        """
        if not state.is_mid_roll:
            raise ValueError(f"Expected a mid-roll state, got {state}.")
        chain: list[GameState] = []
        while not state.finished(self.goal):
            if (state.pos, state.die) in self.equations:
                break
            chain.append(state)
            state = state.go_success()

        if state.finished(self.goal):
            eq: Expr = constant(0.0)
        else:
            eq = self.equations[(state.pos, state.die)]
        for s in reversed(chain):
            stop = self.solved_value(s.pos)
            eq = min_of(self._go_equation(eq), constant(stop))
            self.equations[(s.pos, s.die)] = eq
        return eq

    def continue_equation(self, state: GameState) -> Expr:
        """Equation for GO alone in mid-roll ``state`` (no STOP option here)."""
        if not state.is_mid_roll:
            raise ValueError(f"Expected a mid-roll state, got {state}.")
        return self._go_equation(self.solved_equation(state.go_success()))

    def decide(self, state: GameState) -> Decision:
        """Optimal GO/STOP choice in mid-roll ``state``.

        The GO branch is evaluated with ``x`` bound to V(original_pos), the
        value the restart costs under optimal play.
        """
        if state.finished(self.goal):
            raise ValueError(f"State {state} is already past goal {self.goal}.")
        x = self.solved_value(state.original_pos)
        go_value = self.continue_equation(state).eval(x)
        stop_value = self.solved_value(state.pos)
        action = Action.GO if go_value <= stop_value else Action.STOP
        return Decision(action=action, go_value=go_value, stop_value=stop_value)

    # ─── Diagnostics ──────────────────────────────────────────────────────────

    def query(self, position: int, die: int) -> tuple[float, float]:
        """Expected turns after rolling ``die`` from ``position``.

        Returns:
            ``(total, stop_only)``: ``total`` is the fixed point of the
            mid-roll equation under the optimal GO/STOP policy; ``stop_only``
            is V(position + die), the value of banking immediately.
        """
        state = GameState.resting(position).roll(die)
        stop_only = self.solved_value(state.stop().pos)
        total = self.solved_equation(state).bisect()
        return (total, stop_only)

    def solve_all(self) -> dict[int, float]:
        """Return ``{position: V(position)}`` for every square below the goal."""
        if self.goal > 0:
            self.solved_value(0)
        return {p: self.memo[p] for p in range(self.goal)}

    def strategy_table(self) -> dict[tuple[int, int], tuple[float, float]]:
        """Return ``{(position, die): (total, stop_only)}`` for every pair.

        Built once per solver; later calls return a copy of the cached table.
        """
        if self._strategy is None:
            self._strategy = {
                (p, d): self.query(p, d)
                for p in range(self.goal)
                for d in range(1, self.dice + 1)
            }
        return dict(self._strategy)

    def first_decisions(self) -> dict[tuple[int, int], Decision]:
        """Optimal first GO/STOP decision of a turn for every square and roll.

        Rolls that reach the goal are omitted (there is nothing to decide).
        Cached like :meth:`strategy_table`.
        """
        if self._decisions is None:
            table: dict[tuple[int, int], Decision] = {}
            for p in range(self.goal):
                for d in range(1, self.dice + 1):
                    state = GameState.resting(p).roll(d)
                    if not state.finished(self.goal):
                        table[(p, d)] = self.decide(state)
            self._decisions = table
        return dict(self._decisions)

    # ─── Output ───────────────────────────────────────────────────────────────

    def print_value_table(self) -> None:
        """Print ``<position> <expected_turns>`` for each square."""
        for p, value in self.solve_all().items():
            print(f"{p} {value}")

    def print_strategy_table(self) -> None:
        """Print ``<position> (total, stop) ...`` with one pair per die face."""
        table = self.strategy_table()
        for p in range(self.goal):
            pairs = "".join(f" {table[(p, d)]}" for d in range(1, self.dice + 1))
            print(f"{p}{pairs}")


# ─── Public API ───────────────────────────────────────────────────────────────


def solve(
    dice: int = DEFAULT_DICE,
    goal: int = DEFAULT_GOAL,
) -> tuple[dict[int, float], dict[tuple[int, int], tuple[float, float]]]:
    """Solve a race and return ``(value_table, strategy_table)``.

    Args:
        dice: Number of die faces.
        goal: Finish square.

    Returns:
        value_table:    ``{position: expected_turns}``.
        strategy_table: ``{(position, die): (total, stop_only)}``.
    """
    solver = RaceSolver(dice=dice, goal=goal)
    return solver.solve_all(), solver.strategy_table()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Expected turns to finish a push-your-luck dice race.",
    )
    parser.add_argument("-d", "--dice", type=int, default=DEFAULT_DICE,
                        help=f"faces on the die (default {DEFAULT_DICE})")
    parser.add_argument("-g", "--goal", type=int, default=DEFAULT_GOAL,
                        help=f"finish square (default {DEFAULT_GOAL})")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point: print the value and strategy tables."""
    args = build_parser().parse_args(argv)
    try:
        solver = RaceSolver(dice=args.dice, goal=args.goal)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    solver.print_value_table()
    solver.print_strategy_table()
    return 0


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    sys.exit(main())
