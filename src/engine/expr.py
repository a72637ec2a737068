"""
Expression algebra over a single implicit unknown.

Every expression is a scalar function of one free variable ``x``.  For the
race solver ``x`` stands for the very value an equation computes (the
expected turns to finish from the position being solved), so solving an
equation means finding the fixed point ``x* = e(x*)``.

Two node types are enough to express the equations:

    Sum(one, zero, nonlinear)   value(x) = one*x + zero + Σ child(x)
    Min(a, b)                   value(x) = min(a(x), b(x))

Sums absorb one another under addition (coefficients add, children
concatenate), so an equation never grows beyond one Sum per level plus the
Min nodes that encode the GO/STOP choice.  Nodes are frozen and children are
held in tuples, so combining expressions never aliases mutable state and no
operation can produce a cycle.

Numeric preconditions are checked rather than assumed:
    - division by zero raises ZeroDivisionError;
    - scaling a Min node by a negative factor raises ValueError
      (min does not commute with negation);
    - bisection that cannot bracket the fixed point raises BisectionError.
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass
from typing import Callable, Union

# ─── Constants ────────────────────────────────────────────────────────────────

BISECT_TOLERANCE: float = 1e-12
"""Absolute width at which the bisection bracket is considered closed."""

BISECT_LO: float = 0.5
"""Initial lower bracket; halved until ``e(lo) >= lo``."""

BISECT_HI: float = 1.0
"""Initial upper bracket; doubled until ``e(hi) <= hi``."""

MAX_BRACKET_STEPS: int = 2048
"""Cap on halvings/doublings while bracketing.

Halving 0.5 reaches exactly 0.0 after ~1075 steps and doubling 1.0 reaches
infinity after ~1024, so any bracket that can close does so well within
this budget.
"""

Number = Union[int, float]


class BisectionError(ValueError):
    """Raised when an equation's fixed point cannot be bracketed."""


# ─── Expression nodes ─────────────────────────────────────────────────────────


class Expr:
    """Base class for expression nodes.  Provides the operator surface.

    ``+`` accepts another expression or a plain number (promoted with
    :func:`constant`); ``*`` and ``/`` accept plain numbers only.
    """

    __slots__ = ()

    def eval(self, x: float) -> float:
        raise NotImplementedError

    def __call__(self, x: float) -> float:
        return self.eval(x)

    def __add__(self, other: Expr | Number) -> Expr:
        if isinstance(other, (int, float)):
            other = constant(other)
        if not isinstance(other, Expr):
            return NotImplemented
        return add(self, other)

    def __radd__(self, other: Expr | Number) -> Expr:
        # Lets builtin sum() start from 0.
        if isinstance(other, (int, float)):
            return add(constant(other), self)
        return NotImplemented

    def __mul__(self, scalar: Number) -> Expr:
        if not isinstance(scalar, (int, float)):
            return NotImplemented
        return scale(self, scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: Number) -> Expr:
        if not isinstance(scalar, (int, float)):
            return NotImplemented
        return divide(self, scalar)

    def min(self, other: Expr) -> Min:
        """Return ``Min(self, other)``."""
        return min_of(self, other)

    def bisect(
        self,
        *,
        lo: float = BISECT_LO,
        hi: float = BISECT_HI,
        tol: float = BISECT_TOLERANCE,
    ) -> float:
        """Return the fixed point of this expression.  See :func:`bisect`."""
        return bisect(self, lo=lo, hi=hi, tol=tol)

    def size(self) -> int:
        """Number of nodes in the tree rooted here."""
        raise NotImplementedError

    def depth(self) -> int:
        """Longest root-to-leaf path, counted in nodes."""
        raise NotImplementedError


@dataclass(frozen=True)
class Sum(Expr):
    """Affine term plus an additive list of nested expressions.

    Attributes:
        one:       Coefficient on the free variable ``x``.
        zero:      Constant term.
        nonlinear: Child expressions, each contributing ``child(x)``.
    """

    one: float = 0.0
    zero: float = 0.0
    nonlinear: tuple[Expr, ...] = ()

    def eval(self, x: float) -> float:
        rest = 0.0
        for child in self.nonlinear:
            rest += child.eval(x)
        return self.one * x + self.zero + rest

    def size(self) -> int:
        return 1 + sum(child.size() for child in self.nonlinear)

    def depth(self) -> int:
        return 1 + max((child.depth() for child in self.nonlinear), default=0)


@dataclass(frozen=True)
class Min(Expr):
    """Pointwise minimum of two expressions.  Ties resolve to ``a``."""

    a: Expr
    b: Expr

    def eval(self, x: float) -> float:
        a = self.a.eval(x)
        b = self.b.eval(x)
        return a if a <= b else b

    def size(self) -> int:
        return 1 + self.a.size() + self.b.size()

    def depth(self) -> int:
        return 1 + max(self.a.depth(), self.b.depth())


# ─── Constructors ─────────────────────────────────────────────────────────────


def constant(c: Number) -> Sum:
    """Expression with value ``c`` for every ``x``.

    Examples:
        >>> constant(3.456).eval(-3.0)
        3.456
    """
    return Sum(one=0.0, zero=float(c))


def self_consistent(k: Number = 1.0) -> Sum:
    """Expression ``k * x``: a reference to the unknown being solved for.

    Examples:
        >>> self_consistent(1.0).eval(3.0)
        3.0
    """
    return Sum(one=float(k), zero=0.0)


def min_of(e1: Expr, e2: Expr) -> Min:
    """Pointwise minimum.  Never simplified, even for two constants."""
    return Min(e1, e2)


# ─── Arithmetic ───────────────────────────────────────────────────────────────


def add(e1: Expr, e2: Expr) -> Expr:
    """Sum two expressions.

    Two Sums merge field by field.  A Min operand is appended to the other
    operand's children; two Mins are wrapped in a fresh zero Sum.

    Examples:
        >>> add(self_consistent(1.5), constant(1.0)).eval(10.0)
        16.0
    """
    if isinstance(e1, Sum):
        if isinstance(e2, Sum):
            return Sum(
                one=e1.one + e2.one,
                zero=e1.zero + e2.zero,
                nonlinear=e1.nonlinear + e2.nonlinear,
            )
        return Sum(one=e1.one, zero=e1.zero, nonlinear=e1.nonlinear + (e2,))
    if isinstance(e2, Sum):
        return Sum(one=e2.one, zero=e2.zero, nonlinear=e2.nonlinear + (e1,))
    return Sum(one=0.0, zero=0.0, nonlinear=(e1, e2))


def _check_scalar(s: Number) -> float:
    s = float(s)
    if not math.isfinite(s):
        raise ValueError(f"Scalar must be finite, got {s}.")
    return s


def _map_scalar(e: Expr, s: float, op: Callable[[float, float], float]) -> Expr:
    """Apply ``op(·, s)`` to every coefficient in the tree."""
    if isinstance(e, Sum):
        return Sum(
            one=op(e.one, s),
            zero=op(e.zero, s),
            nonlinear=tuple(_map_scalar(child, s, op) for child in e.nonlinear),
        )
    if isinstance(e, Min):
        if s < 0:
            raise ValueError(
                f"Cannot distribute a negative scalar ({s}) over a Min node."
            )
        return Min(_map_scalar(e.a, s, op), _map_scalar(e.b, s, op))
    raise TypeError(f"Unsupported expression node: {type(e).__name__}")


def scale(e: Expr, s: Number) -> Expr:
    """Return an expression evaluating to ``s * e(x)``.

    Raises:
        ValueError: If ``s`` is not finite, or ``s < 0`` and the tree holds
                    a Min node.
    """
    return _map_scalar(e, _check_scalar(s), operator.mul)


def divide(e: Expr, s: Number) -> Expr:
    """Return an expression evaluating to ``e(x) / s``.

    Raises:
        ZeroDivisionError: If ``s == 0``.
        ValueError:        If ``s`` is not finite, or ``s < 0`` and the tree
                           holds a Min node.
    """
    s = _check_scalar(s)
    if s == 0.0:
        raise ZeroDivisionError("Cannot divide an expression by zero.")
    return _map_scalar(e, s, operator.truediv)


# ─── Fixed point ──────────────────────────────────────────────────────────────


def bisect(
    e: Expr,
    *,
    lo: float = BISECT_LO,
    hi: float = BISECT_HI,
    tol: float = BISECT_TOLERANCE,
) -> float:
    """Find ``x*`` with ``e(x*) ≈ x*`` by bisection.

    Precondition: ``g(x) = e(x) - x`` is non-increasing and crosses zero
    once for ``x >= 0``.  Every equation built by the race solver has this
    shape because each self-reference is weighted by a probability < 1.

    The bracket is first widened (``lo`` halved while ``e(lo) < lo``, ``hi``
    doubled while ``hi < e(hi)``), then narrowed keeping
    ``e(lo) >= lo`` and ``e(hi) <= hi`` until ``hi - lo <= tol``.

    Args:
        e:   Equation to solve.
        lo:  Starting lower bracket.
        hi:  Starting upper bracket.
        tol: Absolute bracket width at which to stop.

    Returns:
        The upper end of the final bracket.

    Raises:
        BisectionError: If either end of the bracket cannot be established
                        within MAX_BRACKET_STEPS, or ``hi`` overflows.

    Examples:
        >>> round(bisect(constant(2.0) + self_consistent(0.5)), 9)
        4.0
    """
    steps = 0
    while e.eval(lo) < lo:
        lo /= 2.0
        steps += 1
        if steps > MAX_BRACKET_STEPS:
            raise BisectionError(
                f"No lower bracket found after {MAX_BRACKET_STEPS} halvings."
            )

    steps = 0
    while hi < e.eval(hi):
        hi *= 2.0
        steps += 1
        if steps > MAX_BRACKET_STEPS or not math.isfinite(hi):
            raise BisectionError(
                f"No upper bracket found (hi={hi}); equation may have slope >= 1."
            )

    while hi - lo > tol:
        mid = (hi + lo) / 2.0
        # Bracket narrower than one ulp: no representable midpoint left.
        if mid <= lo or mid >= hi:
            break
        if e.eval(mid) < mid:
            hi = mid
        else:
            lo = mid
    return hi
