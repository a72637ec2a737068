"""Policy heat maps and value curves for the race solver.

Data builders return NumPy arrays that can be used programmatically or
passed to the plot helpers:

    build_policy_heatmap_data(solver)  — (goal, dice) GO/STOP matrix
    build_margin_heatmap_data(solver)  — (goal, dice) stop − go margins
    build_value_array(solver)          — (goal,) expected turns per square

Plot functions render matplotlib figures:

    plot_policy_heatmap(solver, ...)   — GO/STOP grid, optionally annotated
    plot_margin_heatmap(solver, ...)   — continuous margin grid
    plot_value_curve(solver, ...)      — expected turns against square

Matrix convention:
    Shape  : (goal, dice) — rows = squares [0, goal), cols = die faces [1, dice]
    Values : 1.0 = GO, 0.0 = STOP (policy); stop − go in turns (margin)
             np.nan = roll reaches the goal, nothing to decide
"""

from __future__ import annotations

import matplotlib
import matplotlib.colors
import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np

from src.solvers.race_dp import Action, RaceSolver

# ─── Constants ────────────────────────────────────────────────────────────────

_NAN_COLOR: str = "#cccccc"
_MAX_ANNOTATED_CELLS: int = 240
"""Grids larger than this are drawn without per-cell text."""


# ─── Colormaps ────────────────────────────────────────────────────────────────


def _make_binary_cmap() -> matplotlib.colors.ListedColormap:
    """Red=STOP (0), Green=GO (1), grey=finished (NaN)."""
    cmap = matplotlib.colors.ListedColormap(["#d62728", "#2ca02c"])
    cmap.set_bad(color=_NAN_COLOR)
    return cmap


def _make_diverging_cmap() -> matplotlib.colors.Colormap:
    """RdYlGn gradient centred on a zero margin, grey=finished (NaN)."""
    cmap = matplotlib.colormaps["RdYlGn"].copy()
    cmap.set_bad(color=_NAN_COLOR)
    return cmap


_BINARY_CMAP: matplotlib.colors.Colormap = _make_binary_cmap()
_DIVERGING_CMAP: matplotlib.colors.Colormap = _make_diverging_cmap()


# ─── Data builders ────────────────────────────────────────────────────────────


def build_policy_heatmap_data(solver: RaceSolver) -> np.ndarray:
    """Return the first-decision GO/STOP matrix.

    Returns:
        float64 array of shape (goal, dice): 1.0 = GO, 0.0 = STOP,
        np.nan where the roll already reaches the goal.
    """
    data = np.full((solver.goal, solver.dice), np.nan)
    for (p, d), decision in solver.first_decisions().items():
        data[p, d - 1] = 1.0 if decision.action == Action.GO else 0.0
    return data


def build_margin_heatmap_data(solver: RaceSolver) -> np.ndarray:
    """Return ``stop_value − go_value`` for each first decision.

    Positive cells favour GO, negative cells favour STOP.

    Returns:
        float64 array of shape (goal, dice); np.nan where the roll finishes.
    """
    data = np.full((solver.goal, solver.dice), np.nan)
    for (p, d), decision in solver.first_decisions().items():
        data[p, d - 1] = decision.margin
    return data


def build_value_array(solver: RaceSolver) -> np.ndarray:
    """Return V(p) for p in [0, goal) as a float64 array."""
    values = solver.solve_all()
    return np.array([values[p] for p in range(solver.goal)], dtype=np.float64)


# ─── Rendering helper ─────────────────────────────────────────────────────────


def _render_panel(
    ax: matplotlib.axes.Axes,
    data: np.ndarray,
    binary: bool,
) -> matplotlib.image.AxesImage:
    """Render one heat-map panel onto *ax* and return the AxesImage.

    Sets axis ticks and, for small grids, cell annotations.  The caller is
    responsible for setting title, xlabel, and ylabel.
    """
    masked = np.ma.masked_invalid(data)
    if binary:
        im = ax.imshow(masked, cmap=_BINARY_CMAP, vmin=0.0, vmax=1.0, aspect="auto")
    else:
        finite = data[np.isfinite(data)]
        bound = float(np.max(np.abs(finite))) if finite.size else 1.0
        bound = bound or 1.0
        im = ax.imshow(
            masked, cmap=_DIVERGING_CMAP, vmin=-bound, vmax=bound, aspect="auto"
        )

    n_rows, n_cols = data.shape
    ax.set_xticks(range(n_cols))
    ax.set_xticklabels([str(d) for d in range(1, n_cols + 1)], fontsize=9)
    step = max(1, n_rows // 20)
    ax.set_yticks(range(0, n_rows, step))
    ax.set_yticklabels([str(p) for p in range(0, n_rows, step)], fontsize=9)

    if data.size > _MAX_ANNOTATED_CELLS:
        return im

    for r in range(n_rows):
        for c in range(n_cols):
            val = data[r, c]
            if np.isnan(val):
                continue
            text = ("G" if val >= 0.5 else "S") if binary else f"{val:.2f}"
            ax.text(
                c,
                r,
                text,
                ha="center",
                va="center",
                fontsize=8,
                color="white" if binary else "black",
                fontweight="bold",
            )

    return im


def _finish(
    fig: matplotlib.figure.Figure,
    show: bool,
    save_path: str | None,
) -> matplotlib.figure.Figure:
    fig.tight_layout()
    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=120)
    if show:
        plt.show()
    return fig


# ─── Public plot functions ────────────────────────────────────────────────────


def plot_policy_heatmap(
    solver: RaceSolver,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot the first-decision GO/STOP policy as a square × die-face grid.

    Args:
        solver:    Solver to read decisions from (memo is reused).
        show:      If True, call plt.show() after rendering.
        save_path: If not None, save the figure to this path before showing.

    Returns:
        matplotlib.figure.Figure.
    """
    data = build_policy_heatmap_data(solver)
    fig, ax = plt.subplots(figsize=(2 + 0.6 * solver.dice, 2 + 0.25 * solver.goal))
    _render_panel(ax, data, binary=True)
    ax.set_title(f"Optimal first decision  (D={solver.dice}, goal={solver.goal})", fontsize=11)
    ax.set_xlabel("Die face", fontsize=9)
    ax.set_ylabel("Square", fontsize=9)
    return _finish(fig, show, save_path)


def plot_margin_heatmap(
    solver: RaceSolver,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot ``stop − go`` in expected turns; green favours GO, red STOP."""
    data = build_margin_heatmap_data(solver)
    fig, ax = plt.subplots(figsize=(3 + 0.6 * solver.dice, 2 + 0.25 * solver.goal))
    im = _render_panel(ax, data, binary=False)
    plt.colorbar(im, ax=ax, label="stop − go (turns)", fraction=0.046, pad=0.04)
    ax.set_title(f"Decision margin  (D={solver.dice}, goal={solver.goal})", fontsize=11)
    ax.set_xlabel("Die face", fontsize=9)
    ax.set_ylabel("Square", fontsize=9)
    return _finish(fig, show, save_path)


def plot_value_curve(
    solver: RaceSolver,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot expected turns to finish against starting square."""
    values = build_value_array(solver)
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(np.arange(solver.goal), values, marker="o", markersize=3, color="#1f77b4")
    ax.set_title(f"Expected turns to finish  (D={solver.dice}, goal={solver.goal})", fontsize=11)
    ax.set_xlabel("Square", fontsize=9)
    ax.set_ylabel("Expected turns", fontsize=9)
    ax.grid(True, alpha=0.3)
    return _finish(fig, show, save_path)


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    dice = int(sys.argv[1]) if len(sys.argv) > 1 else 6
    goal = int(sys.argv[2]) if len(sys.argv) > 2 else 20
    solver = RaceSolver(dice=dice, goal=goal)

    print("Generating policy heat maps …")
    plot_policy_heatmap(solver, show=False, save_path="race_policy.png")
    plot_margin_heatmap(solver, show=False, save_path="race_margin.png")
    plot_value_curve(solver, show=False, save_path="race_values.png")
    print("Saved: race_policy.png, race_margin.png, race_values.png")
