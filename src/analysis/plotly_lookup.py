"""Interactive Plotly strategy lookup for the race solver.

Three public functions:

    build_policy_lookup_figure(solver)
        — Square × die-face heatmap of the first GO/STOP decision.  Hover
          shows both branch values and the query (total, stop-only) pair.
    build_value_figure(solver)
        — Expected turns against square, with hover values.
    save_lookup_html(fig, path)
        — Export any figure to a self-contained HTML file.
"""

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go

from src.analysis.heat_maps import build_policy_heatmap_data, build_value_array
from src.solvers.race_dp import RaceSolver

# ─── Constants ────────────────────────────────────────────────────────────────

# Discrete red→green colorscale: 0.0 = STOP (red), 1.0 = GO (green).
# The step at 0.5 creates a hard binary cutoff.
_BINARY_COLORSCALE: list[list] = [
    [0.0, "#d62728"],
    [0.499, "#d62728"],
    [0.501, "#2ca02c"],
    [1.0, "#2ca02c"],
]


# ─── Hover text ───────────────────────────────────────────────────────────────


def _build_policy_hover(solver: RaceSolver, data: np.ndarray) -> list[list[str]]:
    """Return a (goal, dice) list of hover strings for the policy panel.

    Each cell shows the square, die face, action, both branch values and the
    diagnostic ``query`` pair.  Rolls that finish say so instead.
    """
    decisions = solver.first_decisions()
    queries = solver.strategy_table()
    rows: list[list[str]] = []
    for p in range(solver.goal):
        row: list[str] = []
        for d in range(1, solver.dice + 1):
            total, stop_only = queries[(p, d)]
            lines = [f"Square: <b>{p}</b>", f"Die: {d}"]
            if np.isnan(data[p, d - 1]):
                lines.append("Finished")
            else:
                decision = decisions[(p, d)]
                lines += [
                    f"Action: <b>{decision.action.value}</b>",
                    f"GO value: {decision.go_value:.4f}",
                    f"STOP value: {decision.stop_value:.4f}",
                ]
            lines += [f"Total: {total:.4f}", f"Stop only: {stop_only:.4f}"]
            row.append("<br>".join(lines))
        rows.append(row)
    return rows


# ─── Public figure builders ───────────────────────────────────────────────────


def build_policy_lookup_figure(solver: RaceSolver) -> go.Figure:
    """Build an interactive heatmap of the first GO/STOP decision.

    Args:
        solver: Solver to read decisions from (memo is reused).

    Returns:
        go.Figure with one heatmap trace.
    """
    data = build_policy_heatmap_data(solver)
    hover = _build_policy_hover(solver, data)
    # NaN → None so Plotly renders finished rolls as blank cells.
    z = [[None if np.isnan(v) else v for v in row] for row in data.tolist()]

    fig = go.Figure(
        go.Heatmap(
            z=z,
            x=[str(d) for d in range(1, solver.dice + 1)],
            y=[str(p) for p in range(solver.goal)],
            colorscale=_BINARY_COLORSCALE,
            zmin=0.0,
            zmax=1.0,
            text=hover,
            hovertemplate="%{text}<extra></extra>",
            colorbar={"title": "STOP / GO"},
            name="Policy",
        )
    )
    fig.update_layout(
        title_text=f"Race Strategy Lookup — D={solver.dice}, goal={solver.goal}",
        title_font_size=15,
        height=max(420, 18 * solver.goal),
        width=160 + 60 * solver.dice,
    )
    fig.update_xaxes(title_text="Die face")
    fig.update_yaxes(title_text="Square", autorange="reversed")
    return fig


def build_value_figure(solver: RaceSolver) -> go.Figure:
    """Build an interactive line chart of V(square)."""
    values = build_value_array(solver)
    fig = go.Figure(
        go.Scatter(
            x=list(range(solver.goal)),
            y=values.tolist(),
            mode="lines+markers",
            hovertemplate="Square %{x}<br>Expected turns %{y:.4f}<extra></extra>",
            name="V(square)",
        )
    )
    fig.update_layout(
        title_text=f"Expected Turns to Finish — D={solver.dice}, goal={solver.goal}",
        title_font_size=15,
        height=420,
        width=780,
    )
    fig.update_xaxes(title_text="Square")
    fig.update_yaxes(title_text="Expected turns")
    return fig


# ─── HTML export ──────────────────────────────────────────────────────────────


def save_lookup_html(fig: go.Figure, path: str) -> None:
    """Save a Plotly figure to a self-contained HTML file.

    Plotly JS is loaded from the CDN so the file itself remains compact.

    Args:
        fig:  Any go.Figure produced by this module.
        path: Destination file path (e.g. ``"race_lookup.html"``).
    """
    fig.write_html(path, include_plotlyjs="cdn")


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    dice = int(sys.argv[1]) if len(sys.argv) > 1 else 6
    goal = int(sys.argv[2]) if len(sys.argv) > 2 else 20
    solver = RaceSolver(dice=dice, goal=goal)

    print("Building interactive lookup figures …")
    save_lookup_html(build_policy_lookup_figure(solver), "race_lookup.html")
    save_lookup_html(build_value_figure(solver), "race_values.html")
    print("Saved: race_lookup.html, race_values.html")
