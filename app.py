"""Race Solver — Streamlit Dashboard.

Four-tab interactive dashboard for exploring push-your-luck race results:
  Tab 1 — Expected Turns          (value table + curve, diagnostic queries)
  Tab 2 — Policy Heat Map         (matplotlib GO/STOP grid and margins)
  Tab 3 — Interactive Lookup      (Plotly, hover for branch values)
  Tab 4 — Monte Carlo Validation  (simulated races vs. solver prediction)

Run:
    PYTHONPATH=. streamlit run app.py
"""

from __future__ import annotations

import contextlib
import io

import matplotlib

matplotlib.use("Agg")  # must be set before any other matplotlib imports

import streamlit as st

# ─── Page config ──────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Race Solver",
    page_icon="🎲",
    layout="wide",
)

# ─── Lazy imports (inside functions to keep startup fast) ─────────────────────


@st.cache_resource
def _load_analysis_modules():
    """Import heavy analysis modules once (cached for the process lifetime)."""
    import pandas as pd

    from src.analysis.heat_maps import (
        plot_margin_heatmap,
        plot_policy_heatmap,
        plot_value_curve,
    )
    from src.analysis.plotly_lookup import build_policy_lookup_figure, build_value_figure
    from src.analysis.simulator import (
        make_always_stop_policy,
        make_optimal_policy,
        simulate_games,
    )

    return {
        "pd": pd,
        "plot_policy_heatmap": plot_policy_heatmap,
        "plot_margin_heatmap": plot_margin_heatmap,
        "plot_value_curve": plot_value_curve,
        "build_policy_lookup_figure": build_policy_lookup_figure,
        "build_value_figure": build_value_figure,
        "simulate_games": simulate_games,
        "make_optimal_policy": make_optimal_policy,
        "make_always_stop_policy": make_always_stop_policy,
    }


@st.cache_resource
def _get_solver(dice: int, goal: int):
    """Build a solver and warm its memo and tables (cached per configuration)."""
    from src.solvers.race_dp import RaceSolver

    solver = RaceSolver(dice=dice, goal=goal)
    solver.solve_all()
    solver.strategy_table()
    solver.first_decisions()
    return solver


# ─── Sidebar controls ─────────────────────────────────────────────────────────

with st.sidebar:
    st.title("🎲 Race Solver")
    st.markdown("---")

    dice = st.number_input("Die faces", min_value=1, max_value=20, value=6, step=1)
    goal = st.number_input("Goal square", min_value=1, max_value=200, value=20, step=1)

    st.markdown("---")
    n_games = st.slider(
        "MC games (validation tab)",
        min_value=1_000,
        max_value=50_000,
        value=5_000,
        step=1_000,
    )

    st.markdown("---")
    st.caption("Expression algebra → bisection → memoised DP")

solver = _get_solver(int(dice), int(goal))
m = _load_analysis_modules()
pd = m["pd"]

# ─── Tabs ─────────────────────────────────────────────────────────────────────

tab1, tab2, tab3, tab4 = st.tabs(
    [
        "Expected Turns",
        "Policy Heat Map",
        "Interactive Lookup",
        "Monte Carlo Validation",
    ]
)

# ── Tab 1: Expected Turns ─────────────────────────────────────────────────────

with tab1:
    st.header("Expected Turns to Finish")
    values = solver.solve_all()
    st.metric("From square 0", f"{values[0]:.4f} turns")
    st.pyplot(m["plot_value_curve"](solver, show=False))

    value_df = pd.DataFrame(
        {"Square": list(values.keys()), "Expected turns": list(values.values())}
    )
    st.dataframe(value_df, use_container_width=True, hide_index=True)

    st.markdown("---")
    st.subheader("Diagnostic queries (total, stop only)")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        solver.print_strategy_table()
    st.code(buf.getvalue(), language=None)

# ── Tab 2: Policy Heat Map ────────────────────────────────────────────────────

with tab2:
    st.header("Policy Heat Map")
    st.caption(
        "Rows = square | Cols = die face | "
        "Green = GO, Red = STOP, Grey = roll finishes the race"
    )
    st.pyplot(m["plot_policy_heatmap"](solver, show=False))

    st.markdown("---")
    st.subheader("Decision margin (stop − go, in turns)")
    st.pyplot(m["plot_margin_heatmap"](solver, show=False))

# ── Tab 3: Interactive Lookup ─────────────────────────────────────────────────

with tab3:
    st.header("Interactive Strategy Lookup")
    st.caption("Hover over any cell to see the action, branch values and query pair.")
    st.plotly_chart(m["build_policy_lookup_figure"](solver), use_container_width=True)
    st.plotly_chart(m["build_value_figure"](solver), use_container_width=True)

# ── Tab 4: Monte Carlo Validation ─────────────────────────────────────────────

with tab4:
    st.header("Monte Carlo Validation")
    st.caption("Simulated races from square 0 compared against the solver's V(0).")

    with st.spinner(f"Simulating {n_games:,} races …"):
        optimal = m["simulate_games"](
            m["make_optimal_policy"](solver),
            dice=solver.dice,
            goal=solver.goal,
            n_games=n_games,
            seed=42,
        )
        always_stop = m["simulate_games"](
            m["make_always_stop_policy"](),
            dice=solver.dice,
            goal=solver.goal,
            n_games=n_games,
            seed=42,
        )

    col1, col2, col3 = st.columns(3)
    col1.metric("Solver V(0)", f"{values[0]:.4f}")
    col2.metric("Simulated (optimal)", f"{optimal.mean_turns:.4f}")
    col3.metric("Simulated (always stop)", f"{always_stop.mean_turns:.4f}")

    rows = [
        {
            "Policy": label,
            "Mean turns": f"{r.mean_turns:.4f}",
            "Std dev": f"{r.std_turns:.4f}",
            "CI low": f"{r.ci_low:.4f}",
            "CI high": f"{r.ci_high:.4f}",
            "Skewness": f"{r.skewness:.3f}",
            "Contains V(0)": r.contains(values[0]),
        }
        for label, r in [("Optimal", optimal), ("Always stop", always_stop)]
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
