"""Tests for policy heat maps (src/analysis/heat_maps.py).

Tests verify data-matrix shapes and value invariants (no display required)
plus that each plot function returns a well-formed matplotlib Figure.
The Agg backend is activated before any pyplot import so CI/CD environments
without a display server can run the suite safely.
"""

from __future__ import annotations

import os

import matplotlib

matplotlib.use("Agg")  # must precede any pyplot import

import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np
import pytest

from src.analysis.heat_maps import (
    build_margin_heatmap_data,
    build_policy_heatmap_data,
    build_value_array,
    plot_margin_heatmap,
    plot_policy_heatmap,
    plot_value_curve,
)
from src.solvers.race_dp import RaceSolver


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")


# ─── build_policy_heatmap_data ────────────────────────────────────────────────


class TestBuildPolicyHeatmapData:
    def test_shape(self, solver_6_20) -> None:
        data = build_policy_heatmap_data(solver_6_20)
        assert data.shape == (20, 6)

    def test_values_binary_or_nan(self, solver_6_20) -> None:
        data = build_policy_heatmap_data(solver_6_20)
        for val in data.flat:
            if not np.isnan(val):
                assert val in (0.0, 1.0), f"Non-binary value in policy matrix: {val}"

    def test_finishing_rolls_are_nan(self, solver_6_20) -> None:
        data = build_policy_heatmap_data(solver_6_20)
        # From square 19 every face finishes; from 14 only a 6 does.
        assert np.all(np.isnan(data[19]))
        assert np.isnan(data[14, 5])
        assert not np.isnan(data[14, 4])

    def test_non_empty(self, solver_6_20) -> None:
        data = build_policy_heatmap_data(solver_6_20)
        assert not np.all(np.isnan(data))

    def test_single_face_all_go(self) -> None:
        data = build_policy_heatmap_data(RaceSolver(dice=1, goal=6))
        assert np.all(data[:5] == 1.0)
        assert np.isnan(data[5, 0])


# ─── build_margin_heatmap_data / build_value_array ────────────────────────────


class TestBuildMarginAndValues:
    def test_margin_sign_matches_policy(self, solver_6_20) -> None:
        policy = build_policy_heatmap_data(solver_6_20)
        margin = build_margin_heatmap_data(solver_6_20)
        assert margin.shape == policy.shape
        mask = ~np.isnan(policy)
        assert np.all(np.isnan(margin) == np.isnan(policy))
        go = policy[mask] == 1.0
        assert np.all(margin[mask][go] >= 0.0)
        assert np.all(margin[mask][~go] < 0.0)

    def test_value_array(self, solver_6_20) -> None:
        values = build_value_array(solver_6_20)
        assert values.shape == (20,)
        assert values.dtype == np.float64
        assert values[19] == pytest.approx(1.0, abs=1e-9)
        assert np.all(np.diff(values) <= 1e-9)


# ─── Plot functions ───────────────────────────────────────────────────────────


class TestPlots:
    def test_policy_heatmap_returns_figure(self, solver_6_20) -> None:
        fig = plot_policy_heatmap(solver_6_20, show=False)
        assert isinstance(fig, matplotlib.figure.Figure)
        assert len(fig.axes) == 1

    def test_policy_heatmap_annotated(self, solver_6_20) -> None:
        fig = plot_policy_heatmap(solver_6_20, show=False)
        texts = {t.get_text() for t in fig.axes[0].texts}
        assert texts <= {"G", "S"}
        assert texts

    def test_large_grid_not_annotated(self) -> None:
        fig = plot_policy_heatmap(RaceSolver(dice=6, goal=60), show=False)
        assert len(fig.axes[0].texts) == 0

    def test_margin_heatmap_has_colorbar(self, solver_6_20) -> None:
        fig = plot_margin_heatmap(solver_6_20, show=False)
        assert len(fig.axes) == 2

    def test_value_curve(self, solver_6_20) -> None:
        fig = plot_value_curve(solver_6_20, show=False)
        line = fig.axes[0].get_lines()[0]
        assert len(line.get_xdata()) == 20

    def test_save_path(self, solver_2_12, tmp_path) -> None:
        path = tmp_path / "policy.png"
        plot_policy_heatmap(solver_2_12, show=False, save_path=str(path))
        assert os.path.exists(path)
        assert os.path.getsize(path) > 0
