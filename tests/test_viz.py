"""Smoke tests for colonization_sim.viz — figures render and save."""

import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import numpy as np

from colonization_sim.model import SimulationResult
from colonization_sim.types import GenerationRecord, RunOutcome, allocate_agents
from colonization_sim.viz import (
    plot_colony_map,
    plot_population_trajectory,
    plot_saturation_curves,
)


def make_result(tracked=True):
    records = [
        GenerationRecord(g, 100 * g, float(g), 0.0, attempt=0) for g in range(1, 5)
    ] + [
        GenerationRecord(g, 120 * g, float(g), 0.1, attempt=1) for g in range(1, 4)
    ]
    agents = allocate_agents(50)
    agents['x'] = np.linspace(0, 9, 50)
    agents['y'] = np.linspace(9, 0, 50)
    agents['lineage'][:5] = 1
    result = SimulationResult(outcome=RunOutcome.SUCCESS, records=records, agents=agents)
    if tracked:
        result.selected_at = 2
        result.neighbor_matrix = np.array([[1, 1], [3, 2], [6, 4]])
        result.diversity_matrix = np.array([[0.0, 0.0], [0.3, 0.2], [0.5, np.nan]])
    return result


def test_trajectory(tmp_path):
    path = tmp_path / "trajectory.png"
    fig = plot_population_trajectory(make_result(), cutoff=400, save_path=str(path))
    assert isinstance(fig, plt.Figure)
    assert path.exists()


def test_saturation_curves(tmp_path):
    path = tmp_path / "saturation.png"
    plot_saturation_curves(make_result(), carrying_capacity=10, save_path=str(path))
    assert path.exists()


def test_saturation_curves_without_tracking():
    fig = plot_saturation_curves(make_result(tracked=False))
    assert len(fig.axes) == 1
    plt.close(fig)


def test_colony_map(tmp_path):
    result = make_result()
    path = tmp_path / "colony.png"
    plot_colony_map(result.agents, 10.0, save_path=str(path))
    assert path.exists()


def test_outcome_color():
    from colonization_sim.viz import OUTCOME_COLORS, TEXT_COLOR, outcome_color
    assert outcome_color(RunOutcome.SUCCESS) == OUTCOME_COLORS['success']
    assert outcome_color('safety_timeout') == OUTCOME_COLORS['safety_timeout']
    assert outcome_color(RunOutcome.CONTINUING) == TEXT_COLOR
