"""Colonization and local-saturation plots.

Every function:
  - Accepts a SimulationResult (or an agent array) as input
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)
  - Uses the shared dark theme from ``colonization_sim.viz.style``

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Optional, TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np

from colonization_sim.viz.style import (
    ACCENT_COLORS,
    TEXT_COLOR,
    dark_figure,
    dark_legend,
    outcome_color,
    save_figure,
)

if TYPE_CHECKING:
    from colonization_sim.model import SimulationResult


# ═══════════════════════════════════════════════════════════════════════
# 1. POPULATION TRAJECTORY
# ═══════════════════════════════════════════════════════════════════════

def plot_population_trajectory(
    result: 'SimulationResult',
    cutoff: Optional[int] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Population size and core radius per generation, one line per attempt.

    Args:
        result: SimulationResult with generation records.
        cutoff: Optional size cutoff C to show as a dashed line.
        save_path: Optional path to save the figure.

    Returns:
        matplotlib Figure.
    """
    fig, (ax_n, ax_l) = dark_figure(1, 2, figsize=(14, 5))
    attempts = sorted({r.attempt for r in result.records})
    for a in attempts:
        rows = result.attempt_records(a)
        gens = [r.generation for r in rows]
        color = ACCENT_COLORS[a % len(ACCENT_COLORS)]
        ax_n.plot(gens, [r.population_size for r in rows], color=color,
                  linewidth=2, label=f'attempt {a}')
        ax_l.plot(gens, [r.core_radius for r in rows], color=color, linewidth=2)

    if cutoff is not None:
        ax_n.axhline(cutoff, color=outcome_color(result.outcome),
                     linestyle='--', linewidth=1.5, alpha=0.7,
                     label=f'C = {cutoff}')

    ax_n.set_xlabel('Generation', fontsize=12)
    ax_n.set_ylabel('Population size', fontsize=12)
    ax_n.set_title(f'Population ({result.outcome.name})', fontsize=14,
                   fontweight='bold')
    dark_legend(ax_n)
    ax_n.set_ylim(bottom=0)

    ax_l.set_xlabel('Generation', fontsize=12)
    ax_l.set_ylabel('Core radius ℓ', fontsize=12)
    ax_l.set_title('Core radius estimate', fontsize=14, fontweight='bold')
    ax_l.set_ylim(bottom=0)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 2. LOCAL SATURATION CURVES
# ═══════════════════════════════════════════════════════════════════════

def plot_saturation_curves(
    result: 'SimulationResult',
    carrying_capacity: Optional[int] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Neighbour count (and local diversity) of each tracked founder over time.

    Thin lines are individual founders; the thick line is the cohort mean.
    """
    neighbors = result.neighbor_matrix
    diversity = result.diversity_matrix
    has_div = diversity is not None and len(diversity) > 0
    fig, axes = dark_figure(1, 2 if has_div else 1,
                            figsize=(14, 5) if has_div else (10, 6))
    ax_n = axes[0] if has_div else axes

    if neighbors is None or len(neighbors) == 0:
        ax_n.text(0.5, 0.5, 'No TrackingSet selected', ha='center',
                  va='center', color=TEXT_COLOR, transform=ax_n.transAxes)
    else:
        gens = result.selected_at + np.arange(len(neighbors))
        for j in range(neighbors.shape[1]):
            ax_n.plot(gens, neighbors[:, j], color=ACCENT_COLORS[1],
                      linewidth=0.8, alpha=0.4)
        ax_n.plot(gens, neighbors.mean(axis=1), color=ACCENT_COLORS[0],
                  linewidth=2.5, label='cohort mean')
        if carrying_capacity is not None:
            ax_n.axhline(carrying_capacity, color=ACCENT_COLORS[2],
                         linestyle='--', linewidth=1.5, alpha=0.7,
                         label=f'K = {carrying_capacity}')
        dark_legend(ax_n)

    ax_n.set_xlabel('Generation', fontsize=12)
    ax_n.set_ylabel('Neighbours within r (incl. self)', fontsize=12)
    ax_n.set_title('Local density saturation', fontsize=14, fontweight='bold')

    if has_div:
        ax_d = axes[1]
        gens = result.selected_at + np.arange(len(diversity))
        for j in range(diversity.shape[1]):
            ax_d.plot(gens, diversity[:, j], color=ACCENT_COLORS[3],
                      linewidth=0.8, alpha=0.4)
        ax_d.plot(gens, np.nanmean(diversity, axis=1), color=ACCENT_COLORS[0],
                  linewidth=2.5)
        ax_d.set_xlabel('Generation', fontsize=12)
        ax_d.set_ylabel('Local diversity', fontsize=12)
        ax_d.set_title('Local diversity saturation', fontsize=14,
                       fontweight='bold')
        ax_d.set_ylim(0, 1)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 3. COLONY MAP
# ═══════════════════════════════════════════════════════════════════════

def plot_colony_map(
    agents: np.ndarray,
    side: float,
    title: str = 'Colony',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Scatter of individual positions, tracked lineages highlighted."""
    fig, ax = dark_figure(figsize=(8, 8))
    untracked = agents['lineage'] == 0
    ax.scatter(agents['x'][untracked], agents['y'][untracked], s=2,
               color=ACCENT_COLORS[3], alpha=0.5, linewidths=0)
    if np.any(~untracked):
        ax.scatter(agents['x'][~untracked], agents['y'][~untracked], s=4,
                   c=agents['lineage'][~untracked], cmap='plasma',
                   linewidths=0)
    ax.set_xlim(0, side)
    ax.set_ylim(0, side)
    ax.set_aspect('equal')
    ax.set_xlabel('x', fontsize=12)
    ax.set_ylabel('y', fontsize=12)
    ax.set_title(f'{title} (N = {len(agents)})', fontsize=14, fontweight='bold')

    if save_path:
        save_figure(fig, save_path)
    return fig
