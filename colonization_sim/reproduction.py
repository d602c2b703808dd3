"""Clonal reproduction with kernel dispersal.

Each living individual produces Poisson(λ) offspring. Every offspring:
  - clones the parent's marker and lineage (not position or age)
  - is displaced by d ~ hybrid kernel along θ ~ U[0, 2π)
  - lands at parent + (d cos θ, d sin θ), wrapped onto the torus
  - starts at age 0, birth_gen = current generation, not removed

A jump longer than FAR_JUMP_SIDES habitat sides (including distances past
the float range) wraps the torus so many times that its landing point is
uniform; such offspring are placed uniformly on [0, L)².

No regulation happens here; newborns may be culled by the density
regulator in the same generation.
"""

from __future__ import annotations

import numpy as np

from colonization_sim.config import KernelSection, PopulationSection
from colonization_sim.kernel import draw_dispersal
from colonization_sim.population import Population
from colonization_sim.types import MARKER_SET

TWO_PI = 2.0 * np.pi

# Jumps beyond this many habitat sides land uniformly on the torus
FAR_JUMP_SIDES = 1.0e6


def draw_offspring_counts(
    n_parents: int,
    offspring_mean: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Poisson(λ) offspring count per parent."""
    return rng.poisson(offspring_mean, size=n_parents)


def dispersal_displacements(
    n: int,
    kernel: KernelSection,
    rng: np.random.Generator,
) -> np.ndarray:
    """(n, 2) displacement vectors: kernel distance, uniform direction."""
    d = draw_dispersal(n, kernel.mu, kernel.p_short, kernel.boundary_radius, rng)
    theta = rng.uniform(0.0, TWO_PI, size=n)
    with np.errstate(invalid='ignore'):
        return np.column_stack([d * np.cos(theta), d * np.sin(theta)])


def reproduce(
    pop: Population,
    kernel: KernelSection,
    pop_cfg: PopulationSection,
    rng: np.random.Generator,
) -> int:
    """Run one reproduction phase (in-place on pop).

    Args:
        pop: Population; offspring are appended to pop.agents.
        kernel: Dispersal kernel parameters.
        pop_cfg: Offspring mean and marker mutation rate.
        rng: Run random stream.

    Returns:
        Number of offspring created.
    """
    parents = pop.agents
    counts = draw_offspring_counts(len(parents), pop_cfg.offspring_mean, rng)
    n_off = int(counts.sum())
    if n_off == 0:
        return 0

    parent_idx = np.repeat(np.arange(len(parents)), counts)
    disp = dispersal_displacements(n_off, kernel, rng)
    x = parents['x'][parent_idx] + disp[:, 0]
    y = parents['y'][parent_idx] + disp[:, 1]

    # NaN-safe: inf * cos(theta) may be nan, which fails the comparison
    far = ~np.all(np.abs(disp) < FAR_JUMP_SIDES * pop.side, axis=1)
    n_far = int(far.sum())
    if n_far:
        x[far] = rng.uniform(0.0, pop.side, size=n_far)
        y[far] = rng.uniform(0.0, pop.side, size=n_far)

    marker = parents['marker'][parent_idx].copy()
    if pop_cfg.marker_mutation_rate > 0:
        mutated = rng.random(n_off) < pop_cfg.marker_mutation_rate
        marker[mutated] = MARKER_SET

    pop.add(
        x=x,
        y=y,
        marker=marker,
        lineage=parents['lineage'][parent_idx],
    )
    return n_off
