"""Density regulation: hard neighbour-count threshold on newborns.

Runs after reproduction and before aging. The spatial index is rebuilt over
the full post-reproduction population (parents + offspring). Every newborn
(age 0) with at least K neighbours within r is flagged for removal.

Snapshot-then-commit: all counts are read from one frozen index, then the
flags are applied in a separate serial step. A newborn's removal therefore
never changes another newborn's count within the same phase, and the result
does not depend on evaluation order.
"""

from __future__ import annotations

import numpy as np

from colonization_sim.population import Population
from colonization_sim.spatial import SpatialIndex


def crowded_newborns(
    ages: np.ndarray,
    neighbor_counts: np.ndarray,
    carrying_capacity: int,
) -> np.ndarray:
    """Boolean mask of newborns at or above the crowding threshold."""
    return (ages == 0) & (neighbor_counts >= carrying_capacity)


def regulate_density(
    pop: Population,
    index: SpatialIndex,
    carrying_capacity: int,
) -> int:
    """Flag and remove crowded newborns (in-place on pop).

    Args:
        pop: Population after reproduction.
        index: Interaction-radius index; re-evaluated here.
        carrying_capacity: K.

    Returns:
        Number of individuals removed.
    """
    if pop.size == 0:
        return 0

    # Snapshot: one read-only pass over the frozen configuration
    index.evaluate(pop.positions())
    counts = index.neighbor_counts(exclude_self=True)
    flags = crowded_newborns(pop.agents['age'], counts, carrying_capacity)

    # Commit
    pop.agents['removed'] |= flags
    return pop.commit_removals()


def apply_adult_mortality(
    pop: Population,
    probability: float,
    rng: np.random.Generator,
) -> int:
    """Kill each individual older than one generation with the given probability.

    Returns:
        Number of individuals removed.
    """
    if probability <= 0 or pop.size == 0:
        return 0
    adults = pop.agents['age'] > 0
    dies = adults & (rng.random(pop.size) < probability)
    pop.agents['removed'] |= dies
    return pop.commit_removals()
