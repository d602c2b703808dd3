"""Diversity proxies over the binary marker, plus founder-lineage diversity.

H_G (population-wide) and the tracked local diversity use the same rule on
the marker states of a group:
  - at most one distinct marker state present → single-locus
    heterozygosity, n/(n-1) · 2p(1-p) (zero for a monomorphic group)
  - both states present → Simpson form over observed marker-state
    frequencies, 1 - Σ f_i²

Lineage diversity is reported separately: Simpson over the founder labels
handed out when a TrackingSet is selected.
"""

from __future__ import annotations

import numpy as np

from colonization_sim.spatial import SpatialIndex
from colonization_sim.types import NO_LINEAGE


def single_locus_heterozygosity(markers: np.ndarray) -> float:
    """Unbiased expected heterozygosity of a binary marker.

    H = n / (n - 1) · 2p(1 - p), with p the fraction of set markers.
    Returns 0.0 for fewer than two individuals.
    """
    n = len(markers)
    if n < 2:
        return 0.0
    p = float(np.count_nonzero(markers)) / n
    return n / (n - 1.0) * 2.0 * p * (1.0 - p)


def simpson_diversity(labels: np.ndarray) -> float:
    """1 - Σ f_i² over observed label frequencies (0.0 when empty)."""
    if len(labels) == 0:
        return 0.0
    _, counts = np.unique(labels, return_counts=True)
    f = counts / counts.sum()
    return float(1.0 - np.sum(f**2))


def marker_diversity(markers: np.ndarray) -> float:
    """Diversity proxy of a set of marker states."""
    if len(np.unique(markers)) <= 1:
        return single_locus_heterozygosity(markers)
    return simpson_diversity(markers)


def group_diversity(agents: np.ndarray) -> float:
    """Diversity proxy for any group of individuals."""
    return marker_diversity(agents['marker'])


def population_diversity(agents: np.ndarray) -> float:
    """H_G for the whole population."""
    return group_diversity(agents)


def lineage_diversity(agents: np.ndarray) -> float:
    """Simpson diversity over tracked founder lineages (0.0 before selection)."""
    labels = agents['lineage']
    return simpson_diversity(labels[labels != NO_LINEAGE])


def local_diversity(
    agents: np.ndarray,
    index: SpatialIndex,
    rows: np.ndarray,
    k: int,
) -> np.ndarray:
    """Marker diversity over each row's k nearest neighbours.

    Args:
        agents: Live agents; `index` must have been evaluated on their positions.
        index: Spatial index over `agents`.
        rows: Row indices to evaluate; -1 marks an individual no longer alive.
        k: Neighbourhood size (2K by default in the tracker).

    Returns:
        (len(rows),) float64, NaN where row is -1.
    """
    out = np.full(len(rows), np.nan, dtype=np.float64)
    for j, i in enumerate(rows):
        if i < 0:
            continue
        nbrs = index.k_nearest(int(i), k)
        out[j] = group_diversity(agents[nbrs])
    return out
