"""Saturation tracker: local density around a frozen cohort of isolated founders.

State machine (initial SEARCHING):

  SEARCHING  Each generation the isolation index (radius isolation_factor · r)
             is evaluated. Individuals with zero neighbours inside it are
             "isolated". Once at least M are isolated at the same time, their
             identities are frozen as the TrackingSet and the tracker moves
             to FOUND, recording the first row in that same generation.

  FOUND      Each generation one row is appended: for every member, its
             neighbour count within r plus one (itself). Optionally a second
             row of local diversity over its 2K nearest neighbours.

  GIVEN_UP   The cutoff was reached while SEARCHING for the max_failures-th
             time. Terminal.

Reaching the cutoff while SEARCHING is a failed measurement attempt, not an
error; the controller restores the generation-1 checkpoint and re-seeds.
Reaching it while FOUND is a successful measurement.

Column order of every row is the member index assigned at selection time,
which never changes afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from colonization_sim.config import TrackingSection
from colonization_sim.diversity import local_diversity
from colonization_sim.population import Population
from colonization_sim.spatial import SpatialIndex
from colonization_sim.types import RunOutcome, TrackerState


@dataclass
class SaturationTracker:
    """Tracking state owned by the generation controller."""
    min_isolated: int = 1
    max_failures: int = 3
    track_diversity: bool = False
    k_neighbors: int = 20

    state: TrackerState = TrackerState.SEARCHING
    tracked_uids: np.ndarray = field(
        default_factory=lambda: np.zeros(0, dtype=np.int64)
    )
    selected_at: Optional[int] = None
    neighbor_rows: List[np.ndarray] = field(default_factory=list)
    diversity_rows: List[np.ndarray] = field(default_factory=list)
    n_failures: int = 0

    @classmethod
    def from_config(
        cls,
        cfg: TrackingSection,
        carrying_capacity: int,
    ) -> 'SaturationTracker':
        return cls(
            min_isolated=cfg.min_isolated,
            max_failures=cfg.max_failures,
            track_diversity=cfg.track_diversity,
            k_neighbors=cfg.neighbors_factor * carrying_capacity,
        )

    @property
    def n_members(self) -> int:
        return len(self.tracked_uids)

    @property
    def n_rows(self) -> int:
        return len(self.neighbor_rows)

    # ── per-generation step ──────────────────────────────────────────

    def find_isolated(self, pop: Population, isolation_index: SpatialIndex) -> np.ndarray:
        """Row indices of individuals with no neighbour within the isolation radius."""
        isolation_index.evaluate(pop.positions())
        counts = isolation_index.neighbor_counts(exclude_self=True)
        return np.flatnonzero(counts == 0)

    def select(self, pop: Population, rows: np.ndarray) -> None:
        """Freeze the TrackingSet and label each member with its own lineage."""
        if self.state is not TrackerState.SEARCHING:
            raise RuntimeError(f"TrackingSet already selected (state {self.state.name})")
        self.tracked_uids = pop.agents['uid'][rows].copy()
        self.tracked_uids.setflags(write=False)
        self.selected_at = pop.generation
        pop.agents['lineage'][rows] = np.arange(1, len(rows) + 1)
        self.state = TrackerState.FOUND

    def record(self, pop: Population, interaction_index: SpatialIndex) -> None:
        """Append one row of neighbour counts (and diversity) for the TrackingSet."""
        interaction_index.evaluate(pop.positions())
        rows = pop.index_of(self.tracked_uids)
        alive = rows >= 0

        counts = interaction_index.neighbor_counts(exclude_self=True)
        row = np.zeros(self.n_members, dtype=np.int64)
        row[alive] = counts[rows[alive]] + 1
        self.neighbor_rows.append(row)

        if self.track_diversity:
            self.diversity_rows.append(
                local_diversity(pop.agents, interaction_index, rows, self.k_neighbors)
            )

    def step(
        self,
        pop: Population,
        interaction_index: SpatialIndex,
        isolation_index: SpatialIndex,
    ) -> None:
        """Run the tracker for the current generation."""
        if self.state is TrackerState.SEARCHING:
            isolated = self.find_isolated(pop, isolation_index)
            if len(isolated) >= self.min_isolated:
                self.select(pop, isolated)
        if self.state is TrackerState.FOUND:
            self.record(pop, interaction_index)

    # ── termination handling ─────────────────────────────────────────

    def on_cutoff(self) -> RunOutcome:
        """Population passed the cutoff: decide between success, retry and give-up."""
        if self.state is TrackerState.FOUND:
            return RunOutcome.SUCCESS
        if self.state is TrackerState.GIVEN_UP:
            return RunOutcome.FAILURE_EXHAUSTED

        self.n_failures += 1
        if self.n_failures >= self.max_failures:
            self.state = TrackerState.GIVEN_UP
            return RunOutcome.FAILURE_EXHAUSTED
        return RunOutcome.CONTINUING

    def reset_for_restart(self) -> None:
        """Forget everything except the failure count."""
        self.state = TrackerState.SEARCHING
        self.tracked_uids = np.zeros(0, dtype=np.int64)
        self.selected_at = None
        self.neighbor_rows = []
        self.diversity_rows = []

    # ── output ───────────────────────────────────────────────────────

    def neighbor_matrix(self) -> np.ndarray:
        """(n_rows, n_members) neighbour counts, one row per generation."""
        if not self.neighbor_rows:
            return np.zeros((0, self.n_members), dtype=np.int64)
        return np.vstack(self.neighbor_rows)

    def diversity_matrix(self) -> np.ndarray:
        """(n_rows, n_members) local diversity, one row per generation."""
        if not self.diversity_rows:
            return np.zeros((0, self.n_members), dtype=np.float64)
        return np.vstack(self.diversity_rows)
