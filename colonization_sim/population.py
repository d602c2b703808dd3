"""Population container: the live set of individuals.

Individuals are rows of an AGENT_DTYPE structured array. The array only ever
holds living individuals: removals are committed by compaction, and new
individuals are appended with increasing uids, so rows stay sorted by uid and
identity lookups are a binary search.

Positions live on the torus [0, L)²; `wrap_periodic` is applied at creation
time so the invariant holds for every row.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from colonization_sim.types import (
    AGENT_DTYPE,
    MARKER_UNSET,
    NO_LINEAGE,
    allocate_agents,
)


# ═══════════════════════════════════════════════════════════════════════
# PERIODIC BOUNDARY
# ═══════════════════════════════════════════════════════════════════════

def wrap_periodic(coords: np.ndarray, side: float) -> np.ndarray:
    """Wrap coordinates onto [0, side) independently on each axis.

    The result is congruent mod side to the input. Floating-point modulo
    can return exactly `side` for tiny negative inputs; those map to 0.
    """
    wrapped = np.mod(np.asarray(coords, dtype=np.float64), side)
    return np.where(wrapped >= side, 0.0, wrapped)


# ═══════════════════════════════════════════════════════════════════════
# POPULATION
# ═══════════════════════════════════════════════════════════════════════

class Population:
    """Live individuals plus the run clock.

    Attributes:
        agents: Structured array (AGENT_DTYPE) of living individuals, uid-ascending.
        generation: Current generation (1-based).
        side: Habitat side length L.
        cutoff: Size cutoff C.
        next_uid: Identity handed to the next individual created.
    """

    def __init__(
        self,
        side: float,
        cutoff: int,
        agents: Optional[np.ndarray] = None,
        generation: int = 1,
        next_uid: Optional[int] = None,
    ):
        self.side = float(side)
        self.cutoff = int(cutoff)
        self.generation = int(generation)
        self.agents = allocate_agents(0) if agents is None else agents
        if next_uid is None:
            next_uid = int(self.agents['uid'].max()) + 1 if len(self.agents) else 0
        self.next_uid = int(next_uid)

    @property
    def size(self) -> int:
        return len(self.agents)

    def positions(self) -> np.ndarray:
        """(n, 2) float64 copy of the current positions."""
        return np.column_stack([self.agents['x'], self.agents['y']])

    def add(
        self,
        x: np.ndarray,
        y: np.ndarray,
        marker: Optional[np.ndarray] = None,
        lineage: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Append newborns at (x, y), wrapped onto the torus.

        Newborns start at age 0 with birth_gen = current generation.

        Returns:
            uids of the new individuals.
        """
        n = len(x)
        new = allocate_agents(n)
        uids = np.arange(self.next_uid, self.next_uid + n, dtype=np.int64)
        new['uid'] = uids
        new['x'] = wrap_periodic(x, self.side)
        new['y'] = wrap_periodic(y, self.side)
        new['age'] = 0
        new['birth_gen'] = self.generation
        new['marker'] = MARKER_UNSET if marker is None else marker
        new['lineage'] = NO_LINEAGE if lineage is None else lineage
        new['removed'] = False

        self.agents = np.concatenate([self.agents, new])
        self.next_uid += n
        return uids

    def commit_removals(self) -> int:
        """Drop every individual flagged `removed`. Returns the number dropped."""
        flagged = self.agents['removed']
        n_removed = int(flagged.sum())
        if n_removed:
            self.agents = self.agents[~flagged]
        return n_removed

    def age_all(self) -> None:
        """Advance every survivor's age by one generation."""
        self.agents['age'] += 1

    def index_of(self, uids: np.ndarray) -> np.ndarray:
        """Row index of each uid, or -1 for individuals no longer alive."""
        uids = np.asarray(uids, dtype=np.int64)
        live = self.agents['uid']
        if len(live) == 0:
            return np.full(len(uids), -1, dtype=np.int64)
        pos = np.minimum(np.searchsorted(live, uids), len(live) - 1)
        return np.where(live[pos] == uids, pos, -1).astype(np.int64)

    def copy(self) -> 'Population':
        return Population(
            side=self.side,
            cutoff=self.cutoff,
            agents=self.agents.copy(),
            generation=self.generation,
            next_uid=self.next_uid,
        )


# ═══════════════════════════════════════════════════════════════════════
# INITIALIZATION
# ═══════════════════════════════════════════════════════════════════════

def initialize_population(
    n_initial: int,
    side: float,
    cutoff: int,
    boundary_radius: float,
    rng: np.random.Generator,
) -> Population:
    """Create the generation-1 founders.

    Positions are drawn from a 2-D Gaussian centred on (L/2, L/2) with
    standard deviation 2r on each axis, then wrapped onto the torus. All
    founders start at age 0 with the marker unset.

    Args:
        n_initial: N₀, number of founders.
        side: Habitat side length L.
        cutoff: Size cutoff C.
        boundary_radius: Kernel boundary radius r.
        rng: Run random stream.

    Returns:
        Population at generation 1.
    """
    pop = Population(side=side, cutoff=cutoff, generation=1)
    centre = side / 2.0
    xy = rng.normal(centre, 2.0 * boundary_radius, size=(n_initial, 2))
    pop.add(xy[:, 0], xy[:, 1])
    return pop
