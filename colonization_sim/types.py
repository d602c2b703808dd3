"""Core data types for colonization_sim.

This module is the SINGLE SOURCE OF TRUTH for:
  - AGENT_DTYPE: NumPy structured array dtype for individuals
  - RunOutcome, TrackerState, Phase enumerations
  - Inter-module data transfer objects (GenerationRecord)

All modules import these types from here. No other module defines agent fields.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class RunOutcome(Enum):
    """Result of one generation loop.

    CONTINUING is returned by a restart: the loop goes back to generation 1
    from the checkpoint. The other three are terminal.
    """
    CONTINUING        = "continuing"
    SUCCESS           = "success"
    FAILURE_EXHAUSTED = "failure_exhausted"
    SAFETY_TIMEOUT    = "safety_timeout"

    @property
    def terminal(self) -> bool:
        return self is not RunOutcome.CONTINUING


class TrackerState(IntEnum):
    """Saturation tracker lifecycle.

    SEARCHING → FOUND  (≥ M isolated individuals at some generation)
    SEARCHING → GIVEN_UP (failure budget exhausted at cutoff)
    """
    SEARCHING = 0
    FOUND     = 1
    GIVEN_UP  = 2


class Phase(IntEnum):
    """Generation controller phases, in execution order."""
    INIT       = 0   # generation 1 only: founders + checkpoint
    REPRODUCE  = 1
    REGULATE   = 2
    MEASURE    = 3
    CHECK      = 4
    TERMINATED = 5


# ═══════════════════════════════════════════════════════════════════════
# MARKER / LINEAGE CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

MARKER_UNSET = 0
MARKER_SET = 1
NO_LINEAGE = 0   # lineage labels for tracked founders start at 1


# ═══════════════════════════════════════════════════════════════════════
# AGENT_DTYPE: Canonical structured array for individuals
# ═══════════════════════════════════════════════════════════════════════

AGENT_DTYPE = np.dtype([
    # --- Identity ---
    ('uid',        np.int64),     #  8 B: stable identity, ascending by creation

    # --- Spatial (REPRODUCTION writes) ---
    ('x',          np.float64),   #  8 B: position X in [0, L)
    ('y',          np.float64),   #  8 B: position Y in [0, L)

    # --- Life history ---
    ('age',        np.int32),     #  4 B: age in generations (0 = newborn)
    ('birth_gen',  np.int32),     #  4 B: generation of birth

    # --- Genetics ---
    ('marker',     np.int8),      #  1 B: binary marker (0 unset / 1 set)
    ('lineage',    np.int32),     #  4 B: founder label (0 = untracked)

    # --- Administrative ---
    ('removed',    np.bool_),     #  1 B: flagged for removal this phase
])


def allocate_agents(n: int) -> np.ndarray:
    """Allocate a zeroed agent array.

    Args:
        n: Number of rows.

    Returns:
        Zeroed structured array of shape (n,) with AGENT_DTYPE.
    """
    return np.zeros(n, dtype=AGENT_DTYPE)


# ═══════════════════════════════════════════════════════════════════════
# INTER-MODULE DATA TRANSFER OBJECTS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class GenerationRecord:
    """One row of the generation log sink."""
    generation: int
    population_size: int
    core_radius: float
    diversity: float
    n_offspring: int = 0
    n_removed: int = 0
    attempt: int = 0              # 0 = first attempt, k = after k restarts
    lineage_diversity: float = 0.0   # Simpson over tracked founder lineages
