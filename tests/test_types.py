"""Tests for colonization_sim.types — enums and the agent dtype."""

import numpy as np

from colonization_sim.types import (
    AGENT_DTYPE,
    GenerationRecord,
    Phase,
    RunOutcome,
    TrackerState,
    allocate_agents,
)


def test_agent_fields():
    assert set(AGENT_DTYPE.names) == {
        'uid', 'x', 'y', 'age', 'birth_gen', 'marker', 'lineage', 'removed',
    }
    assert AGENT_DTYPE['x'] == np.float64
    assert AGENT_DTYPE['uid'] == np.int64


def test_allocate_zeroed():
    agents = allocate_agents(5)
    assert agents.shape == (5,)
    assert agents.dtype == AGENT_DTYPE
    assert not agents['removed'].any()
    assert np.all(agents['lineage'] == 0)


def test_terminal_outcomes():
    assert not RunOutcome.CONTINUING.terminal
    assert RunOutcome.SUCCESS.terminal
    assert RunOutcome.FAILURE_EXHAUSTED.terminal
    assert RunOutcome.SAFETY_TIMEOUT.terminal


def test_phase_order():
    assert list(Phase) == sorted(Phase)
    assert Phase.INIT < Phase.REPRODUCE < Phase.REGULATE < Phase.MEASURE < Phase.CHECK
    assert TrackerState.SEARCHING == 0


def test_generation_record_defaults():
    rec = GenerationRecord(generation=1, population_size=100, core_radius=3.2, diversity=0.0)
    assert rec.n_offspring == 0
    assert rec.n_removed == 0
    assert rec.attempt == 0
