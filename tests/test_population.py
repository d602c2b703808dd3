"""Tests for colonization_sim.population — individuals, wrap, founders.

Tests:
  1. Periodic wrap lands in [0, L) and is congruent mod L per axis
  2. Newborn bookkeeping (uids, age, birth generation)
  3. Removal commit and identity lookup
  4. Gaussian founder initialisation
"""

import numpy as np
import pytest

from colonization_sim.population import (
    Population,
    initialize_population,
    wrap_periodic,
)
from colonization_sim.types import AGENT_DTYPE, MARKER_UNSET, NO_LINEAGE


# ═══════════════════════════════════════════════════════════════════════
# PERIODIC WRAP
# ═══════════════════════════════════════════════════════════════════════

class TestWrapPeriodic:
    def test_inside_unchanged(self):
        x = np.array([0.0, 3.5, 99.999])
        np.testing.assert_allclose(wrap_periodic(x, 100.0), x)

    def test_random_displacements(self):
        rng = np.random.default_rng(0)
        side = 37.5
        start = rng.uniform(0, side, size=(5000, 2))
        disp = rng.normal(0, 200.0, size=(5000, 2))
        raw = start + disp
        wrapped = wrap_periodic(raw, side)

        assert np.all(wrapped >= 0.0)
        assert np.all(wrapped < side)
        # Congruent mod L on each axis independently
        k = (raw - wrapped) / side
        np.testing.assert_allclose(k, np.round(k), atol=1e-9)

    def test_tiny_negative_does_not_map_to_side(self):
        out = wrap_periodic(np.array([-1e-17, -0.0]), 100.0)
        assert np.all(out < 100.0)
        assert np.all(out >= 0.0)

    def test_exact_multiple(self):
        np.testing.assert_allclose(wrap_periodic(np.array([100.0, -200.0]), 100.0), [0.0, 0.0])


# ═══════════════════════════════════════════════════════════════════════
# POPULATION
# ═══════════════════════════════════════════════════════════════════════

class TestPopulation:
    def test_empty(self):
        pop = Population(side=10.0, cutoff=100)
        assert pop.size == 0
        assert pop.agents.dtype == AGENT_DTYPE
        assert pop.positions().shape == (0, 2)

    def test_add_newborns(self):
        pop = Population(side=10.0, cutoff=100, generation=4)
        uids = pop.add(np.array([1.0, 12.0]), np.array([-1.0, 3.0]))
        np.testing.assert_array_equal(uids, [0, 1])
        assert pop.size == 2
        assert pop.next_uid == 2
        np.testing.assert_allclose(pop.agents['x'], [1.0, 2.0])
        np.testing.assert_allclose(pop.agents['y'], [9.0, 3.0])
        assert np.all(pop.agents['age'] == 0)
        assert np.all(pop.agents['birth_gen'] == 4)
        assert np.all(pop.agents['marker'] == MARKER_UNSET)
        assert np.all(pop.agents['lineage'] == NO_LINEAGE)
        assert not pop.agents['removed'].any()

    def test_uids_keep_increasing_after_removal(self):
        pop = Population(side=10.0, cutoff=100)
        pop.add(np.ones(3), np.ones(3))
        pop.agents['removed'][2] = True
        assert pop.commit_removals() == 1
        uids = pop.add(np.ones(2), np.ones(2))
        np.testing.assert_array_equal(uids, [3, 4])
        assert np.all(np.diff(pop.agents['uid']) > 0)

    def test_commit_removals(self):
        pop = Population(side=10.0, cutoff=100)
        pop.add(np.arange(5.0), np.zeros(5))
        pop.agents['removed'][[1, 3]] = True
        assert pop.commit_removals() == 2
        np.testing.assert_array_equal(pop.agents['uid'], [0, 2, 4])
        assert pop.commit_removals() == 0

    def test_index_of(self):
        pop = Population(side=10.0, cutoff=100)
        pop.add(np.arange(5.0), np.zeros(5))
        pop.agents['removed'][1] = True
        pop.commit_removals()
        np.testing.assert_array_equal(pop.index_of(np.array([0, 1, 4, 9])), [0, -1, 3, -1])

    def test_index_of_empty(self):
        pop = Population(side=10.0, cutoff=100)
        np.testing.assert_array_equal(pop.index_of(np.array([0, 1])), [-1, -1])

    def test_age_all(self):
        pop = Population(side=10.0, cutoff=100)
        pop.add(np.ones(3), np.ones(3))
        pop.age_all()
        pop.age_all()
        assert np.all(pop.agents['age'] == 2)

    def test_copy_is_independent(self):
        pop = Population(side=10.0, cutoff=100)
        pop.add(np.ones(3), np.ones(3))
        clone = pop.copy()
        clone.agents['x'][:] = 5.0
        clone.generation = 9
        assert np.all(pop.agents['x'] == 1.0)
        assert pop.generation == 1
        assert clone.next_uid == pop.next_uid


# ═══════════════════════════════════════════════════════════════════════
# FOUNDERS
# ═══════════════════════════════════════════════════════════════════════

class TestInitializePopulation:
    def test_founders(self):
        rng = np.random.default_rng(42)
        pop = initialize_population(
            n_initial=4000, side=100.0, cutoff=10000, boundary_radius=1.0, rng=rng,
        )
        assert pop.size == 4000
        assert pop.generation == 1
        assert np.all(pop.agents['age'] == 0)
        assert np.all(pop.agents['marker'] == MARKER_UNSET)
        pos = pop.positions()
        assert np.all((pos >= 0.0) & (pos < 100.0))
        np.testing.assert_allclose(pos.mean(axis=0), [50.0, 50.0], atol=0.2)
        np.testing.assert_allclose(pos.std(axis=0), [2.0, 2.0], rtol=0.05)

    def test_wide_gaussian_is_wrapped(self):
        rng = np.random.default_rng(1)
        pop = initialize_population(
            n_initial=500, side=5.0, cutoff=1000, boundary_radius=3.0, rng=rng,
        )
        pos = pop.positions()
        assert np.all((pos >= 0.0) & (pos < 5.0))

    def test_reproducible(self):
        a = initialize_population(50, 10.0, 100, 1.0, np.random.default_rng(5))
        b = initialize_population(50, 10.0, 100, 1.0, np.random.default_rng(5))
        np.testing.assert_array_equal(a.agents, b.agents)
