"""Tests for colonization_sim.regulation — newborn crowding and adult mortality."""

import numpy as np

from colonization_sim.population import Population
from colonization_sim.regulation import (
    apply_adult_mortality,
    crowded_newborns,
    regulate_density,
)
from colonization_sim.spatial import SpatialIndex


def make_population(points, ages):
    points = np.asarray(points, dtype=np.float64)
    pop = Population(side=100.0, cutoff=10**6)
    pop.add(points[:, 0], points[:, 1])
    pop.agents['age'] = ages
    return pop


class TestCrowdedNewborns:
    def test_threshold_inclusive(self):
        ages = np.array([0, 0, 0, 2])
        counts = np.array([2, 3, 4, 9])
        np.testing.assert_array_equal(
            crowded_newborns(ages, counts, 3), [False, True, True, False],
        )


class TestRegulateDensity:
    def test_coincident_newborns_all_removed(self):
        """Five newborns at one point with K=3: each sees 4 others, none survive."""
        pop = make_population([[50.0, 50.0]] * 5, ages=0)
        index = SpatialIndex(100.0, 1.0)
        assert regulate_density(pop, index, 3) == 5
        assert pop.size == 0

    def test_below_threshold_kept(self):
        pop = make_population([[50.0, 50.0]] * 3, ages=0)
        assert regulate_density(pop, SpatialIndex(100.0, 1.0), 3) == 0
        assert pop.size == 3

    def test_adults_never_culled(self):
        points = [[50.0, 50.0]] * 10
        ages = np.array([1] * 9 + [0])
        pop = make_population(points, ages)
        assert regulate_density(pop, SpatialIndex(100.0, 1.0), 3) == 1
        assert pop.size == 9
        assert np.all(pop.agents['age'] == 1)

    def test_order_independent(self):
        """Result does not depend on the row order of the population."""
        rng = np.random.default_rng(11)
        points = rng.uniform(45.0, 55.0, size=(400, 2))
        ages = rng.integers(0, 2, size=400)

        pop_a = make_population(points, ages)
        regulate_density(pop_a, SpatialIndex(100.0, 1.0), 4)

        perm = rng.permutation(400)
        pop_b = make_population(points[perm], ages[perm])
        regulate_density(pop_b, SpatialIndex(100.0, 1.0), 4)

        kept_a = {tuple(p) for p in pop_a.positions()}
        kept_b = {tuple(p) for p in pop_b.positions()}
        assert kept_a == kept_b

    def test_crowding_across_periodic_edge(self):
        points = [[0.1, 50.0], [99.9, 50.0], [0.2, 50.0], [99.8, 50.0]]
        pop = make_population(points, ages=0)
        assert regulate_density(pop, SpatialIndex(100.0, 1.0), 3) == 4

    def test_empty(self):
        pop = Population(side=100.0, cutoff=10)
        assert regulate_density(pop, SpatialIndex(100.0, 1.0), 3) == 0


class TestAdultMortality:
    def test_zero_probability(self):
        pop = make_population([[1.0, 1.0]] * 10, ages=3)
        assert apply_adult_mortality(pop, 0.0, np.random.default_rng(0)) == 0
        assert pop.size == 10

    def test_certain_death_spares_newborns(self):
        pop = make_population([[1.0, 1.0]] * 6, ages=np.array([0, 1, 2, 0, 5, 1]))
        assert apply_adult_mortality(pop, 1.0, np.random.default_rng(0)) == 4
        assert np.all(pop.agents['age'] == 0)

    def test_rate(self):
        pop = make_population(np.ones((20_000, 2)), ages=1)
        removed = apply_adult_mortality(pop, 0.25, np.random.default_rng(1))
        assert abs(removed / 20_000 - 0.25) < 0.015
