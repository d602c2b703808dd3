"""Tests for colonization_sim.config — configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from colonization_sim.config import (
    KernelSection,
    OutputSection,
    PopulationSection,
    SimulationConfig,
    SimulationSection,
    TrackingSection,
    config_from_dict,
    deep_merge,
    default_config,
    load_config,
    validate_config,
)


# ── deep_merge tests ──────────────────────────────────────────────────

class TestDeepMerge:
    def test_simple_override(self):
        result = deep_merge({'a': 1, 'b': 2}, {'b': 3})
        assert result == {'a': 1, 'b': 3}

    def test_nested_merge(self):
        base = {'kernel': {'mu': 1.5, 'p_short': 0.0}, 'seed': 1}
        result = deep_merge(base, {'kernel': {'p_short': 0.5}})
        assert result == {'kernel': {'mu': 1.5, 'p_short': 0.5}, 'seed': 1}

    def test_new_key(self):
        assert deep_merge({'a': 1}, {'b': 2}) == {'a': 1, 'b': 2}

    def test_override_dict_with_scalar(self):
        assert deep_merge({'a': {'nested': 1}}, {'a': 'replaced'}) == {'a': 'replaced'}

    def test_modifies_base_in_place(self):
        base = {'a': {'b': 1}}
        deep_merge(base, {'a': {'c': 2}})
        assert base == {'a': {'b': 1, 'c': 2}}


# ── default_config tests ─────────────────────────────────────────────

class TestDefaultConfig:
    def test_creates_valid_config(self):
        config = default_config()
        assert isinstance(config, SimulationConfig)

    def test_default_values(self):
        config = default_config()
        assert config.simulation.seed == 42
        assert config.simulation.n_initial == 100
        assert config.simulation.cutoff == 1000
        assert config.kernel.p_short == 0.0
        assert config.kernel.boundary_radius == 1.0
        assert config.kernel.mu == 1.5
        assert config.population.carrying_capacity == 10
        assert config.tracking.enabled is False
        assert config.tracking.neighbors_factor == 2

    def test_to_dict_round_trips(self):
        config = default_config()
        assert config_from_dict(config.to_dict()) == config

    def test_to_dict_is_yaml_safe(self):
        text = yaml.safe_dump(default_config().to_dict())
        assert 'boundary_radius' in text


# ── load_config tests ────────────────────────────────────────────────

class TestLoadConfig:
    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "base.yaml"
        path.write_text(yaml.safe_dump({
            'simulation': {'seed': 7, 'cutoff': 500},
            'kernel': {'p_short': 0.3},
        }))
        config = load_config(path)
        assert config.simulation.seed == 7
        assert config.simulation.cutoff == 500
        assert config.kernel.p_short == 0.3
        assert config.kernel.mu == 1.5

    def test_scenario_then_sweep(self, tmp_path):
        base = tmp_path / "base.yaml"
        base.write_text(yaml.safe_dump({'simulation': {'seed': 1}}))
        scenario = tmp_path / "scenario.yaml"
        scenario.write_text(yaml.safe_dump({
            'simulation': {'seed': 2},
            'tracking': {'enabled': True},
        }))
        config = load_config(base, scenario, {'simulation': {'seed': 3}})
        assert config.simulation.seed == 3
        assert config.tracking.enabled is True

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "base.yaml"
        path.write_text(yaml.safe_dump({
            'kernel': {'mu': 2.0, 'shape': 'lognormal'},
            'extras': {'a': 1},
        }))
        assert load_config(path).kernel.mu == 2.0

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == default_config()

    def test_file_not_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_scenario_not_found(self, tmp_path):
        base = tmp_path / "base.yaml"
        base.write_text("{}")
        with pytest.raises(FileNotFoundError, match="Scenario"):
            load_config(base, tmp_path / "missing.yaml")

    def test_invalid_values_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({'kernel': {'mu': -1.0}}))
        with pytest.raises(ValueError, match="mu"):
            load_config(path)

    def test_load_real_configs(self):
        root = Path(__file__).parent.parent / "configs"
        config = load_config(root / "default.yaml")
        assert config == default_config()

        sat = load_config(root / "default.yaml", root / "scenarios" / "saturation.yaml")
        assert sat.tracking.enabled is True
        assert sat.kernel.p_short == 0.9
        assert sat.kernel.boundary_radius == 1.0


# ── Validation tests ──────────────────────────────────────────────────

def _config(**sections):
    return SimulationConfig(**sections)


class TestValidation:
    @pytest.mark.parametrize("kernel, match", [
        (KernelSection(mu=0.0), "mu"),
        (KernelSection(p_short=1.0), "p_short"),
        (KernelSection(p_short=-0.1), "p_short"),
        (KernelSection(boundary_radius=0.0), "boundary_radius"),
    ])
    def test_kernel(self, kernel, match):
        with pytest.raises(ValueError, match=match):
            validate_config(_config(kernel=kernel))

    def test_cutoff_must_exceed_founders(self):
        with pytest.raises(ValueError, match="cutoff"):
            validate_config(_config(simulation=SimulationSection(n_initial=100, cutoff=100)))

    @pytest.mark.parametrize("sim, match", [
        (SimulationSection(seed=-1), "seed"),
        (SimulationSection(n_initial=0), "n_initial"),
        (SimulationSection(side=0.0), "side"),
        (SimulationSection(max_generations=0), "max_generations"),
    ])
    def test_simulation(self, sim, match):
        with pytest.raises(ValueError, match=match):
            validate_config(_config(simulation=sim))

    @pytest.mark.parametrize("pop, match", [
        (PopulationSection(offspring_mean=-1.0), "offspring_mean"),
        (PopulationSection(carrying_capacity=0), "carrying_capacity"),
        (PopulationSection(adult_mortality=1.5), "adult_mortality"),
        (PopulationSection(marker_mutation_rate=-0.1), "marker_mutation_rate"),
    ])
    def test_population(self, pop, match):
        with pytest.raises(ValueError, match=match):
            validate_config(_config(population=pop))

    @pytest.mark.parametrize("trk, match", [
        (TrackingSection(min_isolated=0), "min_isolated"),
        (TrackingSection(isolation_factor=0.0), "isolation_factor"),
        (TrackingSection(max_failures=0), "max_failures"),
        (TrackingSection(neighbors_factor=0), "neighbors_factor"),
    ])
    def test_tracking(self, trk, match):
        with pytest.raises(ValueError, match=match):
            validate_config(_config(tracking=trk))

    def test_zero_offspring_mean_is_valid(self):
        validate_config(_config(population=PopulationSection(offspring_mean=0.0)))

    def test_output_section_not_validated(self):
        validate_config(_config(output=OutputSection(directory="")))
