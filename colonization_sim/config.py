"""Configuration system for colonization_sim.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → sweep overrides

Every configuration error is fatal at startup: `validate_config` raises
ValueError before a single generation runs.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Run timing and control."""
    seed: int = 42
    n_initial: int = 100           # N₀ founders at generation 1
    cutoff: int = 1000             # C: stop once population size exceeds this
    side: float = 100.0            # L: periodic habitat side length
    max_generations: int = 10000   # Safety bound (SAFETY_TIMEOUT)


@dataclass
class KernelSection:
    """Hybrid dispersal kernel.

    Uniform on [0, r] with mass p_short, Pareto tail ∝ x^-(mu+1) beyond r.
    r doubles as the density-regulation interaction radius.
    """
    p_short: float = 0.0           # p ∈ [0, 1)
    boundary_radius: float = 1.0   # r > 0
    mu: float = 1.5                # tail exponent > 0


@dataclass
class PopulationSection:
    """Reproduction and regulation."""
    offspring_mean: float = 1.0         # λ: Poisson mean per parent per generation
    carrying_capacity: int = 10         # K: newborn culled at ≥ K neighbours within r
    adult_mortality: float = 0.0        # Per-generation death probability (age > 0)
    marker_mutation_rate: float = 0.0   # Per-offspring probability the marker is set


@dataclass
class TrackingSection:
    """Saturation tracker and restart protocol."""
    enabled: bool = False
    min_isolated: int = 1           # M: cohort size needed to start tracking
    isolation_factor: float = 10.0  # Isolation radius = isolation_factor × r
    max_failures: int = 3           # Restart budget
    track_diversity: bool = False   # Also record local diversity rows
    neighbors_factor: int = 2       # Local diversity over neighbors_factor × K nearest


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    generation_log: bool = True
    write_tracking: bool = True
    save_checkpoint: bool = False


@dataclass
class SimulationConfig:
    """Complete simulation configuration.

    Load from YAML via `load_config()`. Sections map 1:1 to YAML top-level keys.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    kernel: KernelSection = field(default_factory=KernelSection)
    population: PopulationSection = field(default_factory=PopulationSection)
    tracking: TrackingSection = field(default_factory=TrackingSection)
    output: OutputSection = field(default_factory=OutputSection)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict, suitable for yaml.safe_dump."""
        return dataclasses.asdict(self)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

SECTION_MAP = {
    'simulation': SimulationSection,
    'kernel': KernelSection,
    'population': PopulationSection,
    'tracking': TrackingSection,
    'output': OutputSection,
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Args:
        base: Base dictionary (modified in place).
        override: Override dictionary.

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def config_from_dict(data: Dict) -> SimulationConfig:
    """Convert a merged YAML dict to a SimulationConfig (no validation)."""
    sections = {}
    for key, cls in SECTION_MAP.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return SimulationConfig(**sections)


def validate_config(config: SimulationConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure.

    Checks:
      - Kernel parameters (mu > 0, p ∈ [0, 1), r > 0)
      - Cutoff strictly above the founding population
      - Positive habitat, non-negative rates, probabilities in [0, 1]
      - Tracking thresholds
    """
    sim = config.simulation
    ker = config.kernel
    pop = config.population
    trk = config.tracking

    if ker.mu <= 0:
        raise ValueError(f"kernel.mu must be > 0, got {ker.mu}")
    if not (0.0 <= ker.p_short < 1.0):
        raise ValueError(
            f"kernel.p_short must be in [0, 1), got {ker.p_short}"
        )
    if ker.boundary_radius <= 0:
        raise ValueError(
            f"kernel.boundary_radius must be > 0, got {ker.boundary_radius}"
        )

    if sim.seed < 0:
        raise ValueError("simulation.seed must be non-negative")
    if sim.n_initial < 1:
        raise ValueError(
            f"simulation.n_initial must be >= 1, got {sim.n_initial}"
        )
    if sim.cutoff <= sim.n_initial:
        raise ValueError(
            f"simulation.cutoff ({sim.cutoff}) must be > "
            f"n_initial ({sim.n_initial})"
        )
    if sim.side <= 0:
        raise ValueError(f"simulation.side must be > 0, got {sim.side}")
    if sim.max_generations < 1:
        raise ValueError(
            f"simulation.max_generations must be >= 1, got {sim.max_generations}"
        )

    if pop.offspring_mean < 0:
        raise ValueError(
            f"population.offspring_mean must be >= 0, got {pop.offspring_mean}"
        )
    if pop.carrying_capacity < 1:
        raise ValueError(
            f"population.carrying_capacity must be >= 1, "
            f"got {pop.carrying_capacity}"
        )
    for name in ('adult_mortality', 'marker_mutation_rate'):
        value = getattr(pop, name)
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"population.{name} must be in [0, 1], got {value}")

    if trk.min_isolated < 1:
        raise ValueError(
            f"tracking.min_isolated must be >= 1, got {trk.min_isolated}"
        )
    if trk.isolation_factor <= 0:
        raise ValueError(
            f"tracking.isolation_factor must be > 0, got {trk.isolation_factor}"
        )
    if trk.max_failures < 1:
        raise ValueError(
            f"tracking.max_failures must be >= 1, got {trk.max_failures}"
        )
    if trk.neighbors_factor < 1:
        raise ValueError(
            f"tracking.neighbors_factor must be >= 1, got {trk.neighbors_factor}"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    sweep_overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → sweep overrides.
    Each layer overrides only the fields it specifies.

    Args:
        base_path: Path to base configuration YAML.
        scenario_path: Optional scenario override YAML.
        sweep_overrides: Optional dict of parameter sweep overrides.

    Returns:
        Validated SimulationConfig.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if not scenario_path.exists():
            raise FileNotFoundError(f"Scenario file not found: {scenario_path}")
        with open(scenario_path) as f:
            scenario = yaml.safe_load(f) or {}
        deep_merge(config_dict, scenario)

    if sweep_overrides is not None:
        deep_merge(config_dict, sweep_overrides)

    config = config_from_dict(config_dict)
    validate_config(config)
    return config


def default_config() -> SimulationConfig:
    """Return a SimulationConfig with all default values."""
    config = SimulationConfig()
    validate_config(config)
    return config
