"""Generation controller: the discrete-generation colonization loop.

One generation is a fixed, ordered pipeline of plain phase functions over a
RunContext:

  generation 1:  INIT (founders, checkpoint)        → MEASURE → track → age → CHECK
  generation g:  REPRODUCE → REGULATE (→ mortality) → MEASURE → track → age → CHECK

MEASURE computes the diversity proxy H_G and the core radius
    ℓ = sqrt(N / (π · max_density)),   max_density = K / (π r²)
and emits one row to the log sink.

CHECK ends the loop when the population size exceeds the cutoff C (the
tracker decides between SUCCESS, restart and FAILURE_EXHAUSTED) or when the
safety bound on generations is hit (SAFETY_TIMEOUT).

A restart restores the generation-1 checkpoint (population and random
stream), re-seeds the stream with the k-th seed drawn from the checkpointed
state, and re-enters the loop at generation 1 with the same founders. The
seed therefore depends only on the master seed and the restart count.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

import numpy as np

from colonization_sim.checkpoint import CheckpointStore
from colonization_sim.config import SimulationConfig, default_config, validate_config
from colonization_sim.diversity import lineage_diversity, population_diversity
from colonization_sim.output import RunWriter
from colonization_sim.population import Population, initialize_population
from colonization_sim.regulation import apply_adult_mortality, regulate_density
from colonization_sim.reproduction import reproduce
from colonization_sim.rng import create_rng, draw_restart_seed, reseed
from colonization_sim.spatial import SpatialIndex
from colonization_sim.tracking import SaturationTracker
from colonization_sim.types import (
    GenerationRecord,
    Phase,
    RunOutcome,
    TrackerState,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
# DERIVED QUANTITIES
# ═══════════════════════════════════════════════════════════════════════

def max_density(carrying_capacity: int, boundary_radius: float) -> float:
    """Density at which a newborn is always culled: K per disc of radius r."""
    return carrying_capacity / (math.pi * boundary_radius**2)


def core_radius(population_size: int, density: float) -> float:
    """Radius of a disc holding population_size individuals at the given density."""
    return math.sqrt(population_size / (math.pi * density))


# ═══════════════════════════════════════════════════════════════════════
# RUN CONTEXT & RESULT
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class RunContext:
    """Everything a phase function may read or mutate."""
    config: SimulationConfig
    rng: np.random.Generator
    interaction_index: SpatialIndex
    isolation_index: SpatialIndex
    pop: Optional[Population] = None
    tracker: Optional[SaturationTracker] = None
    store: CheckpointStore = field(default_factory=CheckpointStore)
    checkpoint_handle: Optional[int] = None
    founders: Optional[np.ndarray] = None
    writer: Optional[RunWriter] = None
    phase: Phase = Phase.INIT
    attempt: int = 0
    seeds: List[int] = field(default_factory=list)
    records: List[GenerationRecord] = field(default_factory=list)
    n_offspring: int = 0
    n_removed: int = 0


@dataclass
class SimulationResult:
    """Outcome and measurements of one run."""
    outcome: RunOutcome
    final_generation: int = 0
    final_size: int = 0
    n_failures: int = 0
    n_restarts: int = 0
    seeds: List[int] = field(default_factory=list)
    records: List[GenerationRecord] = field(default_factory=list)
    tracker_state: Optional[TrackerState] = None
    tracked_uids: Optional[np.ndarray] = None
    selected_at: Optional[int] = None
    neighbor_matrix: Optional[np.ndarray] = None
    diversity_matrix: Optional[np.ndarray] = None
    agents: Optional[np.ndarray] = None

    def attempt_records(self, attempt: int) -> List[GenerationRecord]:
        """Generation rows of one attempt (0 = first, k = after k restarts)."""
        return [r for r in self.records if r.attempt == attempt]


# ═══════════════════════════════════════════════════════════════════════
# PHASES
# ═══════════════════════════════════════════════════════════════════════

def phase_init(ctx: RunContext) -> None:
    """Generation 1: create founders and checkpoint them when tracking."""
    sim = ctx.config.simulation
    ker = ctx.config.kernel
    ctx.phase = Phase.INIT
    if ctx.founders is not None:
        ctx.pop = Population(side=sim.side, cutoff=sim.cutoff, generation=1)
        ctx.pop.add(ctx.founders[:, 0], ctx.founders[:, 1])
    else:
        ctx.pop = initialize_population(
            n_initial=sim.n_initial,
            side=sim.side,
            cutoff=sim.cutoff,
            boundary_radius=ker.boundary_radius,
            rng=ctx.rng,
        )
    ctx.n_offspring = 0
    ctx.n_removed = 0

    if ctx.tracker is not None:
        ctx.checkpoint_handle = ctx.store.save(ctx.pop, ctx.rng)
        if ctx.writer is not None and ctx.config.output.save_checkpoint:
            ctx.store.dump(ctx.checkpoint_handle, ctx.writer.checkpoint_path)
        logger.debug("Checkpointed %d founders at generation 1", ctx.pop.size)


def phase_reproduce(ctx: RunContext) -> None:
    ctx.phase = Phase.REPRODUCE
    ctx.n_offspring = reproduce(
        ctx.pop, ctx.config.kernel, ctx.config.population, ctx.rng,
    )


def phase_regulate(ctx: RunContext) -> None:
    ctx.phase = Phase.REGULATE
    pop_cfg = ctx.config.population
    ctx.n_removed = regulate_density(
        ctx.pop, ctx.interaction_index, pop_cfg.carrying_capacity,
    )
    ctx.n_removed += apply_adult_mortality(ctx.pop, pop_cfg.adult_mortality, ctx.rng)


def phase_measure(ctx: RunContext) -> None:
    ctx.phase = Phase.MEASURE
    pop = ctx.pop
    pop_cfg = ctx.config.population
    density = max_density(pop_cfg.carrying_capacity, ctx.config.kernel.boundary_radius)
    record = GenerationRecord(
        generation=pop.generation,
        population_size=pop.size,
        core_radius=core_radius(pop.size, density),
        diversity=population_diversity(pop.agents),
        n_offspring=ctx.n_offspring,
        n_removed=ctx.n_removed,
        attempt=ctx.attempt,
        lineage_diversity=lineage_diversity(pop.agents),
    )
    ctx.records.append(record)
    if ctx.writer is not None:
        ctx.writer.write_generation(record)
    logger.debug(
        "gen %d: N=%d core_radius=%.3f H_G=%.4f (+%d/-%d)",
        record.generation, record.population_size, record.core_radius,
        record.diversity, record.n_offspring, record.n_removed,
    )


def phase_track(ctx: RunContext) -> None:
    if ctx.tracker is None:
        return
    was_searching = ctx.tracker.state is TrackerState.SEARCHING
    ctx.tracker.step(ctx.pop, ctx.interaction_index, ctx.isolation_index)
    if was_searching and ctx.tracker.state is TrackerState.FOUND:
        logger.info(
            "Tracking %d isolated founders from generation %d",
            ctx.tracker.n_members, ctx.tracker.selected_at,
        )


def phase_age(ctx: RunContext) -> None:
    ctx.pop.age_all()


def phase_check(ctx: RunContext) -> Optional[RunOutcome]:
    """Return an outcome when the loop must stop, None to continue."""
    ctx.phase = Phase.CHECK
    pop = ctx.pop
    if pop.size > pop.cutoff:
        if ctx.tracker is None:
            return RunOutcome.SUCCESS
        return ctx.tracker.on_cutoff()
    if pop.generation >= ctx.config.simulation.max_generations:
        return RunOutcome.SAFETY_TIMEOUT
    pop.generation += 1
    return None


FOUNDING_PHASES: Sequence[Callable[[RunContext], None]] = (
    phase_init, phase_measure, phase_track, phase_age,
)
GENERATION_PHASES: Sequence[Callable[[RunContext], None]] = (
    phase_reproduce, phase_regulate, phase_measure, phase_track, phase_age,
)


# ═══════════════════════════════════════════════════════════════════════
# CONTROLLER
# ═══════════════════════════════════════════════════════════════════════

class GenerationController:
    """Drives the phase pipeline, restarts and termination for one run."""

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        founders: Optional[np.ndarray] = None,
        writer: Optional[RunWriter] = None,
    ):
        """
        Args:
            config: Run configuration (validated here; errors are fatal).
            founders: Optional (n, 2) founder positions replacing the
                Gaussian initialisation.
            writer: Optional output sink.
        """
        if config is None:
            config = default_config()
        validate_config(config)
        if founders is not None:
            founders = np.asarray(founders, dtype=np.float64)
            if founders.ndim != 2 or founders.shape[1] != 2 or len(founders) < 1:
                raise ValueError("founders must be a non-empty (n, 2) array")
            if len(founders) >= config.simulation.cutoff:
                raise ValueError(
                    f"cutoff ({config.simulation.cutoff}) must exceed the "
                    f"number of founders ({len(founders)})"
                )

        r = config.kernel.boundary_radius
        side = config.simulation.side
        tracker = None
        if config.tracking.enabled:
            tracker = SaturationTracker.from_config(
                config.tracking, config.population.carrying_capacity,
            )

        self.ctx = RunContext(
            config=config,
            rng=create_rng(config.simulation.seed),
            interaction_index=SpatialIndex(side, r),
            isolation_index=SpatialIndex(side, config.tracking.isolation_factor * r),
            tracker=tracker,
            founders=founders,
            writer=writer,
            seeds=[config.simulation.seed],
        )

    @property
    def population(self) -> Optional[Population]:
        return self.ctx.pop

    @property
    def tracker(self) -> Optional[SaturationTracker]:
        return self.ctx.tracker

    def step(self) -> Optional[RunOutcome]:
        """Run one full generation. Returns an outcome when the loop stops."""
        ctx = self.ctx
        phases = FOUNDING_PHASES if ctx.pop is None else GENERATION_PHASES
        for phase in phases:
            phase(ctx)
        return phase_check(ctx)

    def restart(self) -> None:
        """Restore the generation-1 checkpoint and re-seed the stream."""
        ctx = self.ctx
        if ctx.checkpoint_handle is None:
            raise RuntimeError("restart requested but no checkpoint was taken")
        ctx.pop = ctx.store.restore(ctx.checkpoint_handle)
        ctx.store.restore_rng(ctx.checkpoint_handle, ctx.rng)
        new_seed = draw_restart_seed(ctx.rng, ctx.attempt + 1)
        reseed(ctx.rng, new_seed)
        ctx.seeds.append(new_seed)
        ctx.tracker.reset_for_restart()
        ctx.attempt += 1
        logger.warning(
            "No isolated cohort before cutoff (failure %d/%d); restarting from "
            "generation 1 with seed %d",
            ctx.tracker.n_failures, ctx.tracker.max_failures, new_seed,
        )

    def _replay_generation_one(self) -> Optional[RunOutcome]:
        """After a restart, rerun the founding generation on restored founders."""
        ctx = self.ctx
        ctx.n_offspring = 0
        ctx.n_removed = 0
        for phase in (phase_measure, phase_track, phase_age):
            phase(ctx)
        return phase_check(ctx)

    def run(self) -> SimulationResult:
        """Run until a terminal outcome."""
        ctx = self.ctx
        if ctx.writer is not None:
            ctx.writer.write_parameters(ctx.config.to_dict())

        outcome = self.step()
        while True:
            if outcome is None:
                outcome = self.step()
                continue
            if outcome is RunOutcome.CONTINUING:
                self.restart()
                outcome = self._replay_generation_one()
                continue
            break

        ctx.phase = Phase.TERMINATED
        if ctx.checkpoint_handle is not None:
            ctx.store.discard(ctx.checkpoint_handle)
            ctx.checkpoint_handle = None

        result = self._result(outcome)
        if ctx.writer is not None and ctx.tracker is not None \
                and ctx.config.output.write_tracking and result.selected_at is not None:
            ctx.writer.write_tracking(
                result.neighbor_matrix, result.selected_at,
                result.diversity_matrix if ctx.tracker.track_diversity else None,
            )

        log = logger.warning if outcome is not RunOutcome.SUCCESS else logger.info
        log(
            "Run finished: %s at generation %d (N=%d, failures=%d, restarts=%d)",
            outcome.name, result.final_generation, result.final_size,
            result.n_failures, result.n_restarts,
        )
        return result

    def _result(self, outcome: RunOutcome) -> SimulationResult:
        ctx = self.ctx
        tracker = ctx.tracker
        result = SimulationResult(
            outcome=outcome,
            final_generation=ctx.pop.generation,
            final_size=ctx.pop.size,
            n_restarts=ctx.attempt,
            seeds=list(ctx.seeds),
            records=list(ctx.records),
            agents=ctx.pop.agents.copy(),
        )
        if tracker is not None:
            result.n_failures = tracker.n_failures
            result.tracker_state = tracker.state
            result.tracked_uids = np.array(tracker.tracked_uids)
            result.selected_at = tracker.selected_at
            result.neighbor_matrix = tracker.neighbor_matrix()
            result.diversity_matrix = tracker.diversity_matrix()
        return result


def run_simulation(
    config: Optional[SimulationConfig] = None,
    founders: Optional[np.ndarray] = None,
    output_dir: Optional[str] = None,
) -> SimulationResult:
    """Run one colonization simulation.

    Args:
        config: Run configuration; defaults used if None.
        founders: Optional (n, 2) founder positions.
        output_dir: If given, write parameters, generation log and
            tracking matrices there.

    Returns:
        SimulationResult.

    Raises:
        ValueError: Invalid configuration (before any generation runs).
        CheckpointError: The generation-1 checkpoint could not be restored.
    """
    if config is None:
        config = default_config()
    if output_dir is None:
        return GenerationController(config, founders=founders).run()
    with RunWriter(output_dir, generation_log=config.output.generation_log) as writer:
        return GenerationController(config, founders=founders, writer=writer).run()
