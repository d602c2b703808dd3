"""Seeded random stream for reproducible runs.

A run owns exactly one numpy Generator (PCG64). Restarts rewind it to the
checkpointed state and re-seed it with the k-th seed drawn from there, so a
run is reproducible from its master seed plus the number of restarts,
without any wall-clock entropy.
"""

from __future__ import annotations

from typing import Any, Dict

import numpy as np

# Restart seeds are drawn from [0, 2**63)
SEED_UPPER = np.iinfo(np.int64).max


def create_rng(seed: int) -> np.random.Generator:
    """Create the run's random stream.

    Args:
        seed: Non-negative integer seed.

    Returns:
        PCG64-backed Generator.

    Raises:
        ValueError: If seed is negative.
    """
    if seed < 0:
        raise ValueError(f"seed must be non-negative, got {seed}")
    return np.random.default_rng(seed)


def draw_restart_seed(rng: np.random.Generator, restart_number: int = 1) -> int:
    """Seed for the restart_number-th restart, drawn from the current stream.

    Deterministic given the stream state; distinct restart numbers read
    distinct draws of the same stream.
    """
    if restart_number < 1:
        raise ValueError(f"restart_number must be >= 1, got {restart_number}")
    return int(rng.integers(0, SEED_UPPER, size=restart_number)[-1])


def reseed(rng: np.random.Generator, seed: int) -> None:
    """Re-seed an existing Generator in place.

    Holders of the generator keep their reference; only the bit generator
    state is replaced.
    """
    rng.bit_generator.state = np.random.PCG64(seed).state


def rng_state_snapshot(rng: np.random.Generator) -> Dict[str, Any]:
    """Capture full RNG state for checkpointing.

    Returns a deep copy of the bit generator state dict, which can be
    serialized and restored to resume a stream exactly.
    """
    state = rng.bit_generator.state
    return {
        'bit_generator': state['bit_generator'],
        'state': dict(state['state']),
        'has_uint32': state['has_uint32'],
        'uinteger': state['uinteger'],
    }


def restore_rng_state(rng: np.random.Generator, state: Dict[str, Any]) -> None:
    """Restore RNG state from a checkpoint snapshot.

    Raises:
        ValueError: If the snapshot belongs to a different bit generator.
    """
    expected = rng.bit_generator.state['bit_generator']
    if state.get('bit_generator') != expected:
        raise ValueError(
            f"Cannot restore {state.get('bit_generator')!r} state "
            f"into a {expected!r} generator"
        )
    rng.bit_generator.state = state
