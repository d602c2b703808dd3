"""Generation-1 checkpoint for the restart protocol.

A Checkpoint is an immutable full snapshot of population state (positions,
ages, markers, identities) plus the random stream state at the time it was
taken. The store hands out integer handles:

    store = CheckpointStore()
    handle = store.save(pop, rng)
    ...
    pop = store.restore(handle)

Restoring never hands back shared arrays, so a restored population can be
mutated freely and restored again. A missing or corrupted checkpoint raises
CheckpointError; the run must abort rather than continue from bad state.

Checkpoints can also be written to / read from compressed .npz files.
"""

from __future__ import annotations

import json
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np

from colonization_sim.population import Population
from colonization_sim.rng import restore_rng_state, rng_state_snapshot
from colonization_sim.types import AGENT_DTYPE


class CheckpointError(RuntimeError):
    """A checkpoint could not be saved or restored."""


@dataclass(frozen=True)
class Checkpoint:
    """Immutable population + RNG snapshot."""
    agents: np.ndarray
    generation: int
    next_uid: int
    side: float
    cutoff: int
    rng_state: Dict[str, Any]

    def __post_init__(self):
        self.agents.setflags(write=False)


class CheckpointStore:
    """In-memory checkpoint store keyed by integer handles."""

    def __init__(self):
        self._checkpoints: Dict[int, Checkpoint] = {}
        self._next_handle = 0

    def __len__(self) -> int:
        return len(self._checkpoints)

    def __contains__(self, handle: int) -> bool:
        return handle in self._checkpoints

    def save(self, pop: Population, rng: np.random.Generator) -> int:
        """Snapshot pop and rng. Returns a handle for restore()."""
        ckpt = Checkpoint(
            agents=pop.agents.copy(),
            generation=pop.generation,
            next_uid=pop.next_uid,
            side=pop.side,
            cutoff=pop.cutoff,
            rng_state=rng_state_snapshot(rng),
        )
        return self.put(ckpt)

    def put(self, ckpt: Checkpoint) -> int:
        handle = self._next_handle
        self._checkpoints[handle] = ckpt
        self._next_handle += 1
        return handle

    def get(self, handle: int) -> Checkpoint:
        try:
            return self._checkpoints[handle]
        except KeyError:
            raise CheckpointError(f"No checkpoint with handle {handle}") from None

    def restore(self, handle: int) -> Population:
        """Rebuild a fresh Population from a checkpoint.

        Raises:
            CheckpointError: Unknown handle or inconsistent snapshot.
        """
        ckpt = self.get(handle)
        agents = ckpt.agents
        if agents.dtype != AGENT_DTYPE:
            raise CheckpointError(f"Checkpoint {handle} has wrong agent dtype")
        if len(agents) and (
            np.any(np.diff(agents['uid']) <= 0)
            or agents['uid'][-1] >= ckpt.next_uid
        ):
            raise CheckpointError(f"Checkpoint {handle} has inconsistent identities")
        return Population(
            side=ckpt.side,
            cutoff=ckpt.cutoff,
            agents=agents.copy(),
            generation=ckpt.generation,
            next_uid=ckpt.next_uid,
        )

    def restore_rng(self, handle: int, rng: np.random.Generator) -> None:
        """Rewind rng to its state at checkpoint time."""
        ckpt = self.get(handle)
        try:
            restore_rng_state(rng, ckpt.rng_state)
        except (ValueError, KeyError, TypeError) as e:
            raise CheckpointError(f"Checkpoint {handle}: cannot restore RNG: {e}") from e

    def discard(self, handle: int) -> None:
        """Drop a checkpoint that is no longer needed."""
        self._checkpoints.pop(handle, None)

    # ── disk persistence ─────────────────────────────────────────────

    def dump(self, handle: int, path: Union[str, Path]) -> None:
        """Write a checkpoint to a compressed .npz file."""
        ckpt = self.get(handle)
        meta = {
            'generation': ckpt.generation,
            'next_uid': ckpt.next_uid,
            'side': ckpt.side,
            'cutoff': ckpt.cutoff,
            'rng_state': ckpt.rng_state,
        }
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(
            path,
            agents=np.asarray(ckpt.agents),
            meta=np.array(json.dumps(meta)),
        )

    def load(self, path: Union[str, Path]) -> int:
        """Read a checkpoint file into the store. Returns its new handle.

        Raises:
            CheckpointError: File missing, unreadable or incomplete.
        """
        path = Path(path)
        if not path.exists():
            raise CheckpointError(f"Checkpoint file not found: {path}")
        try:
            with np.load(path, allow_pickle=False) as data:
                agents = data['agents'].astype(AGENT_DTYPE)
                meta = json.loads(str(data['meta']))
            ckpt = Checkpoint(
                agents=agents,
                generation=int(meta['generation']),
                next_uid=int(meta['next_uid']),
                side=float(meta['side']),
                cutoff=int(meta['cutoff']),
                rng_state=meta['rng_state'],
            )
        except (OSError, KeyError, ValueError, TypeError, zipfile.BadZipFile) as e:
            raise CheckpointError(f"Corrupted checkpoint file {path}: {e}") from e
        return self.put(ckpt)
