"""Run output: parameters, per-generation log rows and tracking matrices.

Files written into the output directory:
  parameters.yaml          scalar run parameters, once per run
  generations.csv          one row per generation (all attempts)
  tracking_neighbors.csv   one row per generation since selection
  tracking_diversity.csv   same layout, when diversity tracking is on
  checkpoint.npz           generation-1 checkpoint, when requested
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import yaml

from colonization_sim.types import GenerationRecord

GENERATION_FIELDS = [
    'attempt', 'generation', 'population_size', 'core_radius', 'diversity',
    'n_offspring', 'n_removed', 'lineage_diversity',
]
FLOAT_FIELDS = ('core_radius', 'diversity', 'lineage_diversity')


class RunWriter:
    """Append-only writer for one simulation run.

    Usage:
        with RunWriter("results/run1") as writer:
            writer.write_parameters(config.to_dict())
            writer.write_generation(record)
    """

    def __init__(self, directory: Union[str, Path], generation_log: bool = True):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.generation_log = generation_log
        self._fh = None
        self._writer = None

    @property
    def generations_path(self) -> Path:
        return self.directory / 'generations.csv'

    @property
    def checkpoint_path(self) -> Path:
        return self.directory / 'checkpoint.npz'

    def __enter__(self) -> 'RunWriter':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            self._writer = None

    def write_parameters(self, params: Dict[str, Any]) -> Path:
        path = self.directory / 'parameters.yaml'
        with open(path, 'w') as f:
            yaml.safe_dump(params, f, sort_keys=False)
        return path

    def write_generation(self, record: GenerationRecord) -> None:
        if not self.generation_log:
            return
        if self._writer is None:
            self._fh = open(self.generations_path, 'w', newline='')
            self._writer = csv.DictWriter(self._fh, fieldnames=GENERATION_FIELDS)
            self._writer.writeheader()
        self._writer.writerow({
            'attempt': record.attempt,
            'generation': record.generation,
            'population_size': record.population_size,
            'core_radius': f"{record.core_radius:.6g}",
            'diversity': f"{record.diversity:.6g}",
            'n_offspring': record.n_offspring,
            'n_removed': record.n_removed,
            'lineage_diversity': f"{record.lineage_diversity:.6g}",
        })
        self._fh.flush()

    def write_tracking(
        self,
        neighbors: np.ndarray,
        selected_at: int,
        diversity: Optional[np.ndarray] = None,
    ) -> List[Path]:
        """Write tracking matrices; row i is generation selected_at + i."""
        paths = [self.directory / 'tracking_neighbors.csv']
        write_matrix(paths[0], neighbors, selected_at)
        if diversity is not None and len(diversity):
            paths.append(self.directory / 'tracking_diversity.csv')
            write_matrix(paths[1], diversity, selected_at)
        return paths


def write_matrix(path: Union[str, Path], matrix: np.ndarray, first_generation: int) -> None:
    """CSV with a generation column then one column per TrackingSet member."""
    n_members = matrix.shape[1] if matrix.ndim == 2 else 0
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['generation'] + [f'member_{j}' for j in range(n_members)])
        for i, row in enumerate(matrix):
            writer.writerow([first_generation + i] + list(row))


def read_generation_log(path: Union[str, Path]) -> List[Dict[str, float]]:
    """Read generations.csv back into dicts of numbers."""
    with open(path, newline='') as f:
        rows = []
        for row in csv.DictReader(f):
            rows.append({
                k: (float(v) if k in FLOAT_FIELDS else int(v))
                for k, v in row.items()
            })
    return rows
