"""Periodic spatial index for neighbour queries.

Wraps a scipy cKDTree built with ``boxsize = side`` so every distance is
measured on the torus [0, L)². The index is re-evaluated (rebuilt) once per
phase that needs it; between rebuilds it is a frozen, read-only snapshot of
the point set, which is what the density regulator relies on.

Two instances with different default radii run side by side: the
interaction radius r (regulation, tracked neighbour counts) and the
isolation radius 10 r (founder search).
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.spatial import cKDTree


class SpatialIndex:
    """Radius and k-nearest queries over a frozen periodic point set.

    Indices returned by queries are row indices into the position array
    passed to the last ``evaluate()``.
    """

    def __init__(self, side: float, radius: float):
        """
        Args:
            side: Side length L of the periodic square habitat.
            radius: Default query radius.
        """
        if side <= 0:
            raise ValueError(f"side must be > 0, got {side}")
        if radius <= 0:
            raise ValueError(f"radius must be > 0, got {radius}")
        self.side = float(side)
        self.radius = float(radius)
        self._tree: Optional[cKDTree] = None
        self._points = np.empty((0, 2), dtype=np.float64)

    @property
    def n_points(self) -> int:
        return len(self._points)

    def evaluate(self, positions: np.ndarray) -> None:
        """Rebuild the index over (n, 2) positions in [0, L)².

        Raises:
            ValueError: If positions are not a finite (n, 2) array inside
                the habitat.
        """
        points = np.asarray(positions, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError(f"positions must have shape (n, 2), got {points.shape}")
        if not np.all(np.isfinite(points)):
            raise ValueError("positions must be finite (got nan or inf)")
        if len(points) and (points.min() < 0.0 or points.max() >= self.side):
            raise ValueError("positions must lie in [0, side) on both axes")
        self._points = points.copy()
        self._tree = cKDTree(self._points, boxsize=self.side) if len(points) else None

    def _radius(self, radius: Optional[float]) -> float:
        return self.radius if radius is None else float(radius)

    def neighbor_counts(
        self,
        radius: Optional[float] = None,
        exclude_self: bool = True,
    ) -> np.ndarray:
        """Neighbour count within radius for every indexed point.

        Returns:
            (n,) int64 counts. Points at distance exactly ``radius`` count.
        """
        if self._tree is None:
            return np.zeros(0, dtype=np.int64)
        counts = self._tree.query_ball_point(
            self._points, self._radius(radius), return_length=True,
        ).astype(np.int64)
        if exclude_self:
            counts -= 1
        return counts

    def neighbor_count(
        self,
        i: int,
        radius: Optional[float] = None,
        exclude_self: bool = True,
    ) -> int:
        """Neighbour count within radius of indexed point i."""
        n = self.count_within(self._points[i], radius)
        return n - 1 if exclude_self else n

    def count_within(self, point: np.ndarray, radius: Optional[float] = None) -> int:
        """Number of indexed points within radius of an arbitrary point."""
        if self._tree is None:
            return 0
        return int(self._tree.query_ball_point(
            np.asarray(point, dtype=np.float64), self._radius(radius),
            return_length=True,
        ))

    def k_nearest(self, i: int, k: int, exclude_self: bool = True) -> np.ndarray:
        """Indices of the k nearest indexed points to point i, nearest first.

        Fewer than k indices are returned when the index holds fewer points.
        """
        if self._tree is None or k <= 0:
            return np.zeros(0, dtype=np.int64)
        n_query = min(k + (1 if exclude_self else 0), self.n_points)
        _, idx = self._tree.query(self._points[i], k=n_query)
        idx = np.atleast_1d(idx).astype(np.int64)
        if exclude_self:
            # Coincident points can tie with i, so drop i by identity
            idx = idx[idx != i]
        return idx[:k]

    def torus_distance(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Minimum-image distance between point arrays a and b."""
        delta = np.abs(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64))
        delta = np.minimum(delta, self.side - delta)
        return np.sqrt(np.sum(delta**2, axis=-1))
