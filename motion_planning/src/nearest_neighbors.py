#!/usr/bin/env python3
"""
Nearest Neighbor Indexes

Growing point sets of configurations (tree or roadmap nodes) queried by
Euclidean distance over the joint vector. Callers that need angular
wrap-around must normalise configurations before inserting them.

- LinearNearestNeighbors: O(n) scan, ties resolved first-found
- KdtreeNearestNeighbors: scipy cKDTree over older points, recent insertions
  scanned linearly until enough accumulate to justify a rebuild

Author: Robot Control Team
"""

import numpy as np
from typing import List, NamedTuple
from scipy.spatial import cKDTree


class Neighbor(NamedTuple):
    index: int
    config: np.ndarray
    distance: float


class NearestNeighbors:
    """Common interface; indices are insertion order."""

    def __init__(self):
        self._configs: List[np.ndarray] = []

    def __len__(self) -> int:
        return len(self._configs)

    @property
    def configs(self) -> List[np.ndarray]:
        return self._configs

    def insert(self, config: np.ndarray) -> int:
        self._configs.append(np.array(config, dtype=float))
        return len(self._configs) - 1

    def nearest(self, query: np.ndarray) -> Neighbor:
        return self.k_nearest(query, 1)[0]

    def k_nearest(self, query: np.ndarray, k: int) -> List[Neighbor]:
        raise NotImplementedError

    def _check_query(self, k: int):
        if not self._configs:
            raise ValueError("Nearest neighbor query on an empty index")
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")


class LinearNearestNeighbors(NearestNeighbors):
    """Brute-force scan over all stored configurations."""

    def k_nearest(self, query: np.ndarray, k: int) -> List[Neighbor]:
        self._check_query(k)
        query = np.asarray(query, dtype=float)
        distances = np.linalg.norm(np.asarray(self._configs) - query, axis=1)
        # Stable sort keeps insertion order among equal distances
        order = np.argsort(distances, kind='stable')[:k]
        return [Neighbor(int(i), self._configs[i], float(distances[i])) for i in order]


class KdtreeNearestNeighbors(NearestNeighbors):
    """
    cKDTree over the first points plus a linear scan of the newest ones.

    The tree is rebuilt once the unindexed tail grows past rebuild_fraction
    of the indexed points (and past min_pending).
    """

    def __init__(self, rebuild_fraction: float = 0.25, min_pending: int = 32):
        super().__init__()
        self.rebuild_fraction = rebuild_fraction
        self.min_pending = min_pending
        self.rebuilds = 0
        self._tree = None
        self._indexed = 0

    def _refresh(self):
        pending = len(self._configs) - self._indexed
        if self._tree is None or pending > max(self.min_pending, self.rebuild_fraction * self._indexed):
            self._tree = cKDTree(np.asarray(self._configs))
            self._indexed = len(self._configs)
            self.rebuilds += 1

    def k_nearest(self, query: np.ndarray, k: int) -> List[Neighbor]:
        self._check_query(k)
        self._refresh()
        query = np.asarray(query, dtype=float)

        distances, indices = self._tree.query(query, k=min(k, self._indexed))
        candidates = list(zip(np.atleast_1d(distances).tolist(), np.atleast_1d(indices).tolist()))

        if self._indexed < len(self._configs):
            tail = np.linalg.norm(np.asarray(self._configs[self._indexed:]) - query, axis=1)
            candidates.extend((float(d), self._indexed + i) for i, d in enumerate(tail))

        # (distance, index) order keeps ties deterministic, lowest index first
        candidates.sort()
        return [Neighbor(int(i), self._configs[i], float(d)) for d, i in candidates[:k]]


NEAREST_NEIGHBOR_TYPES = {
    'linear': LinearNearestNeighbors,
    'kdtree': KdtreeNearestNeighbors,
}
