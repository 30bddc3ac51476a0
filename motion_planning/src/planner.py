#!/usr/bin/env python3
"""
Planner base class shared by the tree and roadmap strategies.

A strategy receives the bound model, a sampler, a segment verifier, a factory
for nearest-neighbor indexes and the algorithm parameters. solve() returns a
raw path from start to goal, or None when the time budget runs out. Start and
goal are assumed valid; the session checks them before any strategy runs.

Author: Robot Control Team
"""

import numpy as np
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .planning_types import AlgorithmParameters
from .nearest_neighbors import LinearNearestNeighbors, NearestNeighbors

logger = logging.getLogger(__name__)


class Planner:
    """Common wiring, time budget and statistics."""

    def __init__(self, model, sampler, verifier, params: AlgorithmParameters,
                 nearest_neighbors_factory: Optional[Callable[[], NearestNeighbors]] = None):
        self.model = model
        self.sampler = sampler
        self.verifier = verifier
        self.params = params
        self.nearest_neighbors_factory = nearest_neighbors_factory or LinearNearestNeighbors

        self._deadline = 0.0
        self._started = 0.0
        self.statistics: Dict[str, Any] = {'iterations': 0, 'nodes': 0, 'elapsed': 0.0}

    @property
    def delta(self) -> float:
        return self.params.delta

    @property
    def epsilon(self) -> float:
        return self.params.epsilon

    def solve(self, start: np.ndarray, goal: np.ndarray) -> Optional[List[np.ndarray]]:
        raise NotImplementedError

    def _start_clock(self):
        self._started = time.monotonic()
        self._deadline = self._started + self.params.timeout
        self.statistics = {'iterations': 0, 'nodes': 0, 'elapsed': 0.0}

    def _timed_out(self) -> bool:
        return time.monotonic() >= self._deadline

    def _stop_clock(self, solved: bool):
        self.statistics['elapsed'] = time.monotonic() - self._started
        if solved:
            logger.info(f"{type(self).__name__} solved in {self.statistics['elapsed']:.3f}s "
                        f"({self.statistics['iterations']} iterations, {self.statistics['nodes']} nodes)")
        else:
            logger.info(f"{type(self).__name__} found no path within {self.params.timeout:.3f}s "
                        f"({self.statistics['iterations']} iterations, {self.statistics['nodes']} nodes)")

    def _step_toward(self, q_from: np.ndarray, q_to: np.ndarray) -> Optional[np.ndarray]:
        """Configuration at most delta from q_from along q_from -> q_to (q_to itself when in reach)."""
        direction = q_to - q_from
        dist = np.linalg.norm(direction)
        if dist < 1e-12:
            return None
        if dist <= self.delta:
            return q_to.copy()
        return q_from + direction / dist * self.delta
