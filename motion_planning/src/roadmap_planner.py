#!/usr/bin/env python3
"""
Probabilistic Roadmap Planner

The roadmap is an undirected graph of valid configurations. Each new node is
connected to its k nearest existing nodes whenever the straight segment
verifies and neither endpoint has reached the degree cap. Connected
components are tracked with union-find, so a query only searches the graph
once start and goal share a component.

The graph persists across solve() calls: start and goal of each query stay
in the roadmap as ordinary nodes.

Author: Robot Control Team
"""

import heapq
import numpy as np
import logging
from typing import Dict, List, Optional, Tuple

from .planner import Planner

logger = logging.getLogger(__name__)


class Prm(Planner):
    """Multi-query roadmap with A* search over the graph."""

    def __init__(self, model, sampler, verifier, params, nearest_neighbors_factory=None):
        super().__init__(model, sampler, verifier, params, nearest_neighbors_factory)
        self.index = self.nearest_neighbors_factory()
        self.edges: Dict[int, List[Tuple[int, float]]] = {}
        self._components: List[int] = []
        self._precomputed = 0

    @property
    def k(self) -> int:
        return self.params.roadmap_k

    @property
    def max_degree(self) -> Optional[int]:
        return self.params.roadmap_max_degree

    @property
    def num_nodes(self) -> int:
        return len(self.index)

    @property
    def num_edges(self) -> int:
        return sum(len(adjacent) for adjacent in self.edges.values()) // 2

    def solve(self, start: np.ndarray, goal: np.ndarray) -> Optional[List[np.ndarray]]:
        self._start_clock()

        if self._precomputed < self.params.roadmap_samples:
            self.construct(self.params.roadmap_samples - self._precomputed)

        start_idx = self.insert(start)
        goal_idx = self.insert(goal)

        while True:
            if self.same_component(start_idx, goal_idx):
                nodes = self.astar(start_idx, goal_idx)
                if nodes is not None:
                    self._stop_clock(True)
                    return self._node_path(nodes, start, goal)

            if self._timed_out():
                break

            self.statistics['iterations'] += 1
            q = self.sampler.generate()
            if self.verifier.is_valid_config(q):
                self.insert(q)

        self._stop_clock(False)
        return None

    def construct(self, samples: int) -> int:
        """
        Grow the roadmap by up to `samples` valid configurations.

        Stops early when the time budget of the current solve() runs out.

        Returns:
            Number of nodes added
        """
        added = 0
        while added < samples and not self._timed_out():
            self.statistics['iterations'] += 1
            q = self.sampler.generate()
            if not self.verifier.is_valid_config(q):
                continue
            self.insert(q)
            added += 1

        self._precomputed += added
        logger.debug(f"Roadmap construction added {added} nodes "
                     f"({self.num_nodes} nodes, {self.num_edges} edges)")
        return added

    def insert(self, q: np.ndarray) -> int:
        """Add q to the roadmap, reusing an identical existing node."""
        q = np.array(q, dtype=float)

        neighbors = self.index.k_nearest(q, self.k) if len(self.index) else []
        if neighbors and neighbors[0].distance == 0.0:
            return neighbors[0].index

        idx = self.index.insert(q)
        self.edges[idx] = []
        self._components.append(idx)
        self.statistics['nodes'] += 1

        for neighbor in neighbors:
            if not self._has_capacity(idx) or not self._has_capacity(neighbor.index):
                continue
            if self.verifier.is_valid_segment(neighbor.config, q):
                self._add_edge(idx, neighbor.index, neighbor.distance)

        return idx

    def same_component(self, a: int, b: int) -> bool:
        return self._find(a) == self._find(b)

    def astar(self, source: int, target: int) -> Optional[List[int]]:
        """Shortest node sequence from source to target, Euclidean heuristic."""
        configs = self.index.configs
        goal_config = configs[target]

        def heuristic(node):
            return float(np.linalg.norm(goal_config - configs[node]))

        cost: Dict[int, float] = {source: 0.0}
        prev: Dict[int, int] = {}
        counter = 0
        heap = [(heuristic(source), counter, source)]
        closed = set()

        while heap:
            _, _, u = heapq.heappop(heap)
            if u in closed:
                continue
            closed.add(u)

            if u == target:
                nodes = [target]
                while nodes[-1] in prev:
                    nodes.append(prev[nodes[-1]])
                return nodes[::-1]

            for v, weight in self.edges[u]:
                if v in closed:
                    continue
                new_cost = cost[u] + weight
                if new_cost < cost.get(v, float('inf')):
                    cost[v] = new_cost
                    prev[v] = u
                    counter += 1
                    heapq.heappush(heap, (new_cost + heuristic(v), counter, v))

        return None

    def _node_path(self, nodes: List[int], start: np.ndarray, goal: np.ndarray) -> List[np.ndarray]:
        configs = self.index.configs
        path = [configs[i].copy() for i in nodes]
        # Start and goal may have matched existing nodes, return them exactly
        path[0] = np.array(start, dtype=float)
        path[-1] = np.array(goal, dtype=float)
        if len(path) == 1:
            path.append(np.array(goal, dtype=float))
        return path

    def _has_capacity(self, node: int) -> bool:
        return self.max_degree is None or len(self.edges[node]) < self.max_degree

    def _add_edge(self, a: int, b: int, weight: float):
        self.edges[a].append((b, weight))
        self.edges[b].append((a, weight))
        self._union(a, b)

    def _find(self, node: int) -> int:
        root = node
        while self._components[root] != root:
            root = self._components[root]
        while self._components[node] != root:
            self._components[node], node = root, self._components[node]
        return root

    def _union(self, a: int, b: int):
        root_a, root_b = self._find(a), self._find(b)
        if root_a != root_b:
            self._components[max(root_a, root_b)] = min(root_a, root_b)
