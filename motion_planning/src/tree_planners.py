#!/usr/bin/env python3
"""
Tree-Based Planning Strategies

- Rrt: single tree grown from the start; succeeds once a node lies within
  epsilon of the goal and the direct segment to the goal verifies
- RrtGoalBias: Rrt whose samples are replaced by the goal with a fixed
  probability
- RrtConCon: bidirectional search; one tree rooted at the start, one at the
  goal, each greedily connecting toward the other's newest node

Trees use the parent-array layout {'points', 'parents', 'index'} where
'index' is a nearest-neighbor index over 'points'.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import Dict, List, Optional, Tuple

from .planner import Planner

logger = logging.getLogger(__name__)


class TreePlanner(Planner):
    """Tree bookkeeping shared by the RRT variants."""

    def _new_tree(self, root: np.ndarray) -> Dict:
        tree = {'points': [], 'parents': [], 'index': self.nearest_neighbors_factory()}
        self._add_node(tree, root, -1)
        return tree

    def _add_node(self, tree: Dict, q: np.ndarray, parent: int) -> int:
        q = np.array(q, dtype=float)
        tree['points'].append(q)
        tree['parents'].append(parent)
        tree['index'].insert(q)
        self.statistics['nodes'] += 1
        return len(tree['points']) - 1

    def _extend(self, tree: Dict, target: np.ndarray) -> Optional[int]:
        """One step of at most delta from the nearest node toward target."""
        nearest = tree['index'].nearest(target)
        q_new = self._step_toward(nearest.config, target)
        if q_new is None:
            return None
        if not self.verifier.is_valid_segment(nearest.config, q_new):
            return None
        return self._add_node(tree, q_new, nearest.index)

    def _connect(self, tree: Dict, target: np.ndarray) -> Tuple[Optional[int], bool]:
        """
        Repeated delta steps toward target until reached or blocked.

        Returns:
            (index of the last node reached or added, None if nothing was added
            and the tree did not already contain target; whether target was reached)
        """
        nearest = tree['index'].nearest(target)
        current = nearest.index
        if nearest.distance < 1e-12:
            return current, True

        added = None
        while True:
            q_current = tree['points'][current]
            q_new = self._step_toward(q_current, target)
            if q_new is None:
                return current, True
            if not self.verifier.is_valid_segment(q_current, q_new):
                return added, False

            current = self._add_node(tree, q_new, current)
            added = current
            if np.array_equal(q_new, target):
                return current, True

    @staticmethod
    def _tree_path(tree: Dict, node_idx: int) -> List[np.ndarray]:
        """Configurations from node_idx back to the root."""
        path = []
        current = node_idx
        while current != -1:
            path.append(tree['points'][current].copy())
            current = tree['parents'][current]
        return path


class Rrt(TreePlanner):
    """Single-tree expansion toward uniform samples."""

    def _choose_sample(self, goal: np.ndarray) -> np.ndarray:
        return self.sampler.generate()

    def _reaches_goal(self, q: np.ndarray, goal: np.ndarray) -> bool:
        if np.linalg.norm(goal - q) > self.epsilon:
            return False
        return self.verifier.is_valid_segment(q, goal)

    def _goal_path(self, tree: Dict, node_idx: int, goal: np.ndarray) -> List[np.ndarray]:
        path = self._tree_path(tree, node_idx)[::-1]
        if not np.array_equal(path[-1], goal):
            path.append(goal.copy())
        if len(path) == 1:
            path.append(goal.copy())
        return path

    def solve(self, start: np.ndarray, goal: np.ndarray) -> Optional[List[np.ndarray]]:
        self._start_clock()
        tree = self._new_tree(start)

        if self._reaches_goal(start, goal):
            self._stop_clock(True)
            return self._goal_path(tree, 0, goal)

        while not self._timed_out():
            self.statistics['iterations'] += 1

            new_idx = self._extend(tree, self._choose_sample(goal))
            if new_idx is None:
                continue

            if self._reaches_goal(tree['points'][new_idx], goal):
                self._stop_clock(True)
                return self._goal_path(tree, new_idx, goal)

            if self.statistics['iterations'] % 1000 == 0:
                logger.debug(f"Iteration {self.statistics['iterations']}, tree size {len(tree['points'])}")

        self._stop_clock(False)
        return None


class RrtGoalBias(Rrt):
    """Rrt that samples the goal itself with probability goal_bias."""

    @property
    def goal_bias(self) -> float:
        return self.params.goal_bias

    def _choose_sample(self, goal: np.ndarray) -> np.ndarray:
        if self.sampler.rng.random() < self.goal_bias:
            return goal.copy()
        return self.sampler.generate()


class RrtConCon(TreePlanner):
    """Bidirectional tree search with greedy connection on both sides."""

    def solve(self, start: np.ndarray, goal: np.ndarray) -> Optional[List[np.ndarray]]:
        self._start_clock()
        start_tree = self._new_tree(start)
        goal_tree = self._new_tree(goal)

        if np.array_equal(start, goal):
            self._stop_clock(True)
            return [start.copy(), goal.copy()]

        tree_a, tree_b = start_tree, goal_tree
        while not self._timed_out():
            self.statistics['iterations'] += 1

            new_idx, _ = self._connect(tree_a, self.sampler.generate())
            if new_idx is not None:
                q_new = tree_a['points'][new_idx]
                other_idx, reached = self._connect(tree_b, q_new)
                if reached:
                    self._stop_clock(True)
                    if tree_a is start_tree:
                        return self._join(tree_a, new_idx, tree_b, other_idx)
                    return self._join(tree_b, other_idx, tree_a, new_idx)

            tree_a, tree_b = tree_b, tree_a

        self._stop_clock(False)
        return None

    def _join(self, start_tree: Dict, start_idx: int, goal_tree: Dict, goal_idx: int) -> List[np.ndarray]:
        """Start root -> meeting node -> goal root. Both indices refer to the same configuration."""
        head = self._tree_path(start_tree, start_idx)[::-1]
        tail = self._tree_path(goal_tree, goal_idx)
        return head + tail[1:]
