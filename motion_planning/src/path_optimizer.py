#!/usr/bin/env python3
"""
Shortcut path optimizer.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import List

logger = logging.getLogger(__name__)


def path_length(path: List[np.ndarray]) -> float:
    """Sum of Euclidean segment lengths."""
    if len(path) < 2:
        return 0.0
    return float(sum(np.linalg.norm(path[i + 1] - path[i]) for i in range(len(path) - 1)))


class SimpleOptimizer:
    """
    Greedy shortcutting with a segment verifier.

    From each anchor the farthest waypoint reachable by a verified straight
    segment becomes the next anchor; everything in between is dropped. The
    result is a subsequence of the input with both endpoints kept, and
    running it again changes nothing.
    """

    def __init__(self, verifier):
        self.verifier = verifier

    def process(self, path: List[np.ndarray]) -> List[np.ndarray]:
        if len(path) <= 2:
            return [np.array(q, dtype=float) for q in path]

        optimized = [np.array(path[0], dtype=float)]
        i = 0
        last = len(path) - 1
        while i < last:
            next_anchor = i + 1
            for j in range(last, i + 1, -1):
                if self.verifier.is_valid_segment(path[i], path[j]):
                    next_anchor = j
                    break
            optimized.append(np.array(path[next_anchor], dtype=float))
            i = next_anchor

        logger.debug(f"Path shortcut: {len(path)} -> {len(optimized)} waypoints, "
                     f"length {path_length(path):.4f} -> {path_length(optimized):.4f}")
        return optimized
