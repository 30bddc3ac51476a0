#!/usr/bin/env python3
"""
Segment Verifiers

Decide whether the straight-line interpolation between two configurations
stays within joint limits and out of collision, at resolution delta.

RecursiveVerifier bisects: every queued sub-segment has its midpoint checked,
and both halves are queued only while the sub-segment is longer than delta.
Checked points end up no further than delta / 2 apart, at a cost logarithmic in
length / delta. Subdivision runs on an explicit work stack, and segments
needing more than max_depth halvings are rejected.

SequentialVerifier walks the segment in equal steps no longer than delta.

Author: Robot Control Team
"""

import numpy as np
import logging
import math
from typing import List

logger = logging.getLogger(__name__)


class SegmentVerifier:
    """Shared configuration checks and path verification."""

    def __init__(self, model, delta: float, max_depth: int = 32):
        """
        Args:
            model: ConfigurationModel used for validity queries
            delta: Verification resolution
            max_depth: Maximum number of bisection levels
        """
        if delta <= 0:
            raise ValueError(f"delta must be positive, got {delta}")
        self.model = model
        self.delta = delta
        self.max_depth = max_depth
        self.checks = 0

    def is_valid_config(self, q: np.ndarray) -> bool:
        self.checks += 1
        return self.model.is_valid(q)

    def is_valid_segment(self, a: np.ndarray, b: np.ndarray) -> bool:
        raise NotImplementedError

    def is_valid_path(self, path: List[np.ndarray]) -> bool:
        if not path:
            return False
        if len(path) == 1:
            return self.is_valid_config(path[0])
        return all(self.is_valid_segment(path[i], path[i + 1]) for i in range(len(path) - 1))

    def required_depth(self, length: float) -> int:
        if length <= self.delta:
            return 0
        return int(math.ceil(math.log2(length / self.delta)))


class RecursiveVerifier(SegmentVerifier):
    """Midpoint bisection driven by an explicit stack."""

    def is_valid_segment(self, a: np.ndarray, b: np.ndarray) -> bool:
        a = np.asarray(a, dtype=float)
        b = np.asarray(b, dtype=float)

        if not self.is_valid_config(a) or not self.is_valid_config(b):
            return False

        length = float(np.linalg.norm(b - a))
        depth = self.required_depth(length)
        if depth > self.max_depth:
            logger.warning(f"Segment of length {length:.4g} needs {depth} subdivisions at "
                           f"delta={self.delta:.4g} (limit {self.max_depth}); rejecting")
            return False

        # Each entry is a parameter interval [t0, t1] along a -> b
        stack = [(0.0, 1.0)]
        while stack:
            t0, t1 = stack.pop()
            tm = 0.5 * (t0 + t1)
            if not self.is_valid_config(a + tm * (b - a)):
                return False

            if (t1 - t0) * length > self.delta:
                stack.append((tm, t1))
                stack.append((t0, tm))

        return True


class SequentialVerifier(SegmentVerifier):
    """Equal steps from a to b."""

    def is_valid_segment(self, a: np.ndarray, b: np.ndarray) -> bool:
        a = np.asarray(a, dtype=float)
        b = np.asarray(b, dtype=float)

        length = float(np.linalg.norm(b - a))
        steps = max(1, int(math.ceil(length / self.delta)))
        if self.required_depth(length) > self.max_depth:
            logger.warning(f"Segment of length {length:.4g} needs {steps} steps at "
                           f"delta={self.delta:.4g}; rejecting")
            return False

        for i in range(steps + 1):
            if not self.is_valid_config(a + (i / steps) * (b - a)):
                return False
        return True


VERIFIER_TYPES = {
    'recursive': RecursiveVerifier,
    'sequential': SequentialVerifier,
}
