#!/usr/bin/env python3
"""
Uniform configuration sampler.

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import Dict, Optional, Sequence

from .planning_types import InvalidParameterError

logger = logging.getLogger(__name__)


class UniformSampler:
    """Draws each joint independently and uniformly within its limits."""

    def __init__(self, model, rng: Optional[np.random.Generator] = None,
                 unbounded_range: Optional[Sequence[float]] = None,
                 fixed_axes: Optional[Dict[int, float]] = None):
        """
        Args:
            model: ConfigurationModel providing joint limits
            rng: Random source (fresh default generator if None)
            unbounded_range: (min, max) used for joints without a finite limit
            fixed_axes: Axis index -> value kept constant in every sample
        """
        self.model = model
        self.rng = rng if rng is not None else np.random.default_rng()
        self.fixed_axes = dict(fixed_axes or {})
        self.lower, self.upper = self._sampling_bounds(unbounded_range)

    def _sampling_bounds(self, unbounded_range):
        lower, upper = self.model.joint_limits()
        lower = np.array(lower, dtype=float)
        upper = np.array(upper, dtype=float)
        unbounded = ~np.isfinite(lower) | ~np.isfinite(upper)

        if np.any(unbounded):
            if unbounded_range is None:
                raise InvalidParameterError(
                    f"Joints {np.flatnonzero(unbounded).tolist()} have no bounded limit; "
                    "set 'unbounded_joint_range' to sample them")
            lo, hi = (float(v) for v in unbounded_range)
            if not lo < hi:
                raise InvalidParameterError(f"Invalid unbounded_joint_range [{lo}, {hi}]")
            logger.warning(f"Sampling joints {np.flatnonzero(unbounded).tolist()} "
                           f"in substituted range [{lo}, {hi}]")
            lower = np.where(np.isfinite(lower), lower, lo)
            upper = np.where(np.isfinite(upper), upper, hi)

        return lower, upper

    @property
    def dof(self) -> int:
        return self.lower.shape[0]

    def generate(self) -> np.ndarray:
        q = self.rng.uniform(self.lower, self.upper)
        for axis, value in self.fixed_axes.items():
            q[axis] = value
        return q

    def pin(self, axis: int, value: float) -> "UniformSampler":
        """Sampler sharing this random source with one coordinate held constant."""
        pinned = UniformSampler.__new__(UniformSampler)
        pinned.model = self.model
        pinned.rng = self.rng
        pinned.lower = self.lower
        pinned.upper = self.upper
        pinned.fixed_axes = dict(self.fixed_axes)
        pinned.fixed_axes[axis] = float(value)
        return pinned
