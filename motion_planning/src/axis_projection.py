#!/usr/bin/env python3
"""
Fixed-axis projection for reduced-dimensionality planning.

Keeping one coordinate constant (e.g. the height axis of a SCARA arm) is done
by copying the start's value into the goal before validation and pinning the
sampler on that axis, so every expansion step leaves the coordinate untouched.

Author: Robot Control Team
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from .planning_types import InvalidParameterError


@dataclass(frozen=True)
class AxisProjection:
    axis: int
    value: float

    @classmethod
    def resolve(cls, fixed_axis: Optional[int], start: Optional[np.ndarray],
                dof: int) -> Optional["AxisProjection"]:
        """
        Build the projection for a planning call.

        Raises:
            InvalidParameterError: Axis out of range, DOF < 2, or no start to project against
        """
        if fixed_axis is None:
            return None
        if isinstance(fixed_axis, bool) or not isinstance(fixed_axis, (int, np.integer)):
            raise InvalidParameterError(f"Fixed axis must be an integer index, got {fixed_axis!r}")
        if dof < 2:
            raise InvalidParameterError(f"Fixed-axis projection needs at least 2 DOF, model has {dof}")
        if not 0 <= fixed_axis < dof:
            raise InvalidParameterError(f"Fixed axis {fixed_axis} out of range for {dof} DOF")
        if start is None:
            raise InvalidParameterError("Fixed-axis projection requested without a start configuration")
        return cls(int(fixed_axis), float(start[fixed_axis]))

    def apply(self, goal: np.ndarray) -> np.ndarray:
        """Copy of goal with the fixed coordinate overwritten."""
        projected = np.array(goal, dtype=float)
        projected[self.axis] = self.value
        return projected

    def pin(self, sampler):
        return sampler.pin(self.axis, self.value)
