#!/usr/bin/env python3
"""
Planning Types

Shared enums, parameter and result containers, and the error taxonomy used
across the planning session, strategies and descriptor loader.

Author: Robot Control Team
"""

import numpy as np
from dataclasses import dataclass, field, replace as dataclass_replace
from enum import Enum
from typing import List, Optional, Tuple, Union


class FailureReason(Enum):
    """Why a planning call (or setup operation) failed."""
    INVALID_HANDLE = "invalid_handle"
    INVALID_PARAMETER = "invalid_parameter"
    LOAD_FAILURE = "load_failure"
    INVALID_START_OR_GOAL = "invalid_start_or_goal"
    NO_PATH_FOUND = "no_path_found"
    NOT_INITIALIZED = "not_initialized"
    INTERNAL_FAULT = "internal_fault"


class PlanningError(Exception):
    """Base exception for setup, binding and loading failures."""
    reason = FailureReason.INTERNAL_FAULT


class InvalidHandleError(PlanningError):
    """Operation on a released session."""
    reason = FailureReason.INVALID_HANDLE


class InvalidParameterError(PlanningError):
    """DOF mismatch, out-of-range index or malformed parameters."""
    reason = FailureReason.INVALID_PARAMETER


class LoadFailureError(PlanningError):
    """Descriptor or referenced resource could not be parsed or resolved."""
    reason = FailureReason.LOAD_FAILURE


class NotInitializedError(PlanningError):
    """Operation needs a bound model."""
    reason = FailureReason.NOT_INITIALIZED


class AlgorithmKind(Enum):
    """Available search strategies."""
    TREE = "tree"
    BIDIRECTIONAL_TREE = "bidirectionalTree"
    GOAL_BIASED_TREE = "goalBiasedTree"
    ROADMAP = "roadmap"

    @classmethod
    def parse(cls, value: Union["AlgorithmKind", str]) -> "AlgorithmKind":
        """
        Resolve an algorithm name.

        Accepts enum members, descriptor element names and the legacy planner
        names (rrt, rrtConCon, rrtConnect, rrtGoalBias, prm), case-insensitive.

        Raises:
            InvalidParameterError: For anything else
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidParameterError(f"Algorithm must be a name or AlgorithmKind, got {type(value).__name__}")

        kind = ALGORITHM_ALIASES.get(value.strip().lower())
        if kind is None:
            raise InvalidParameterError(
                f"Unknown algorithm '{value}'. Expected one of: {', '.join(k.value for k in cls)}")
        return kind


ALGORITHM_ALIASES = {
    'tree': AlgorithmKind.TREE,
    'rrt': AlgorithmKind.TREE,
    'bidirectionaltree': AlgorithmKind.BIDIRECTIONAL_TREE,
    'rrtconcon': AlgorithmKind.BIDIRECTIONAL_TREE,
    'rrtconnect': AlgorithmKind.BIDIRECTIONAL_TREE,
    'goalbiasedtree': AlgorithmKind.GOAL_BIASED_TREE,
    'rrtgoalbias': AlgorithmKind.GOAL_BIASED_TREE,
    'roadmap': AlgorithmKind.ROADMAP,
    'prm': AlgorithmKind.ROADMAP,
}


@dataclass
class AlgorithmParameters:
    """Search resolution, goal tolerance, time budget and strategy tunables."""
    delta: float = 0.1
    epsilon: float = 0.001
    timeout: float = 30.0
    algorithm: Optional[AlgorithmKind] = None
    goal_bias: float = 0.05
    roadmap_k: int = 30
    roadmap_max_degree: Optional[int] = None
    roadmap_samples: int = 500

    def validate(self) -> "AlgorithmParameters":
        """Check invariants; returns self so calls can be chained."""
        if not np.isfinite(self.delta) or self.delta <= 0:
            raise InvalidParameterError(f"delta must be positive, got {self.delta}")
        if not np.isfinite(self.epsilon) or self.epsilon < 0:
            raise InvalidParameterError(f"epsilon must be non-negative, got {self.epsilon}")
        if not np.isfinite(self.timeout) or self.timeout <= 0:
            raise InvalidParameterError(f"timeout must be positive and finite, got {self.timeout}")
        if not 0.0 <= self.goal_bias <= 1.0:
            raise InvalidParameterError(f"goal_bias must lie in [0, 1], got {self.goal_bias}")
        if self.roadmap_k < 1:
            raise InvalidParameterError(f"roadmap_k must be at least 1, got {self.roadmap_k}")
        if self.roadmap_max_degree is not None and self.roadmap_max_degree < 1:
            raise InvalidParameterError(f"roadmap_max_degree must be at least 1, got {self.roadmap_max_degree}")
        if self.roadmap_samples < 0:
            raise InvalidParameterError(f"roadmap_samples must be non-negative, got {self.roadmap_samples}")
        if self.algorithm is not None:
            self.algorithm = AlgorithmKind.parse(self.algorithm)
        return self

    def replace(self, **changes) -> "AlgorithmParameters":
        return dataclass_replace(self, **changes)


@dataclass
class PlanningOutcome:
    """Result of a planning call. Always returned, never raised."""
    success: bool
    path: List[np.ndarray] = field(default_factory=list)
    failure_reason: Optional[FailureReason] = None
    elapsed_time: float = 0.0
    error_message: Optional[str] = None
    algorithm: Optional[AlgorithmKind] = None
    raw_waypoint_count: int = 0

    @property
    def num_waypoints(self) -> int:
        return len(self.path)

    @property
    def dof(self) -> int:
        return len(self.path[0]) if self.path else 0

    def to_flat(self, max_waypoints: Optional[int] = None) -> Tuple[np.ndarray, int, int]:
        """
        Flatten the path for a binary boundary.

        Args:
            max_waypoints: Truncate to at most this many waypoints

        Returns:
            Tuple of (flat buffer of waypoint_count * dof values, waypoint_count, dof)
        """
        waypoints = self.path if max_waypoints is None else self.path[:max(0, max_waypoints)]
        dof = self.dof
        if not waypoints:
            return np.zeros(0), 0, dof
        return np.concatenate(waypoints).astype(float), len(waypoints), dof

    @classmethod
    def failure(cls, reason: FailureReason, message: str, elapsed_time: float = 0.0,
                algorithm: Optional[AlgorithmKind] = None) -> "PlanningOutcome":
        return cls(success=False, failure_reason=reason, error_message=message,
                   elapsed_time=elapsed_time, algorithm=algorithm)
