#!/usr/bin/env python3
"""
Robot Motion Planning Package

Sampling-based motion planning sessions for robot models described by joint
limits and a collision query.

This package provides:
- Planning sessions that own a bound model, cached start/goal and parameters
- Tree, bidirectional tree, goal-biased tree and roadmap search strategies
- Segment verification, shortcut optimization and fixed-axis planning
- XML planning descriptors with degree/radian unit handling

Architecture:
- Uses the robot_model package (or any ConfigurationModel) for validity queries
- Strategies share one sampler, nearest-neighbor index type and verifier
- plan() reports every failure as a PlanningOutcome instead of raising

Author: Robot Control Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Robot Control Team"

# Shared types first, they have no dependencies
from .planning_types import (
    FailureReason, AlgorithmKind, AlgorithmParameters, PlanningOutcome,
    PlanningError, InvalidHandleError, InvalidParameterError, LoadFailureError, NotInitializedError
)
from .planner_config import load_settings, DEFAULT_SETTINGS

# Collaborators and strategies
from .sampler import UniformSampler
from .nearest_neighbors import LinearNearestNeighbors, KdtreeNearestNeighbors
from .segment_verifier import RecursiveVerifier, SequentialVerifier
from .axis_projection import AxisProjection
from .tree_planners import Rrt, RrtConCon, RrtGoalBias
from .roadmap_planner import Prm
from .path_optimizer import SimpleOptimizer, path_length
from .descriptor_loader import DescriptorLoader, PlanningDescriptor

# Finally the session, which depends on everything else
from .planning_session import PlanningSession, SessionState, bind

__all__ = [
    'FailureReason',
    'AlgorithmKind',
    'AlgorithmParameters',
    'PlanningOutcome',
    'PlanningError',
    'InvalidHandleError',
    'InvalidParameterError',
    'LoadFailureError',
    'NotInitializedError',
    'load_settings',
    'DEFAULT_SETTINGS',
    'UniformSampler',
    'LinearNearestNeighbors',
    'KdtreeNearestNeighbors',
    'RecursiveVerifier',
    'SequentialVerifier',
    'AxisProjection',
    'Rrt',
    'RrtConCon',
    'RrtGoalBias',
    'Prm',
    'SimpleOptimizer',
    'path_length',
    'DescriptorLoader',
    'PlanningDescriptor',
    'PlanningSession',
    'SessionState',
    'bind'
]

# Package metadata
__title__ = "motion_planning"
__description__ = "Sampling-based motion planning sessions for joint-space robot models"
__license__ = "MIT"
