#!/usr/bin/env python3
"""
Planning Session

A PlanningSession owns one bound configuration model together with the
cached start/goal, default algorithm parameters and the lazily built
sampling collaborators. Every plan() call runs the same pipeline:

    resolve inputs -> fixed-axis projection -> validate start/goal
    -> strategy search -> shortcut optimization

plan() never raises; every failure comes back as a PlanningOutcome with a
FailureReason. Setup operations (binding, loading, setters) raise
PlanningError subclasses instead.

Author: Robot Control Team
"""

import copy
import numpy as np
import logging
import threading
import time
from collections import OrderedDict
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from robot_model.src import KinematicChain, KinematicsLoadError, Scene, SceneLoadError, SimpleModel

from .planning_types import (AlgorithmKind, AlgorithmParameters, FailureReason, PlanningOutcome,
                             PlanningError, InvalidHandleError, InvalidParameterError,
                             LoadFailureError, NotInitializedError)
from .planner_config import load_settings, parameters_from_settings
from .sampler import UniformSampler
from .nearest_neighbors import NEAREST_NEIGHBOR_TYPES
from .segment_verifier import VERIFIER_TYPES, SegmentVerifier
from .axis_projection import AxisProjection
from .tree_planners import Rrt, RrtConCon, RrtGoalBias
from .roadmap_planner import Prm
from .path_optimizer import SimpleOptimizer
from .descriptor_loader import DescriptorLoader, PlanningDescriptor

logger = logging.getLogger(__name__)

PLANNER_TYPES = {
    AlgorithmKind.TREE: Rrt,
    AlgorithmKind.BIDIRECTIONAL_TREE: RrtConCon,
    AlgorithmKind.GOAL_BIASED_TREE: RrtGoalBias,
    AlgorithmKind.ROADMAP: Prm,
}


class SessionState(Enum):
    """Lifecycle of a planning session."""
    UNBOUND = "unbound"
    BOUND = "bound"
    READY = "ready"
    RELEASED = "released"


class PlanningSession:
    """Model binding, cached inputs and the verify -> solve -> optimize pipeline. Thread-safe."""

    def __init__(self, config_path: Optional[str] = None, settings: Optional[Dict[str, Any]] = None):
        """
        Initialize an unbound session.

        Args:
            config_path: Planner settings YAML (default lookup if None)
            settings: Settings dictionary used instead of loading a file
        """
        self.settings = copy.deepcopy(settings) if settings is not None else load_settings(config_path)
        self.model = None
        self._state = SessionState.UNBOUND

        self._start: Optional[np.ndarray] = None
        self._goal: Optional[np.ndarray] = None
        self._params = parameters_from_settings(self.settings).validate()

        # Partially loaded model (load_kinematics / load_scene)
        self._chain: Optional[KinematicChain] = None
        self._scene: Optional[Scene] = None
        self._robot_index = 0

        # Collaborators, built on first plan()
        self._sampler: Optional[UniformSampler] = None
        self._nearest_neighbors_factory = None
        self._verifier: Optional[SegmentVerifier] = None
        self._roadmaps: "OrderedDict[tuple, Tuple[Optional[AxisProjection], Prm]]" = OrderedDict()

        self.stats = {
            'total_plans': 0,
            'successful_plans': 0,
            'failed_plans': 0,
            'total_planning_time': 0.0,
            'failures_by_reason': {}
        }

        self._planning_lock = threading.RLock()
        self._stats_lock = threading.RLock()
        self._config_lock = threading.RLock()

    # ------------------------------------------------------------------
    # State and properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def start(self) -> Optional[np.ndarray]:
        return None if self._start is None else self._start.copy()

    @property
    def goal(self) -> Optional[np.ndarray]:
        return None if self._goal is None else self._goal.copy()

    @property
    def parameters(self) -> AlgorithmParameters:
        return self._params.replace()

    def _check_not_released(self):
        if self._state is SessionState.RELEASED:
            raise InvalidHandleError("Planning session has been released")

    def _check_bound(self):
        self._check_not_released()
        if self.model is None:
            raise NotInitializedError("No model bound to the planning session")

    def _check_unbound(self):
        self._check_not_released()
        if self.model is not None:
            raise InvalidParameterError("Planning session already has a bound model")

    # ------------------------------------------------------------------
    # Binding and loading
    # ------------------------------------------------------------------

    def bind_model(self, model):
        """
        Bind a configuration model to this session.

        Raises:
            InvalidHandleError: Session released
            InvalidParameterError: A model is already bound, or the model has no DOF
        """
        with self._planning_lock:
            self._check_unbound()
            if model is None or model.dof < 1:
                raise InvalidParameterError("Model must have at least one degree of freedom")

            self.model = model
            self._state = SessionState.BOUND
            self._start = None
            self._goal = None
            self._reset_collaborators()
            logger.info(f"Planning session bound to {type(model).__name__} with {model.dof} DOF")

    def load_kinematics(self, path: str):
        """Load a kinematics file; the model is bound once a scene is loaded too."""
        with self._planning_lock:
            self._check_unbound()
            try:
                self._chain = KinematicChain.from_yaml(path)
            except KinematicsLoadError as e:
                raise LoadFailureError(str(e)) from e
            self._bind_loaded()

    def load_scene(self, path: str, robot_model_index: int = 0):
        """Load a scene file; the model at robot_model_index is the robot."""
        with self._planning_lock:
            self._check_unbound()
            try:
                scene = Scene.from_yaml(path)
            except SceneLoadError as e:
                raise LoadFailureError(str(e)) from e

            if not 0 <= robot_model_index < scene.num_models:
                raise InvalidParameterError(
                    f"Robot model index {robot_model_index} out of range for {scene.num_models} scene models")

            self._scene = scene
            self._robot_index = robot_model_index
            self._bind_loaded()

    def _bind_loaded(self):
        if self._chain is None or self._scene is None:
            return
        with self._config_lock:
            spacing = float(self.settings['model_sample_spacing'])
        try:
            model = SimpleModel(self._chain, self._scene, self._robot_index, sample_spacing=spacing)
        except (SceneLoadError, ValueError) as e:
            raise LoadFailureError(f"Cannot build model from kinematics and scene: {e}") from e
        self.bind_model(model)

    def load_descriptor(self, path: str) -> PlanningDescriptor:
        """
        Load a planning descriptor, bind the model it references and adopt
        its algorithm, parameters, start and goal.

        Raises:
            LoadFailureError: Descriptor or referenced files cannot be loaded
            InvalidParameterError: Session already bound
            InvalidHandleError: Session released
        """
        with self._planning_lock:
            self._check_unbound()
            with self._config_lock:
                settings = copy.deepcopy(self.settings)
            descriptor = DescriptorLoader(settings).load(path)

            try:
                chain = KinematicChain.from_yaml(descriptor.kinematics_path)
                scene = Scene.from_yaml(descriptor.scene_path)
                model = SimpleModel(chain, scene, descriptor.robot_model_index,
                                    sample_spacing=float(settings['model_sample_spacing']))
            except (KinematicsLoadError, SceneLoadError, ValueError) as e:
                raise LoadFailureError(f"{descriptor.descriptor_path}: {e}") from e

            for name in ('start', 'goal'):
                q = getattr(descriptor, name)
                if q is not None and q.shape[0] != model.dof:
                    raise LoadFailureError(
                        f"{descriptor.descriptor_path}: {name} has {q.shape[0]} values, model has {model.dof} DOF")

            self._chain, self._scene, self._robot_index = chain, scene, descriptor.robot_model_index
            self.bind_model(model)
            self._params = descriptor.parameters
            self._start = None if descriptor.start is None else descriptor.start.copy()
            self._goal = None if descriptor.goal is None else descriptor.goal.copy()
            return descriptor

    def release(self):
        """Drop the model and all cached state. The session cannot be used afterwards."""
        with self._planning_lock:
            self._check_not_released()
            self.model = None
            self._chain = None
            self._scene = None
            self._start = None
            self._goal = None
            self._reset_collaborators()
            self._state = SessionState.RELEASED
            logger.info("Planning session released")

    # ------------------------------------------------------------------
    # Queries and setters
    # ------------------------------------------------------------------

    def dof(self) -> int:
        with self._planning_lock:
            self._check_bound()
            return self.model.dof

    def is_valid(self, config: Sequence[float]) -> bool:
        """True when config is inside the joint limits and collision-free."""
        with self._planning_lock:
            self._check_bound()
            q = self._as_config(config, 'configuration')
            return bool(self.model.is_valid(q))

    def set_start(self, config: Sequence[float]):
        with self._planning_lock:
            self._start = self._checked_endpoint(config, 'start')

    def set_goal(self, config: Sequence[float]):
        with self._planning_lock:
            self._goal = self._checked_endpoint(config, 'goal')

    def _checked_endpoint(self, config, name: str) -> np.ndarray:
        self._check_bound()
        q = self._as_config(config, name)
        if not self.model.is_valid(q):
            raise InvalidParameterError(f"The {name} configuration is outside the joint limits or in collision")
        return q

    def set_parameters(self, params: AlgorithmParameters):
        """Replace the session's default algorithm parameters."""
        with self._planning_lock:
            self._check_not_released()
            if not isinstance(params, AlgorithmParameters):
                raise InvalidParameterError(f"Expected AlgorithmParameters, got {type(params).__name__}")
            self._params = params.replace().validate()

    def _as_config(self, config, name: str) -> np.ndarray:
        try:
            q = np.array(config, dtype=float)
        except (TypeError, ValueError) as e:
            raise InvalidParameterError(f"The {name} is not a numeric vector: {e}") from e
        if q.ndim != 1 or q.shape[0] != self.model.dof:
            raise InvalidParameterError(
                f"The {name} has shape {q.shape}, expected ({self.model.dof},)")
        if not np.all(np.isfinite(q)):
            raise InvalidParameterError(f"The {name} contains non-finite values")
        return q

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, start: Optional[Sequence[float]] = None, goal: Optional[Sequence[float]] = None,
             algorithm: Optional[Union[AlgorithmKind, str]] = None,
             params: Optional[AlgorithmParameters] = None,
             fixed_axis: Optional[int] = None) -> PlanningOutcome:
        """
        Plan a collision-free path. Thread-safe; never raises.

        Args:
            start: Start configuration (cached start if None)
            goal: Goal configuration (cached goal if None)
            algorithm: Strategy to use (falls back to params.algorithm)
            params: Algorithm parameters (session parameters if None)
            fixed_axis: Joint index held at the start's value for the whole path

        Returns:
            PlanningOutcome with the optimized path or a failure reason
        """
        with self._planning_lock:
            started = time.monotonic()
            try:
                outcome = self._plan(start, goal, algorithm, params, fixed_axis, started)
            except PlanningError as e:
                logger.warning(f"Planning rejected ({e.reason.value}): {e}")
                outcome = PlanningOutcome.failure(e.reason, str(e), time.monotonic() - started)
            except Exception as e:
                logger.exception(f"Planning failed with an internal error: {e}")
                outcome = PlanningOutcome.failure(FailureReason.INTERNAL_FAULT,
                                                  f"Internal fault: {type(e).__name__}: {e}",
                                                  time.monotonic() - started)

            self._update_statistics(outcome)
            return outcome

    def _plan(self, start, goal, algorithm, params, fixed_axis, started: float) -> PlanningOutcome:
        self._check_bound()

        start = self._resolve_endpoint(start, self._start, 'start')
        goal = self._resolve_endpoint(goal, self._goal, 'goal')

        projection = AxisProjection.resolve(fixed_axis, start, self.model.dof)
        if projection is not None:
            goal = projection.apply(goal)

        params = self._resolve_parameters(params, algorithm)
        kind = params.algorithm

        self._ensure_ready()

        if not self.model.is_valid(start):
            return PlanningOutcome.failure(FailureReason.INVALID_START_OR_GOAL,
                                           "Start configuration is outside the joint limits or in collision",
                                           time.monotonic() - started, kind)
        if not self.model.is_valid(goal):
            return PlanningOutcome.failure(FailureReason.INVALID_START_OR_GOAL,
                                           "Goal configuration is outside the joint limits or in collision",
                                           time.monotonic() - started, kind)

        planner = self._make_planner(kind, params, projection)
        raw_path = planner.solve(start, goal)
        if raw_path is None:
            return PlanningOutcome.failure(FailureReason.NO_PATH_FOUND,
                                           f"No path found within {params.timeout:.3f}s using {kind.value}",
                                           time.monotonic() - started, kind)

        path = SimpleOptimizer(planner.verifier).process(raw_path)

        self._start = start.copy()
        self._goal = goal.copy()

        elapsed = time.monotonic() - started
        logger.info(f"Planned with {kind.value} in {elapsed:.3f}s: "
                    f"{len(raw_path)} waypoints, {len(path)} after optimization")
        return PlanningOutcome(success=True, path=path, elapsed_time=elapsed,
                               algorithm=kind, raw_waypoint_count=len(raw_path))

    def _resolve_endpoint(self, value, cached: Optional[np.ndarray], name: str) -> np.ndarray:
        if value is None:
            if cached is None:
                raise InvalidParameterError(f"Missing {name} configuration")
            return cached.copy()
        return self._as_config(value, name)

    def _resolve_parameters(self, params: Optional[AlgorithmParameters],
                            algorithm: Optional[Union[AlgorithmKind, str]]) -> AlgorithmParameters:
        base = params if params is not None else self._params
        if not isinstance(base, AlgorithmParameters):
            raise InvalidParameterError(f"Expected AlgorithmParameters, got {type(base).__name__}")

        resolved = base.replace()
        if algorithm is not None:
            resolved.algorithm = AlgorithmKind.parse(algorithm)
        resolved.validate()

        if resolved.algorithm is None:
            with self._config_lock:
                allow_default = self.settings.get('allow_default_algorithm', False)
            if not allow_default:
                raise InvalidParameterError("No planning algorithm selected")
            resolved.algorithm = AlgorithmKind.BIDIRECTIONAL_TREE
            logger.debug(f"No algorithm given, defaulting to {resolved.algorithm.value}")
        return resolved

    def _ensure_ready(self):
        """Build sampler and neighbor index factory on first use."""
        if self._state is SessionState.READY:
            return

        with self._config_lock:
            settings = copy.deepcopy(self.settings)

        nn_name = settings['nearest_neighbors']
        if nn_name not in NEAREST_NEIGHBOR_TYPES:
            raise InvalidParameterError(f"Unknown nearest_neighbors setting '{nn_name}'")
        if settings['verifier'] not in VERIFIER_TYPES:
            raise InvalidParameterError(f"Unknown verifier setting '{settings['verifier']}'")

        rng = np.random.default_rng(settings['random_seed'])
        self._sampler = UniformSampler(self.model, rng, unbounded_range=settings['unbounded_joint_range'])
        self._nearest_neighbors_factory = NEAREST_NEIGHBOR_TYPES[nn_name]
        self._state = SessionState.READY
        logger.debug(f"Planning collaborators ready ({nn_name} neighbors, {settings['verifier']} verifier)")

    def _verifier_for(self, delta: float) -> SegmentVerifier:
        if self._verifier is None or self._verifier.delta != delta:
            with self._config_lock:
                verifier_type = VERIFIER_TYPES[self.settings['verifier']]
                max_depth = int(self.settings['max_subdivision_depth'])
            self._verifier = verifier_type(self.model, delta, max_depth=max_depth)
        return self._verifier

    def _make_planner(self, kind: AlgorithmKind, params: AlgorithmParameters,
                      projection: Optional[AxisProjection]):
        sampler = projection.pin(self._sampler) if projection is not None else self._sampler
        verifier = self._verifier_for(params.delta)

        if kind is AlgorithmKind.ROADMAP:
            axis = projection.axis if projection is not None else None
            key = (params.delta, params.roadmap_k, params.roadmap_max_degree, axis)
            cached = self._roadmaps.get(key)
            if cached is not None and cached[0] == projection:
                roadmap = cached[1]
                roadmap.params = params
            else:
                # A different fixed-axis value replaces the roadmap built for the old one
                roadmap = Prm(self.model, sampler, verifier, params, self._nearest_neighbors_factory)
                self._roadmaps[key] = (projection, roadmap)
            self._roadmaps.move_to_end(key)

            with self._config_lock:
                cache_size = max(1, int(self.settings.get('roadmap_cache_size', 4)))
            while len(self._roadmaps) > cache_size:
                evicted, _ = self._roadmaps.popitem(last=False)
                logger.debug(f"Dropping cached roadmap {evicted}")
            return roadmap

        return PLANNER_TYPES[kind](self.model, sampler, verifier, params, self._nearest_neighbors_factory)

    def _reset_collaborators(self):
        self._sampler = None
        self._nearest_neighbors_factory = None
        self._verifier = None
        self._roadmaps = OrderedDict()
        if self._state is SessionState.READY:
            self._state = SessionState.BOUND

    # ------------------------------------------------------------------
    # Statistics and configuration
    # ------------------------------------------------------------------

    def _update_statistics(self, outcome: PlanningOutcome):
        with self._stats_lock:
            self.stats['total_plans'] += 1
            self.stats['total_planning_time'] += outcome.elapsed_time
            if outcome.success:
                self.stats['successful_plans'] += 1
            else:
                self.stats['failed_plans'] += 1
                reason = outcome.failure_reason.value
                self.stats['failures_by_reason'][reason] = self.stats['failures_by_reason'].get(reason, 0) + 1

    def get_statistics(self) -> Dict[str, Any]:
        """Planning counters, success rate and average planning time."""
        with self._stats_lock:
            stats = copy.deepcopy(self.stats)
        total = stats['total_plans']
        stats['success_rate'] = stats['successful_plans'] / total if total > 0 else 0.0
        stats['average_planning_time'] = stats['total_planning_time'] / total if total > 0 else 0.0
        stats['state'] = self._state.value
        return stats

    def update_config(self, new_config: Dict[str, Any]):
        """Merge settings; collaborators are rebuilt on the next plan()."""
        with self._planning_lock:
            self._check_not_released()
            with self._config_lock:
                self.settings.update(new_config)
            self._reset_collaborators()
            logger.info(f"Planner settings updated: {sorted(new_config)}")


def bind(model, config_path: Optional[str] = None) -> PlanningSession:
    """Create a session bound to model."""
    session = PlanningSession(config_path)
    session.bind_model(model)
    return session
