#!/usr/bin/env python3
"""
Configuration Model Capability

The planning core only talks to a robot through this capability:
degrees of freedom, joint limits, joint-limit validity and a collision query
against the bound scene. Any object implementing ConfigurationModel can be
bound to a planning session.

SimpleModel is the reference implementation built from a KinematicChain and
a Scene. Its collision query is a pure function of the configuration, so a
single model can be shared between collaborators without a mutable
"current position".

Author: Robot Control Team
"""

import numpy as np
import logging
from typing import List, Optional, Tuple

from .kinematic_chain import KinematicChain
from .scene import Scene, Shape

logger = logging.getLogger(__name__)


class ConfigurationModel:
    """Abstract joint-space model with a collision capability."""

    @property
    def dof(self) -> int:
        raise NotImplementedError

    def joint_limits(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return (lower, upper) limit arrays. Unbounded joints use ±inf."""
        raise NotImplementedError

    def is_colliding(self, q: np.ndarray) -> bool:
        raise NotImplementedError

    def forward_position(self, q: np.ndarray) -> np.ndarray:
        """Map a configuration to a 4x4 workspace pose."""
        raise NotImplementedError(f"{type(self).__name__} has no forward kinematics")

    def is_within_limits(self, q: np.ndarray) -> bool:
        q = self._check_shape(q)
        lower, upper = self.joint_limits()
        return bool(np.all(q >= lower) and np.all(q <= upper))

    def is_valid(self, q: np.ndarray) -> bool:
        """Joint limits first (cheap), then collision."""
        if not self.is_within_limits(q):
            return False
        return not self.is_colliding(np.asarray(q, dtype=float))

    def _check_shape(self, q) -> np.ndarray:
        q = np.asarray(q, dtype=float)
        if q.ndim != 1 or q.shape[0] != self.dof:
            raise ValueError(f"Expected configuration of length {self.dof}, got shape {q.shape}")
        return q


class SimpleModel(ConfigurationModel):
    """Kinematic chain plus obstacle scene, checked by sampling link segments."""

    def __init__(self, chain: KinematicChain, scene: Scene, robot_index: int = 0,
                 sample_spacing: float = 0.02):
        """
        Args:
            chain: Kinematic chain of the robot
            scene: Scene holding the robot model and the obstacles
            robot_index: Index of the robot model inside the scene
            sample_spacing: Spacing of collision samples along each link (m)
        """
        if sample_spacing <= 0:
            raise ValueError("sample_spacing must be positive")

        self.chain = chain
        self.scene = scene
        self.robot_index = robot_index
        self.sample_spacing = sample_spacing

        self.link_radius = scene.link_radius(robot_index)
        self.obstacles: List[Shape] = scene.obstacles_for(robot_index)

        logger.info(f"Model '{chain.name}' bound to scene with {len(self.obstacles)} obstacle shapes "
                    f"(robot index {robot_index}, {chain.n_joints} DOF)")

    @property
    def dof(self) -> int:
        return self.chain.n_joints

    def joint_limits(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.chain.lower_limits.copy(), self.chain.upper_limits.copy()

    def forward_position(self, q: np.ndarray) -> np.ndarray:
        return self.chain.forward_kinematics(self._check_shape(q))

    def link_samples(self, q: np.ndarray) -> np.ndarray:
        """Points sampled along every link segment at the configured spacing."""
        origins = self.chain.joint_origins(self._check_shape(q))
        samples = [origins[0]]
        for p0, p1 in zip(origins[:-1], origins[1:]):
            length = np.linalg.norm(p1 - p0)
            n = max(1, int(np.ceil(length / self.sample_spacing)))
            t = np.linspace(0.0, 1.0, n + 1)[1:, None]
            samples.extend(p0 + t * (p1 - p0))
        return np.array(samples)

    def is_colliding(self, q: np.ndarray) -> bool:
        points = self.link_samples(q)

        if not self.scene.contains_workspace(points):
            return True

        for shape in self.obstacles:
            if shape.intersects(points, self.link_radius):
                logger.debug(f"Configuration {np.round(q, 4)} collides with '{shape.name}'")
                return True
        return False


def load_model(kinematics_path: str, scene_path: str, robot_index: int = 0,
               sample_spacing: Optional[float] = None) -> SimpleModel:
    """Load a kinematics file and a scene file and bind them into a SimpleModel."""
    chain = KinematicChain.from_yaml(kinematics_path)
    scene = Scene.from_yaml(scene_path)
    if sample_spacing is None:
        return SimpleModel(chain, scene, robot_index)
    return SimpleModel(chain, scene, robot_index, sample_spacing=sample_spacing)
