#!/usr/bin/env python3
"""
Kinematic Chain Module

Serial kinematic chain described by a YAML kinematics file and evaluated
with the Product of Exponentials (PoE) formulation:

    T(q) = exp([S1]q1) · exp([S2]q2) · ... · exp([Sn]qn) · M

Kinematics file layout::

    name: scara
    joints:
      - name: j1
        type: revolute          # revolute limits in degrees
        min: -150
        max: 150
        screw: [0, 0, 1, 0, 0, 0]
        origin: [0.0, 0.0, 0.0]
      - name: z
        type: prismatic         # prismatic limits in metres
        min: -0.2
        max: 0.0
        screw: [0, 0, 0, 0, 0, 1]
        origin: [0.6, 0.0, 0.0]
    home:                       # end-effector pose at q = 0
      - [1, 0, 0, 0.6]
      - [0, 1, 0, 0.0]
      - [0, 0, 1, 0.0]
      - [0, 0, 0, 1]

Joints without min/max are unbounded (±inf).

Author: Robot Control Team
"""

import numpy as np
from numpy.linalg import norm
import logging
import os
import yaml
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class KinematicsLoadError(Exception):
    """Raised when a kinematics file cannot be read or is malformed."""
    pass


class KinematicChain:
    """Serial chain with screw axes, joint origins and joint limits."""

    def __init__(self, screws: np.ndarray, home: np.ndarray, origins: np.ndarray,
                 lower_limits: np.ndarray, upper_limits: np.ndarray,
                 joint_names: Optional[List[str]] = None, name: str = "robot"):
        """
        Args:
            screws: Screw axes matrix (6 x n_joints), columns [w, v]
            home: End-effector pose at the zero configuration (4 x 4)
            origins: Joint origins at the zero configuration (n_joints x 3)
            lower_limits: Lower joint limits (radians / metres)
            upper_limits: Upper joint limits (radians / metres)
            joint_names: Optional joint names
            name: Chain name
        """
        self.S = np.asarray(screws, dtype=float)
        self.M = np.asarray(home, dtype=float)
        self.origins = np.asarray(origins, dtype=float).reshape(-1, 3)
        self.lower_limits = np.asarray(lower_limits, dtype=float)
        self.upper_limits = np.asarray(upper_limits, dtype=float)
        self.n_joints = self.S.shape[1] if self.S.ndim == 2 else 0
        self.joint_names = joint_names or [f"j{i + 1}" for i in range(self.n_joints)]
        self.name = name

        if self.n_joints == 0:
            raise KinematicsLoadError("No active joints found in the kinematic chain.")
        if self.S.shape[0] != 6:
            raise KinematicsLoadError(f"Screw axes must have 6 rows, got {self.S.shape[0]}")
        if self.M.shape != (4, 4):
            raise KinematicsLoadError(f"Home pose must be 4x4, got {self.M.shape}")
        if self.origins.shape[0] != self.n_joints:
            raise KinematicsLoadError(
                f"Expected {self.n_joints} joint origins, got {self.origins.shape[0]}")
        if self.lower_limits.shape != (self.n_joints,) or self.upper_limits.shape != (self.n_joints,):
            raise KinematicsLoadError("Joint limit arrays do not match the number of joints")
        if np.any(self.lower_limits > self.upper_limits):
            raise KinematicsLoadError("Lower joint limit exceeds upper joint limit")

    @classmethod
    def from_yaml(cls, path: str) -> "KinematicChain":
        """Load a chain from a kinematics YAML file."""
        if not os.path.exists(path):
            raise KinematicsLoadError(f"Kinematics file not found: {path}")

        try:
            with open(path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise KinematicsLoadError(f"Failed to parse kinematics file {path}: {e}") from e

        if not isinstance(config, dict) or not config.get('joints'):
            raise KinematicsLoadError(f"Kinematics file {path} defines no joints")

        chain = cls.from_dict(config)
        logger.info(f"Kinematic chain '{chain.name}' loaded from {path} with {chain.n_joints} joints")
        return chain

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "KinematicChain":
        screws, origins, lower, upper, names = [], [], [], [], []

        for i, joint in enumerate(config['joints']):
            name = joint.get('name', f"j{i + 1}")
            joint_type = joint.get('type', 'revolute')
            if joint_type not in ('revolute', 'prismatic'):
                raise KinematicsLoadError(f"Joint {name}: unknown joint type '{joint_type}'")

            screw = np.asarray(joint.get('screw', []), dtype=float)
            if screw.shape != (6,):
                raise KinematicsLoadError(f"Joint {name}: screw axis must have 6 components")

            lo = joint.get('min')
            hi = joint.get('max')
            lo = -np.inf if lo is None else float(lo)
            hi = np.inf if hi is None else float(hi)
            if joint_type == 'revolute':
                # Revolute limits are stored in degrees
                lo, hi = np.deg2rad(lo), np.deg2rad(hi)

            screws.append(screw)
            origins.append(joint.get('origin', [0.0, 0.0, 0.0]))
            lower.append(lo)
            upper.append(hi)
            names.append(name)

        home = config.get('home', np.eye(4))

        try:
            return cls(np.array(screws).T, np.array(home, dtype=float), np.array(origins, dtype=float),
                       np.array(lower), np.array(upper), joint_names=names,
                       name=config.get('name', 'robot'))
        except (TypeError, ValueError) as e:
            raise KinematicsLoadError(f"Malformed kinematics definition: {e}") from e

    @staticmethod
    def skew_symmetric(w: np.ndarray) -> np.ndarray:
        return np.array([
            [0, -w[2], w[1]],
            [w[2], 0, -w[0]],
            [-w[1], w[0], 0]
        ])

    @staticmethod
    def matrix_exp6(xi_theta: np.ndarray) -> np.ndarray:
        """
        Matrix exponential of a 6D screw vector [w·θ, v·θ].

        Pure translations (prismatic joints) fall into the zero-rotation branch.
        """
        w_theta, v_theta = xi_theta[:3], xi_theta[3:]
        theta = norm(w_theta)

        T = np.eye(4)
        if theta < 1e-12:
            T[:3, 3] = v_theta
            return T

        w = w_theta / theta
        v = v_theta / theta
        w_hat = KinematicChain.skew_symmetric(w)
        w_hat2 = w_hat @ w_hat

        # Rodrigues
        R = np.eye(3) + np.sin(theta) * w_hat + (1 - np.cos(theta)) * w_hat2
        G = (np.eye(3) * theta +
             (1 - np.cos(theta)) * w_hat +
             (theta - np.sin(theta)) * w_hat2)

        T[:3, :3] = R
        T[:3, 3] = G @ v
        return T

    def _prefix_transforms(self, q: np.ndarray) -> List[np.ndarray]:
        """Products exp([S1]q1)...exp([Si]qi) for i = 0..n."""
        transforms = [np.eye(4)]
        for i in range(self.n_joints):
            transforms.append(transforms[-1] @ self.matrix_exp6(self.S[:, i] * q[i]))
        return transforms

    def forward_kinematics(self, q: np.ndarray) -> np.ndarray:
        """End-effector pose for configuration q."""
        q = np.asarray(q, dtype=float)
        if q.ndim != 1 or q.shape[0] != self.n_joints:
            raise ValueError(f"Expected {self.n_joints} joint values, got shape {q.shape}")
        return self._prefix_transforms(q)[-1] @ self.M

    def joint_origins(self, q: np.ndarray) -> np.ndarray:
        """
        World positions of every joint origin followed by the end effector.

        Joint i's origin is carried by joints 1..i-1 only.

        Returns:
            Array of shape (n_joints + 1, 3)
        """
        q = np.asarray(q, dtype=float)
        if q.ndim != 1 or q.shape[0] != self.n_joints:
            raise ValueError(f"Expected {self.n_joints} joint values, got shape {q.shape}")

        transforms = self._prefix_transforms(q)
        points = []
        for i in range(self.n_joints):
            T = transforms[i]
            points.append(T[:3, :3] @ self.origins[i] + T[:3, 3])
        points.append((transforms[-1] @ self.M)[:3, 3])
        return np.array(points)
