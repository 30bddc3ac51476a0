#!/usr/bin/env python3
"""
Scene Module

Static obstacle scene loaded from YAML. A scene is an ordered list of models;
the model at the robot-model index is the robot itself, every other model
contributes obstacle shapes.

Scene file layout::

    workspace:              # optional, points outside count as collisions
      x_min: -1.0
      x_max: 1.0
      y_min: -1.0
      y_max: 1.0
      z_min: -0.5
      z_max: 1.0
    models:
      - name: robot
        link_radius: 0.03
      - name: fixtures
        shapes:
          - {type: box, name: table, center: [0.5, 0.0, -0.1], size: [0.4, 0.4, 0.05]}
          - {type: sphere, name: ball, center: [0.0, 0.5, 0.2], radius: 0.1}
          - {type: cylinder, name: post, center: [-0.4, 0.0, -0.5], radius: 0.05, height: 1.0}

Author: Robot Control Team
"""

import numpy as np
import logging
import os
import yaml
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SHAPE_TYPES = ('box', 'sphere', 'cylinder')


class SceneLoadError(Exception):
    """Raised when a scene file cannot be read or is malformed."""
    pass


@dataclass
class Shape:
    """Workspace obstacle primitive."""
    shape_type: str
    center: np.ndarray
    size: Optional[np.ndarray] = None
    radius: float = 0.0
    height: float = 0.0
    name: str = "unnamed"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Shape":
        shape_type = data.get('type', 'box')
        if shape_type not in SHAPE_TYPES:
            raise SceneLoadError(f"Unknown shape type '{shape_type}'")

        center = np.asarray(data.get('center', [0.0, 0.0, 0.0]), dtype=float)
        if center.shape != (3,):
            raise SceneLoadError(f"Shape center must have 3 components, got {center.shape}")

        name = data.get('name', 'unnamed')
        if shape_type == 'box':
            size = np.asarray(data.get('size', [0.1, 0.1, 0.1]), dtype=float)
            if size.shape != (3,) or np.any(size < 0):
                raise SceneLoadError(f"Box '{name}' needs a non-negative 3D size")
            return cls('box', center, size=size, name=name)
        if shape_type == 'sphere':
            return cls('sphere', center, radius=float(data.get('radius', 0.05)), name=name)
        return cls('cylinder', center, radius=float(data.get('radius', 0.05)),
                   height=float(data.get('height', 1.0)), name=name)

    def intersects(self, points: np.ndarray, padding: float = 0.0) -> bool:
        """True if any of the points lies inside the shape grown by padding."""
        points = np.atleast_2d(points)

        if self.shape_type == 'box':
            half_size = self.size / 2 + padding
            inside = np.all(np.abs(points - self.center) <= half_size, axis=1)
            return bool(np.any(inside))

        if self.shape_type == 'sphere':
            dist = np.linalg.norm(points - self.center, axis=1)
            return bool(np.any(dist <= self.radius + padding))

        # Cylinder standing on its base center, axis along z
        horizontal_dist = np.linalg.norm(points[:, :2] - self.center[:2], axis=1)
        z = points[:, 2]
        inside = ((horizontal_dist <= self.radius + padding) &
                  (z >= self.center[2] - padding) &
                  (z <= self.center[2] + self.height + padding))
        return bool(np.any(inside))


class Scene:
    """Ordered collection of models, each a list of shapes."""

    def __init__(self, models: Optional[List[Dict[str, Any]]] = None,
                 workspace: Optional[Dict[str, float]] = None):
        self.models: List[Dict[str, Any]] = []
        self.workspace = workspace or {}
        for model in models or []:
            self.add_model(model)

    @classmethod
    def from_yaml(cls, path: str) -> "Scene":
        if not os.path.exists(path):
            raise SceneLoadError(f"Scene file not found: {path}")

        try:
            with open(path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SceneLoadError(f"Failed to parse scene file {path}: {e}") from e

        if not isinstance(config, dict) or not config.get('models'):
            raise SceneLoadError(f"Scene file {path} defines no models")

        scene = cls(config['models'], config.get('workspace'))
        logger.info(f"Scene loaded from {path}: {scene.num_models} models, "
                    f"{sum(len(m['shapes']) for m in scene.models)} shapes")
        return scene

    @property
    def num_models(self) -> int:
        return len(self.models)

    def add_model(self, model: Dict[str, Any]):
        self.models.append({
            'name': model.get('name', f"model_{len(self.models)}"),
            'link_radius': float(model.get('link_radius', 0.0)),
            'shapes': [Shape.from_dict(s) for s in model.get('shapes', []) or []],
        })

    def _check_index(self, robot_index: int):
        if not 0 <= robot_index < self.num_models:
            raise SceneLoadError(
                f"Invalid robot model index {robot_index} (valid range: 0 to {self.num_models - 1})")

    def link_radius(self, robot_index: int) -> float:
        self._check_index(robot_index)
        return self.models[robot_index]['link_radius']

    def obstacles_for(self, robot_index: int) -> List[Shape]:
        """All shapes that do not belong to the robot model."""
        self._check_index(robot_index)
        obstacles = []
        for i, model in enumerate(self.models):
            if i != robot_index:
                obstacles.extend(model['shapes'])
        return obstacles

    def contains_workspace(self, points: np.ndarray) -> bool:
        """True if every point lies inside the workspace box (or none is defined)."""
        if not self.workspace:
            return True

        ws = self.workspace
        lower = np.array([ws.get('x_min', -np.inf), ws.get('y_min', -np.inf), ws.get('z_min', -np.inf)])
        upper = np.array([ws.get('x_max', np.inf), ws.get('y_max', np.inf), ws.get('z_max', np.inf)])
        points = np.atleast_2d(points)
        return bool(np.all(points >= lower) and np.all(points <= upper))
