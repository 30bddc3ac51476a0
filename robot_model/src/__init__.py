#!/usr/bin/env python3
"""
Robot Model Package - Source Module

Reference implementation of the configuration-model capability consumed by
the motion planning core:
- YAML-described serial kinematic chains evaluated with Product of Exponentials
- YAML obstacle scenes made of box, sphere and cylinder primitives
- SimpleModel binding a chain to a scene with a stateless collision query

Author: Robot Control Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Robot Control Team"

from .kinematic_chain import KinematicChain, KinematicsLoadError
from .scene import Scene, Shape, SceneLoadError
from .configuration_model import ConfigurationModel, SimpleModel, load_model

__all__ = [
    'KinematicChain',
    'KinematicsLoadError',
    'Scene',
    'Shape',
    'SceneLoadError',
    'ConfigurationModel',
    'SimpleModel',
    'load_model',
]

__title__ = "robot_model"
__description__ = "Kinematic chain and obstacle scene capability for motion planning"
__license__ = "MIT"
