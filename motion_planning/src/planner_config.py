#!/usr/bin/env python3
"""
Planner Settings

Loads planner defaults from a YAML file. Lookup order: explicit path, then
config/planner.yaml at the project root or next to the package, then the
built-in defaults below.

Author: Robot Control Team
"""

import copy
import logging
import os
import yaml
from typing import Any, Dict, Optional

from .planning_types import AlgorithmKind, AlgorithmParameters

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    'default_delta': 0.1,
    'default_epsilon': 0.001,
    'default_timeout': 30.0,
    'goal_bias': 0.05,
    'roadmap_k': 30,
    'roadmap_max_degree': None,
    'roadmap_samples': 500,
    'roadmap_cache_size': 4,
    'nearest_neighbors': 'linear',
    'verifier': 'recursive',
    'max_subdivision_depth': 32,
    'unbounded_joint_range': None,
    'allow_default_algorithm': False,
    'random_seed': None,
    'model_sample_spacing': 0.02,
}


def get_default_config_path() -> str:
    """First existing candidate for planner.yaml, or the project-root one."""
    possible_paths = [
        os.path.join(os.path.dirname(__file__), "..", "..", "config", "planner.yaml"),
        os.path.join(os.path.dirname(__file__), "..", "config", "planner.yaml"),
        os.path.join(os.path.dirname(__file__), "planner.yaml")
    ]

    for path in possible_paths:
        abs_path = os.path.abspath(path)
        if os.path.exists(abs_path):
            return abs_path

    return os.path.abspath(possible_paths[0])


def load_settings(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load planner settings merged over the built-in defaults.

    Args:
        config_path: Path to a planner YAML file (default lookup if None)

    Returns:
        Settings dictionary
    """
    settings = copy.deepcopy(DEFAULT_SETTINGS)
    explicit = config_path is not None
    config_path = config_path or get_default_config_path()

    if not os.path.exists(config_path):
        if explicit:
            logger.warning(f"Planner settings file not found: {config_path}, using defaults")
        else:
            logger.debug(f"No planner settings file at {config_path}, using defaults")
        return settings

    try:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load planner settings from {config_path}: {e}")
        return settings

    if loaded:
        if not isinstance(loaded, dict):
            logger.error(f"Planner settings in {config_path} must be a mapping, using defaults")
            return settings
        settings.update(loaded.get('planner', loaded))
    logger.info(f"Planner settings loaded from {config_path}")
    return settings


def parameters_from_settings(settings: Dict[str, Any]) -> AlgorithmParameters:
    """Default AlgorithmParameters described by a settings dictionary."""
    algorithm = settings.get('default_algorithm')
    return AlgorithmParameters(
        delta=float(settings['default_delta']),
        epsilon=float(settings['default_epsilon']),
        timeout=float(settings['default_timeout']),
        algorithm=AlgorithmKind.parse(algorithm) if algorithm else None,
        goal_bias=float(settings['goal_bias']),
        roadmap_k=int(settings['roadmap_k']),
        roadmap_max_degree=settings['roadmap_max_degree'],
        roadmap_samples=int(settings['roadmap_samples']),
    )
