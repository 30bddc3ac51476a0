#!/usr/bin/env python3
"""
Planning Descriptor Loader

Reads an XML planning descriptor:

    <rlplan>
      <bidirectionalTree>
        <delta unit="deg">1</delta>
        <epsilon unit="deg">0.001</epsilon>
        <duration>60</duration>
        <model>
          <kinematics href="robot.yaml"/>
          <model>0</model>
          <scene href="scene.yaml"/>
        </model>
        <start><q unit="deg">0</q><q unit="deg">0</q></start>
        <goal><q unit="deg">90</q><q unit="deg">45</q></goal>
      </bidirectionalTree>
    </rlplan>

The root may also be <plan>, or <rl> wrapping a <plan>. Elements are looked
up anywhere below the root. Angles tagged unit="deg" are converted to
radians; untagged values are taken as-is. Referenced files are resolved
relative to the descriptor's directory.

Author: Robot Control Team
"""

import os
import math
import copy
import logging
import numpy as np
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .planning_types import (AlgorithmKind, AlgorithmParameters, ALGORITHM_ALIASES,
                             InvalidParameterError, LoadFailureError)
from .planner_config import load_settings, parameters_from_settings

logger = logging.getLogger(__name__)

ANGLE_UNITS = {
    'deg': np.pi / 180.0,
    'rad': 1.0,
}


@dataclass
class PlanningDescriptor:
    """Everything a descriptor file specifies, with paths made absolute."""
    descriptor_path: str
    kinematics_path: str
    scene_path: str
    robot_model_index: int
    algorithm: AlgorithmKind
    parameters: AlgorithmParameters
    start: Optional[np.ndarray] = None
    goal: Optional[np.ndarray] = None


class DescriptorLoader:
    """Parses planning descriptors into PlanningDescriptor objects."""

    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        self.settings = copy.deepcopy(settings) if settings is not None else load_settings()

    def load(self, path: str) -> PlanningDescriptor:
        """
        Load and resolve a descriptor file.

        Args:
            path: Descriptor file path

        Returns:
            PlanningDescriptor

        Raises:
            LoadFailureError: Unreadable file, malformed XML, missing or
                unresolvable model references, bad values or units
        """
        path = os.path.abspath(path)
        try:
            tree = ET.parse(path)
        except (OSError, ET.ParseError) as e:
            raise LoadFailureError(f"Cannot read planning descriptor {path}: {e}") from e

        plan = self._plan_element(tree.getroot(), path)
        base_dir = os.path.dirname(path)

        model = self._model_element(plan, path)
        kinematics_path = self._resolve_href(model, 'kinematics', base_dir, path)
        scene_path = self._resolve_href(model, 'scene', base_dir, path)
        robot_index = self._robot_model_index(model)

        algorithm, algorithm_element = self._algorithm(plan, path)
        parameters = self._parameters(plan, algorithm, algorithm_element)

        descriptor = PlanningDescriptor(
            descriptor_path=path,
            kinematics_path=kinematics_path,
            scene_path=scene_path,
            robot_model_index=robot_index,
            algorithm=algorithm,
            parameters=parameters,
            start=self._configuration(plan, 'start'),
            goal=self._configuration(plan, 'goal'),
        )

        logger.info(f"Loaded planning descriptor {path}: {algorithm.value}, "
                    f"delta={parameters.delta:.4g}, timeout={parameters.timeout:.1f}s")
        return descriptor

    def _plan_element(self, root: ET.Element, path: str) -> ET.Element:
        if root.tag in ('rlplan', 'plan'):
            return root
        if root.tag == 'rl':
            plan = root.find('plan')
            if plan is not None:
                return plan
        raise LoadFailureError(f"{path}: expected <rlplan>, <plan> or <rl><plan> root, got <{root.tag}>")

    def _model_element(self, plan: ET.Element, path: str) -> ET.Element:
        for element in plan.iter('model'):
            if element.find('kinematics') is not None or element.find('scene') is not None:
                return element
        raise LoadFailureError(f"{path}: no <model> element with kinematics and scene references")

    def _resolve_href(self, model: ET.Element, tag: str, base_dir: str, path: str) -> str:
        element = model.find(tag)
        href = element.attrib.get('href') if element is not None else None
        if not href:
            raise LoadFailureError(f"{path}: missing <{tag} href=...> reference")

        resolved = href if os.path.isabs(href) else os.path.normpath(os.path.join(base_dir, href))
        if not os.path.exists(resolved):
            raise LoadFailureError(f"{path}: {tag} file not found: {resolved}")
        return resolved

    def _robot_model_index(self, model: ET.Element) -> int:
        element = model.find('model')
        if element is None or not (element.text or '').strip():
            return 0
        index = self._parse_int(element.text, "<model> index")
        if index < 0:
            raise LoadFailureError(f"Robot model index must be non-negative, got {index}")
        return index

    def _algorithm(self, plan: ET.Element, path: str):
        found = {}
        for element in plan.iter():
            kind = ALGORITHM_ALIASES.get(element.tag.lower())
            if kind is not None and kind not in found:
                found[kind] = element

        if len(found) > 1:
            names = ', '.join(k.value for k in found)
            raise LoadFailureError(f"{path}: more than one algorithm specified ({names})")
        if found:
            return next(iter(found.items()))

        if self.settings.get('allow_default_algorithm', False):
            logger.warning(f"{path}: no algorithm element, using {AlgorithmKind.BIDIRECTIONAL_TREE.value}")
            return AlgorithmKind.BIDIRECTIONAL_TREE, plan
        raise LoadFailureError(f"{path}: no algorithm element "
                               f"({', '.join(k.value for k in AlgorithmKind)})")

    def _parameters(self, plan: ET.Element, algorithm: AlgorithmKind,
                    algorithm_element: ET.Element) -> AlgorithmParameters:
        defaults = parameters_from_settings(self.settings)
        changes: Dict[str, Any] = {'algorithm': algorithm}

        delta = self._angle(plan, 'delta')
        if delta is not None:
            changes['delta'] = delta
        epsilon = self._angle(plan, 'epsilon')
        if epsilon is not None:
            changes['epsilon'] = epsilon
        duration = self._number(plan, 'duration')
        if duration is not None:
            changes['timeout'] = duration

        probability = self._number(algorithm_element, 'probability')
        if probability is not None:
            changes['goal_bias'] = probability
        k = self._integer(algorithm_element, 'k')
        if k is not None:
            changes['roadmap_k'] = k
        degree = self._integer(algorithm_element, 'degree')
        if degree is not None:
            changes['roadmap_max_degree'] = degree
        samples = self._integer(algorithm_element, 'samples')
        if samples is not None:
            changes['roadmap_samples'] = samples

        try:
            return defaults.replace(**changes).validate()
        except InvalidParameterError as e:
            raise LoadFailureError(f"Invalid algorithm parameters in descriptor: {e}") from e

    def _configuration(self, plan: ET.Element, tag: str) -> Optional[np.ndarray]:
        element = next(plan.iter(tag), None)
        if element is None:
            return None

        values: List[float] = []
        for q in element.iter('q'):
            scale = self._unit_scale(q)
            values.extend(self._parse_float(v, f"<{tag}><q>") * scale for v in (q.text or '').split())

        if not values:
            logger.warning(f"<{tag}> element contains no <q> values, ignoring it")
            return None
        return np.array(values, dtype=float)

    def _angle(self, scope: ET.Element, tag: str) -> Optional[float]:
        element = next(scope.iter(tag), None)
        if element is None:
            return None
        return self._parse_float(element.text, f"<{tag}>") * self._unit_scale(element)

    def _number(self, scope: ET.Element, tag: str) -> Optional[float]:
        element = next(scope.iter(tag), None)
        if element is None:
            return None
        return self._parse_float(element.text, f"<{tag}>")

    def _integer(self, scope: ET.Element, tag: str) -> Optional[int]:
        element = next(scope.iter(tag), None)
        if element is None:
            return None
        return self._parse_int(element.text, f"<{tag}>")

    @staticmethod
    def _unit_scale(element: ET.Element) -> float:
        unit = element.attrib.get('unit')
        if unit is None:
            return 1.0
        if unit not in ANGLE_UNITS:
            raise LoadFailureError(f"Unknown unit '{unit}' on <{element.tag}>, expected deg or rad")
        return ANGLE_UNITS[unit]

    @staticmethod
    def _parse_float(text: Optional[str], what: str) -> float:
        try:
            return float((text or '').strip())
        except ValueError as e:
            raise LoadFailureError(f"Cannot parse {what} value '{text}'") from e

    @classmethod
    def _parse_int(cls, text: Optional[str], what: str) -> int:
        """Whole numbers only; '12' and '12.0' parse, '1.5', 'nan' and 'inf' do not."""
        value = cls._parse_float(text, what)
        if not math.isfinite(value) or not value.is_integer():
            raise LoadFailureError(f"{what} must be an integer, got '{text}'")
        return int(value)
