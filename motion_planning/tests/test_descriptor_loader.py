#!/usr/bin/env python3
"""
Unit Tests for Planning Descriptors

Test suite covering:
- Descriptor parsing, unit conversion and reference resolution
- Load failures reported before any model is bound
- Descriptor-driven planning sessions end to end

Author: Robot Control Team
"""

import sys
import os
import copy
import shutil
import tempfile
import unittest
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from motion_planning.src.descriptor_loader import DescriptorLoader
from motion_planning.src.planning_session import PlanningSession, SessionState
from motion_planning.src.planning_types import AlgorithmKind, LoadFailureError, InvalidParameterError
from motion_planning.src.planner_config import DEFAULT_SETTINGS

EXAMPLES_DIR = os.path.join(os.path.dirname(__file__), '..', '..', 'config', 'examples')

PLANAR_KINEMATICS = """
name: planar
joints:
  - name: j1
    type: revolute
    min: -180
    max: 180
    screw: [0, 0, 1, 0, 0, 0]
    origin: [0, 0, 0]
  - name: j2
    type: revolute
    min: -180
    max: 180
    screw: [0, 0, 1, 0, -1, 0]
    origin: [1, 0, 0]
home:
  - [1, 0, 0, 2]
  - [0, 1, 0, 0]
  - [0, 0, 1, 0]
  - [0, 0, 0, 1]
"""

OPEN_SCENE = """
models:
  - name: planar
    link_radius: 0.05
  - name: obstacles
    shapes:
      - {type: sphere, name: ball, center: [0.0, -2.0, 0.0], radius: 0.2}
"""

PLAN = """<?xml version="1.0" encoding="UTF-8"?>
<rlplan>
  <{algorithm}>
    <delta unit="deg">{delta}</delta>
    <epsilon unit="deg">0.001</epsilon>
    <duration>5</duration>
    <model>
      <kinematics href="{kinematics}"/>
      <model>0</model>
      <scene href="{scene}"/>
    </model>
    <start><q unit="deg">0</q><q unit="deg">0</q></start>
    <goal><q unit="deg">90</q><q unit="{unit}">45</q></goal>
  </{algorithm}>
</rlplan>
"""


class DescriptorTestCase(unittest.TestCase):
    """Temporary directory with a planar two-link robot and an open scene."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.kinematics = self.write('planar.yaml', PLANAR_KINEMATICS)
        self.scene = self.write('scene.yaml', OPEN_SCENE)
        self.settings = copy.deepcopy(DEFAULT_SETTINGS)
        self.settings['random_seed'] = 7

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def write(self, name, content):
        path = os.path.join(self.tmp, name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w') as f:
            f.write(content)
        return path

    def plan_file(self, name='plan.xml', algorithm='rrtConCon', delta='5', unit='deg',
                  kinematics='planar.yaml', scene='scene.yaml'):
        return self.write(name, PLAN.format(algorithm=algorithm, delta=delta, unit=unit,
                                            kinematics=kinematics, scene=scene))


class TestDescriptorLoader(DescriptorTestCase):
    """Parsing and validation of descriptor files."""

    def test_load(self):
        descriptor = DescriptorLoader(self.settings).load(self.plan_file())

        self.assertIs(descriptor.algorithm, AlgorithmKind.BIDIRECTIONAL_TREE)
        self.assertEqual(descriptor.kinematics_path, self.kinematics)
        self.assertEqual(descriptor.scene_path, self.scene)
        self.assertEqual(descriptor.robot_model_index, 0)
        self.assertAlmostEqual(descriptor.parameters.delta, np.deg2rad(5.0))
        self.assertAlmostEqual(descriptor.parameters.epsilon, np.deg2rad(0.001))
        self.assertEqual(descriptor.parameters.timeout, 5.0)
        np.testing.assert_allclose(descriptor.start, [0.0, 0.0])
        np.testing.assert_allclose(descriptor.goal, [np.pi / 2, np.pi / 4])

    def test_radian_and_native_units(self):
        descriptor = DescriptorLoader(self.settings).load(self.plan_file(unit='rad'))
        self.assertEqual(descriptor.goal[1], 45.0)

        path = self.write('native.xml', PLAN.format(algorithm='tree', delta='5', unit='rad',
                                                    kinematics='planar.yaml', scene='scene.yaml')
                          .replace('<delta unit="deg">5</delta>', '<delta>0.2</delta>'))
        descriptor = DescriptorLoader(self.settings).load(path)
        self.assertIs(descriptor.algorithm, AlgorithmKind.TREE)
        self.assertEqual(descriptor.parameters.delta, 0.2)

    def test_unknown_unit(self):
        with self.assertRaises(LoadFailureError):
            DescriptorLoader(self.settings).load(self.plan_file(unit='grad'))

    def test_bad_number(self):
        with self.assertRaises(LoadFailureError):
            DescriptorLoader(self.settings).load(self.plan_file(delta='five'))

    def test_non_integral_tunables(self):
        base = PLAN.format(algorithm='prm', delta='5', unit='deg',
                           kinematics='planar.yaml', scene='scene.yaml')
        for tunable in ('<k>nan</k>', '<k>inf</k>', '<degree>1e400</degree>',
                        '<samples>2.5</samples>', '<duration>inf</duration>'):
            with self.subTest(tunable=tunable):
                path = self.write('prm.xml', base.replace('<duration>5</duration>', tunable))
                with self.assertRaises(LoadFailureError):
                    DescriptorLoader(self.settings).load(path)

        path = self.write('prm.xml', base.replace('<duration>5</duration>', '<k>12.0</k>'))
        self.assertEqual(DescriptorLoader(self.settings).load(path).parameters.roadmap_k, 12)

    def test_robot_model_index_must_be_whole(self):
        base = PLAN.format(algorithm='rrt', delta='5', unit='deg',
                           kinematics='planar.yaml', scene='scene.yaml')
        for index in ('1.5', 'nan', 'inf', '-1'):
            with self.subTest(index=index):
                path = self.write('plan.xml', base.replace('<model>0</model>', f'<model>{index}</model>'))
                with self.assertRaises(LoadFailureError):
                    DescriptorLoader(self.settings).load(path)

    def test_missing_reference(self):
        path = self.write('plan.xml', PLAN.format(algorithm='rrt', delta='5', unit='deg',
                                                  kinematics='planar.yaml', scene='scene.yaml')
                          .replace('<kinematics href="planar.yaml"/>', ''))
        with self.assertRaises(LoadFailureError):
            DescriptorLoader(self.settings).load(path)

    def test_unresolvable_reference(self):
        with self.assertRaises(LoadFailureError):
            DescriptorLoader(self.settings).load(self.plan_file(kinematics='missing.yaml'))

    def test_relative_references(self):
        self.write(os.path.join('models', 'arm.yaml'), PLANAR_KINEMATICS)
        path = self.plan_file(name=os.path.join('plans', 'plan.xml'),
                              kinematics='../models/arm.yaml', scene='../scene.yaml')
        descriptor = DescriptorLoader(self.settings).load(path)
        self.assertEqual(descriptor.kinematics_path, os.path.join(self.tmp, 'models', 'arm.yaml'))
        self.assertEqual(descriptor.scene_path, self.scene)

    def test_malformed_xml(self):
        path = self.write('broken.xml', '<rlplan><rrt></rlplan>')
        with self.assertRaises(LoadFailureError):
            DescriptorLoader(self.settings).load(path)

    def test_wrong_root(self):
        path = self.write('other.xml', '<robot/>')
        with self.assertRaises(LoadFailureError):
            DescriptorLoader(self.settings).load(path)

    def test_missing_algorithm(self):
        path = self.write('plan.xml', PLAN.format(algorithm='settings', delta='5', unit='deg',
                                                  kinematics='planar.yaml', scene='scene.yaml'))
        with self.assertRaises(LoadFailureError):
            DescriptorLoader(self.settings).load(path)

        self.settings['allow_default_algorithm'] = True
        descriptor = DescriptorLoader(self.settings).load(path)
        self.assertIs(descriptor.algorithm, AlgorithmKind.BIDIRECTIONAL_TREE)

    def test_conflicting_algorithms(self):
        path = self.write('plan.xml', PLAN.format(algorithm='rrt', delta='5', unit='deg',
                                                  kinematics='planar.yaml', scene='scene.yaml')
                          .replace('<duration>5</duration>', '<prm/>'))
        with self.assertRaises(LoadFailureError):
            DescriptorLoader(self.settings).load(path)

    def test_roadmap_tunables_in_rl_root(self):
        content = PLAN.format(algorithm='prm', delta='5', unit='deg',
                              kinematics='planar.yaml', scene='scene.yaml')
        content = content.replace('<rlplan>', '<rl><plan>').replace('</rlplan>', '</plan></rl>')
        content = content.replace('<duration>5</duration>', '<k>12</k><degree>6</degree><samples>40</samples>')
        descriptor = DescriptorLoader(self.settings).load(self.write('prm.xml', content))

        self.assertIs(descriptor.algorithm, AlgorithmKind.ROADMAP)
        self.assertEqual(descriptor.parameters.roadmap_k, 12)
        self.assertEqual(descriptor.parameters.roadmap_max_degree, 6)
        self.assertEqual(descriptor.parameters.roadmap_samples, 40)
        self.assertEqual(descriptor.parameters.timeout, DEFAULT_SETTINGS['default_timeout'])

    def test_example_descriptor(self):
        descriptor = DescriptorLoader(self.settings).load(os.path.join(EXAMPLES_DIR, 'scara_plan.xml'))
        self.assertTrue(os.path.exists(descriptor.kinematics_path))
        self.assertTrue(os.path.exists(descriptor.scene_path))
        self.assertEqual(descriptor.start.shape, (3,))
        self.assertAlmostEqual(descriptor.goal[0], np.deg2rad(150.0))
        self.assertEqual(descriptor.goal[2], -0.1)


class TestDescriptorSession(DescriptorTestCase):
    """Sessions populated from descriptors."""

    def test_load_and_plan(self):
        session = PlanningSession(settings=self.settings)
        descriptor = session.load_descriptor(self.plan_file())

        self.assertIs(session.state, SessionState.BOUND)
        self.assertEqual(session.dof(), 2)
        self.assertIs(session.parameters.algorithm, AlgorithmKind.BIDIRECTIONAL_TREE)
        np.testing.assert_allclose(session.goal, descriptor.goal)

        outcome = session.plan()
        self.assertTrue(outcome.success, outcome.error_message)
        np.testing.assert_allclose(outcome.path[-1], [np.pi / 2, np.pi / 4])
        self.assertTrue(all(session.is_valid(q) for q in outcome.path))

    def test_load_failure_leaves_session_unbound(self):
        session = PlanningSession(settings=self.settings)
        with self.assertRaises(LoadFailureError):
            session.load_descriptor(self.plan_file(kinematics='missing.yaml'))
        self.assertIs(session.state, SessionState.UNBOUND)

        self.write('empty.yaml', '')
        with self.assertRaises(LoadFailureError):
            session.load_descriptor(self.plan_file(scene='empty.yaml'))
        self.assertIs(session.state, SessionState.UNBOUND)

    def test_descriptor_on_bound_session(self):
        session = PlanningSession(settings=self.settings)
        session.load_descriptor(self.plan_file())
        with self.assertRaises(InvalidParameterError):
            session.load_descriptor(self.plan_file())

    def test_separate_kinematics_and_scene(self):
        session = PlanningSession(settings=self.settings)
        session.load_kinematics(self.kinematics)
        self.assertIs(session.state, SessionState.UNBOUND)

        with self.assertRaises(InvalidParameterError):
            session.load_scene(self.scene, robot_model_index=5)
        session.load_scene(self.scene, robot_model_index=0)
        self.assertIs(session.state, SessionState.BOUND)

        self.assertTrue(session.is_valid([0.0, 0.0]))
        # Arm pointing straight down reaches the ball
        self.assertFalse(session.is_valid([-np.pi / 2, 0.0]))

    def test_example_session(self):
        session = PlanningSession(settings=self.settings)
        session.load_descriptor(os.path.join(EXAMPLES_DIR, 'scara_plan.xml'))
        self.assertEqual(session.dof(), 3)
        self.assertTrue(session.is_valid(session.start))
        self.assertTrue(session.is_valid(session.goal))
        self.assertFalse(session.is_valid([np.pi / 2, 0.0, 0.0]))


if __name__ == '__main__':
    unittest.main(verbosity=2)
