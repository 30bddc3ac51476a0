#!/usr/bin/env python3
"""
Unit Tests for Planning Collaborators

Test suite covering:
- Algorithm names, parameters and flattened outcomes
- Uniform sampling within joint limits
- Linear and k-d tree nearest neighbor indexes
- Segment verification resolution and depth limits
- Shortcut optimization
- Fixed-axis projection

Author: Robot Control Team
"""

import sys
import os
import unittest
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
sys.path.insert(0, os.path.dirname(__file__))

from motion_planning.src.planning_types import (
    AlgorithmKind, AlgorithmParameters, FailureReason, PlanningOutcome, InvalidParameterError
)
from motion_planning.src.sampler import UniformSampler
from motion_planning.src.nearest_neighbors import LinearNearestNeighbors, KdtreeNearestNeighbors
from motion_planning.src.segment_verifier import RecursiveVerifier, SequentialVerifier
from motion_planning.src.path_optimizer import SimpleOptimizer, path_length
from motion_planning.src.axis_projection import AxisProjection

from synthetic_models import BoxWorld, free_plane, wall_plane


def thin_wall(x_min, x_max):
    """2-DOF unit square with a full-height wall between x_min and x_max."""
    return BoxWorld([0.0, 0.0], [1.0, 1.0], obstacles=[([x_min, -1.0], [x_max, 2.0])])


class TestPlanningTypes(unittest.TestCase):
    """Algorithm names, parameter validation and outcome flattening."""

    def test_algorithm_aliases(self):
        self.assertIs(AlgorithmKind.parse("rrt"), AlgorithmKind.TREE)
        self.assertIs(AlgorithmKind.parse("rrtConCon"), AlgorithmKind.BIDIRECTIONAL_TREE)
        self.assertIs(AlgorithmKind.parse("RRTCONNECT"), AlgorithmKind.BIDIRECTIONAL_TREE)
        self.assertIs(AlgorithmKind.parse("goalBiasedTree"), AlgorithmKind.GOAL_BIASED_TREE)
        self.assertIs(AlgorithmKind.parse("prm"), AlgorithmKind.ROADMAP)
        self.assertIs(AlgorithmKind.parse(AlgorithmKind.ROADMAP), AlgorithmKind.ROADMAP)

    def test_unknown_algorithm_rejected(self):
        with self.assertRaises(InvalidParameterError):
            AlgorithmKind.parse("astar")
        with self.assertRaises(InvalidParameterError):
            AlgorithmKind.parse(3)

    def test_parameter_validation(self):
        params = AlgorithmParameters(algorithm="rrtGoalBias").validate()
        self.assertIs(params.algorithm, AlgorithmKind.GOAL_BIASED_TREE)

        for bad in (dict(delta=0.0), dict(delta=-1.0), dict(epsilon=-0.1), dict(timeout=0.0),
                    dict(timeout=float('inf')), dict(timeout=float('nan')),
                    dict(goal_bias=1.5), dict(roadmap_k=0), dict(roadmap_max_degree=0)):
            with self.subTest(bad=bad):
                with self.assertRaises(InvalidParameterError):
                    AlgorithmParameters(**bad).validate()

    def test_replace_returns_copy(self):
        params = AlgorithmParameters(delta=0.2)
        changed = params.replace(delta=0.05)
        self.assertEqual(params.delta, 0.2)
        self.assertEqual(changed.delta, 0.05)

    def test_to_flat(self):
        path = [np.array([0.0, 1.0]), np.array([2.0, 3.0]), np.array([4.0, 5.0])]
        outcome = PlanningOutcome(success=True, path=path)

        flat, count, dof = outcome.to_flat()
        np.testing.assert_array_equal(flat, [0.0, 1.0, 2.0, 3.0, 4.0, 5.0])
        self.assertEqual((count, dof), (3, 2))

        flat, count, dof = outcome.to_flat(max_waypoints=2)
        np.testing.assert_array_equal(flat, [0.0, 1.0, 2.0, 3.0])
        self.assertEqual(count, 2)

    def test_failure_outcome_is_empty(self):
        outcome = PlanningOutcome.failure(FailureReason.NO_PATH_FOUND, "nothing")
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.path, [])
        flat, count, dof = outcome.to_flat()
        self.assertEqual((flat.size, count, dof), (0, 0, 0))


class TestUniformSampler(unittest.TestCase):
    """Sampling within joint limits."""

    def setUp(self):
        self.model = BoxWorld([-1.0, 0.0, 2.0], [1.0, 0.5, 3.0])

    def test_samples_within_limits(self):
        sampler = UniformSampler(self.model, np.random.default_rng(1))
        for _ in range(200):
            q = sampler.generate()
            self.assertEqual(q.shape, (3,))
            self.assertTrue(self.model.is_within_limits(q))

    def test_seeded_samplers_repeat(self):
        a = UniformSampler(self.model, np.random.default_rng(42))
        b = UniformSampler(self.model, np.random.default_rng(42))
        for _ in range(10):
            np.testing.assert_array_equal(a.generate(), b.generate())

    def test_unbounded_joint_requires_range(self):
        model = BoxWorld([-np.inf, 0.0], [np.inf, 1.0])
        with self.assertRaises(InvalidParameterError):
            UniformSampler(model)

        with self.assertLogs('motion_planning.src.sampler', level='WARNING'):
            sampler = UniformSampler(model, np.random.default_rng(3), unbounded_range=(-2.0, 2.0))
        for _ in range(50):
            q = sampler.generate()
            self.assertTrue(-2.0 <= q[0] <= 2.0)
            self.assertTrue(0.0 <= q[1] <= 1.0)

    def test_pinned_axis(self):
        sampler = UniformSampler(self.model, np.random.default_rng(5))
        pinned = sampler.pin(2, 2.25)
        for _ in range(50):
            self.assertEqual(pinned.generate()[2], 2.25)
        self.assertIs(pinned.rng, sampler.rng)
        self.assertEqual(sampler.fixed_axes, {})


class TestNearestNeighbors(unittest.TestCase):
    """Linear scan and k-d tree indexes."""

    def test_linear_nearest(self):
        index = LinearNearestNeighbors()
        for q in ([0.0, 0.0], [1.0, 0.0], [0.0, 1.0]):
            index.insert(np.array(q))

        neighbor = index.nearest(np.array([0.9, 0.1]))
        self.assertEqual(neighbor.index, 1)
        self.assertAlmostEqual(neighbor.distance, np.sqrt(0.02))
        self.assertEqual(len(index), 3)

    def test_linear_tie_is_first_found(self):
        index = LinearNearestNeighbors()
        index.insert(np.array([1.0, 0.0]))
        index.insert(np.array([-1.0, 0.0]))
        self.assertEqual(index.nearest(np.array([0.0, 0.0])).index, 0)

    def test_k_larger_than_size_returns_all(self):
        for index_type in (LinearNearestNeighbors, KdtreeNearestNeighbors):
            with self.subTest(index_type=index_type.__name__):
                index = index_type()
                for x in (0.0, 0.3, 0.1):
                    index.insert(np.array([x]))
                neighbors = index.k_nearest(np.array([0.0]), 10)
                self.assertEqual([n.index for n in neighbors], [0, 2, 1])

    def test_empty_query_raises(self):
        for index_type in (LinearNearestNeighbors, KdtreeNearestNeighbors):
            with self.subTest(index_type=index_type.__name__):
                with self.assertRaises(ValueError):
                    index_type().nearest(np.zeros(2))

    def test_kdtree_matches_linear(self):
        rng = np.random.default_rng(11)
        linear = LinearNearestNeighbors()
        kdtree = KdtreeNearestNeighbors()
        for q in rng.uniform(-1.0, 1.0, size=(200, 4)):
            linear.insert(q)
            kdtree.insert(q)

        for query in rng.uniform(-1.0, 1.0, size=(20, 4)):
            expected = linear.k_nearest(query, 5)
            actual = kdtree.k_nearest(query, 5)
            self.assertEqual([n.index for n in actual], [n.index for n in expected])
            for a, e in zip(actual, expected):
                self.assertAlmostEqual(a.distance, e.distance)

    def test_kdtree_rebuilds_are_batched(self):
        rng = np.random.default_rng(12)
        linear = LinearNearestNeighbors()
        kdtree = KdtreeNearestNeighbors()
        # Query after every insertion, the way a growing tree does
        for q in rng.uniform(-1.0, 1.0, size=(1000, 3)):
            linear.insert(q)
            kdtree.insert(q)
            query = rng.uniform(-1.0, 1.0, size=3)
            self.assertEqual(kdtree.nearest(query).index, linear.nearest(query).index)

        self.assertLess(kdtree.rebuilds, 30)
        expected = linear.k_nearest(np.zeros(3), 8)
        actual = kdtree.k_nearest(np.zeros(3), 8)
        self.assertEqual([n.index for n in actual], [n.index for n in expected])

    def test_kdtree_sees_new_insertions(self):
        index = KdtreeNearestNeighbors()
        index.insert(np.array([1.0, 1.0]))
        self.assertEqual(index.nearest(np.zeros(2)).index, 0)
        index.insert(np.array([0.1, 0.0]))
        self.assertEqual(index.nearest(np.zeros(2)).index, 1)


class TestSegmentVerifier(unittest.TestCase):
    """Resolution and depth behaviour of the verifiers."""

    def test_fine_resolution_finds_thin_obstacle(self):
        model = thin_wall(0.3, 0.32)
        a, b = np.array([0.0, 0.5]), np.array([1.0, 0.5])

        self.assertTrue(RecursiveVerifier(model, delta=0.5).is_valid_segment(a, b))
        self.assertFalse(RecursiveVerifier(model, delta=0.01).is_valid_segment(a, b))
        self.assertFalse(SequentialVerifier(model, delta=0.01).is_valid_segment(a, b))

    def test_short_segment_midpoint_checked(self):
        model = thin_wall(0.124, 0.126)
        a, b = np.array([0.1, 0.5]), np.array([0.15, 0.5])
        self.assertFalse(RecursiveVerifier(model, delta=0.1).is_valid_segment(a, b))
        self.assertTrue(RecursiveVerifier(free_plane(), delta=0.1).is_valid_segment(a, b))

    def test_obstacle_wider_than_delta_always_found(self):
        model = thin_wall(0.5, 0.52)
        verifier = RecursiveVerifier(model, delta=0.01)
        for x0 in (0.0, 0.13, 0.37):
            with self.subTest(x0=x0):
                self.assertFalse(verifier.is_valid_segment(np.array([x0, 0.2]), np.array([1.0, 0.9])))

    def test_check_count_is_logarithmic(self):
        verifier = RecursiveVerifier(free_plane(), delta=0.01)
        self.assertTrue(verifier.is_valid_segment(np.array([0.0, 0.0]), np.array([1.0, 0.0])))
        # 2 endpoints + 255 midpoints, the last level splitting sub-segments of 1/128
        self.assertEqual(verifier.checks, 257)

    def test_invalid_endpoint(self):
        verifier = RecursiveVerifier(free_plane(), delta=0.1)
        self.assertFalse(verifier.is_valid_segment(np.array([0.5, 0.5]), np.array([1.5, 0.5])))

    def test_depth_limit_rejects(self):
        verifier = RecursiveVerifier(free_plane(), delta=0.01, max_depth=3)
        with self.assertLogs('motion_planning.src.segment_verifier', level='WARNING'):
            self.assertFalse(verifier.is_valid_segment(np.array([0.0, 0.0]), np.array([1.0, 0.0])))
        self.assertEqual(verifier.required_depth(1.0), 7)

    def test_path_validation(self):
        verifier = RecursiveVerifier(wall_plane(), delta=0.01)
        around = [np.array([0.1, 0.1]), np.array([0.1, 0.95]), np.array([0.9, 0.95]), np.array([0.9, 0.1])]
        through = [np.array([0.1, 0.1]), np.array([0.9, 0.1])]
        self.assertTrue(verifier.is_valid_path(around))
        self.assertFalse(verifier.is_valid_path(through))
        self.assertFalse(verifier.is_valid_path([]))

    def test_non_positive_delta(self):
        with self.assertRaises(ValueError):
            RecursiveVerifier(free_plane(), delta=0.0)


class TestSimpleOptimizer(unittest.TestCase):
    """Shortcutting keeps a verified subsequence."""

    def test_free_space_collapses_to_endpoints(self):
        optimizer = SimpleOptimizer(RecursiveVerifier(free_plane(), delta=0.01))
        path = [np.array(p) for p in ([0.0, 0.0], [0.2, 0.5], [0.4, 0.0], [0.6, 0.5], [1.0, 0.0])]
        result = optimizer.process(path)
        self.assertEqual(len(result), 2)
        np.testing.assert_array_equal(result[0], path[0])
        np.testing.assert_array_equal(result[-1], path[-1])

    def test_shortcut_around_wall(self):
        verifier = RecursiveVerifier(wall_plane(), delta=0.01)
        optimizer = SimpleOptimizer(verifier)
        path = [np.array(p) for p in ([0.1, 0.1], [0.1, 0.95], [0.5, 0.95], [0.9, 0.95], [0.9, 0.1])]

        result = optimizer.process(path)
        self.assertEqual([p.tolist() for p in result], [[0.1, 0.1], [0.5, 0.95], [0.9, 0.1]])
        self.assertTrue(verifier.is_valid_path(result))
        self.assertLess(path_length(result), path_length(path))

        # Second pass changes nothing
        again = optimizer.process(result)
        self.assertEqual([p.tolist() for p in again], [p.tolist() for p in result])

    def test_short_paths_unchanged(self):
        optimizer = SimpleOptimizer(RecursiveVerifier(free_plane(), delta=0.1))
        path = [np.array([0.1, 0.1]), np.array([0.2, 0.2])]
        result = optimizer.process(path)
        self.assertEqual(len(result), 2)
        self.assertIsNot(result[0], path[0])

    def test_path_length(self):
        self.assertAlmostEqual(path_length([np.zeros(2), np.array([3.0, 4.0]), np.array([3.0, 5.0])]), 6.0)
        self.assertEqual(path_length([np.zeros(2)]), 0.0)


class TestAxisProjection(unittest.TestCase):
    """Fixed-axis goal projection."""

    def test_no_axis(self):
        self.assertIsNone(AxisProjection.resolve(None, np.zeros(3), 3))

    def test_apply_copies_start_value(self):
        projection = AxisProjection.resolve(2, np.array([0.1, 0.2, 0.3]), 3)
        goal = np.array([0.8, 0.7, 0.9])
        projected = projection.apply(goal)
        np.testing.assert_array_equal(projected, [0.8, 0.7, 0.3])
        self.assertEqual(goal[2], 0.9)

    def test_invalid_requests(self):
        start = np.zeros(3)
        for axis, s, dof in ((3, start, 3), (-1, start, 3), (1.0, start, 3), (True, start, 3),
                             (0, np.zeros(1), 1), (0, None, 3)):
            with self.subTest(axis=axis, dof=dof):
                with self.assertRaises(InvalidParameterError):
                    AxisProjection.resolve(axis, s, dof)


if __name__ == '__main__':
    unittest.main(verbosity=2)
