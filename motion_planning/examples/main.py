#!/usr/bin/env python3
"""
Planning Session Demonstration

Demonstrates the planning session including:
- Loading an XML planning descriptor (model references, start/goal, degrees)
- Planning with each search strategy
- Planning with the vertical axis held fixed
- Flattened waypoint output and session statistics
"""

import sys
import os
import numpy as np
import logging

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from motion_planning.src import (PlanningSession, AlgorithmKind, FailureReason, PlanningError)

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger('planning_session_demo')

EXAMPLES_DIR = os.path.join(os.path.dirname(__file__), '..', '..', 'config', 'examples')


def print_outcome(label, outcome):
    print(f"\n{label}")
    print("-" * 50)
    if outcome.success:
        print(f"Success with {outcome.algorithm.value} in {outcome.elapsed_time:.3f}s")
        print(f"Waypoints: {outcome.raw_waypoint_count} raw, {outcome.num_waypoints} optimized")
        for i, q in enumerate(outcome.path):
            print(f"  {i:2d}: {np.round(q, 4)}")
    else:
        print(f"Failed ({outcome.failure_reason.value}): {outcome.error_message}")


def demo_descriptor(path):
    logger.info("=== Planning from descriptor ===")
    session = PlanningSession()
    descriptor = session.load_descriptor(path)
    print(f"Model: {descriptor.kinematics_path}")
    print(f"Scene: {descriptor.scene_path} (robot index {descriptor.robot_model_index})")
    print(f"Start: {np.round(descriptor.start, 4)}")
    print(f"Goal:  {np.round(descriptor.goal, 4)}")

    outcome = session.plan()
    print_outcome(f"Descriptor plan ({descriptor.algorithm.value})", outcome)
    return session


def demo_strategies(session):
    logger.info("=== Comparing strategies ===")
    start = session.start
    goal = session.goal
    for kind in AlgorithmKind:
        outcome = session.plan(start, goal, algorithm=kind)
        print_outcome(f"Strategy {kind.value}", outcome)


def demo_fixed_axis(session):
    logger.info("=== Fixed vertical axis ===")
    start = session.start
    goal = np.array([np.deg2rad(-120.0), np.deg2rad(30.0), -0.15])
    outcome = session.plan(start, goal, algorithm=AlgorithmKind.BIDIRECTIONAL_TREE,
                           fixed_axis=session.dof() - 1)
    print_outcome("Fixed-axis plan", outcome)
    if outcome.success:
        heights = {float(q[-1]) for q in outcome.path}
        print(f"Quill positions along path: {sorted(heights)}")

        flat, count, dof = outcome.to_flat(max_waypoints=10)
        print(f"Flattened buffer: {count} waypoints x {dof} DOF = {flat.size} values")


def demo_failures(session):
    logger.info("=== Failure reporting ===")
    outcome = session.plan(start=[0.0, 0.0], algorithm="rrtConCon")
    print_outcome("DOF mismatch", outcome)

    colliding = np.array([np.deg2rad(90.0), 0.0, 0.0])
    outcome = session.plan(goal=colliding, algorithm="rrt")
    print_outcome("Goal in collision", outcome)
    assert outcome.failure_reason is FailureReason.INVALID_START_OR_GOAL


def main():
    descriptor = sys.argv[1] if len(sys.argv) > 1 else os.path.join(EXAMPLES_DIR, 'scara_plan.xml')

    try:
        session = demo_descriptor(descriptor)
    except PlanningError as e:
        logger.error(f"Could not load {descriptor}: {e}")
        return 1

    demo_strategies(session)
    demo_fixed_axis(session)
    demo_failures(session)

    stats = session.get_statistics()
    print("\nSession statistics:")
    print(f"  Plans: {stats['total_plans']} ({stats['successful_plans']} succeeded)")
    print(f"  Failures by reason: {stats['failures_by_reason']}")
    print(f"  Average planning time: {stats['average_planning_time']:.3f}s")

    session.release()
    return 0


if __name__ == "__main__":
    sys.exit(main())
