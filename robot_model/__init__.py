"""
Robot Model Package
===================

Joint-space robot models for the motion planning core.

Package Structure:
- src/: Kinematic chain, obstacle scene and configuration model capability

Author: Robot Control Team
"""
