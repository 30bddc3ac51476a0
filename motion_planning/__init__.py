"""
Motion Planning Package
=======================

Sampling-based motion planning sessions for joint-space robot models.

Package Structure:
- src/: Planning session, search strategies and their collaborators
- tests/: Unit tests
- examples/: Usage examples

Author: Robot Control Team
"""
