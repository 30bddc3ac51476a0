#!/usr/bin/env python3
"""
Setup script for the Robot Motion Planning Session Package
"""

from setuptools import setup, find_packages

setup(
    name="robot_planning_session",
    version="1.0.0",
    description="Sampling-based motion planning sessions with tree and roadmap strategies",
    author="Thorn",
    packages=find_packages(include=["motion_planning", "motion_planning.*", "robot_model", "robot_model.*"]),
    package_data={"": ["*.yaml"]},
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "PyYAML>=5.3",
    ],
    extras_require={
        "test": ["pytest>=6.0"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
