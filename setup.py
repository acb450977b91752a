#!/usr/bin/env python3
"""
Setup script for the Interactive Reach Package
"""

from setuptools import setup, find_packages

setup(
    name="interactive_reach",
    version="1.0.0",
    description="Keyboard-driven IK target control with collision-aware motion planning",
    author="Thorn",
    packages=find_packages(include=["reach", "reach.*", "kinematics", "kinematics.*",
                                    "planning", "planning.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "pyyaml>=5.4",
        "matplotlib>=3.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "reach-demo=reach.__main__:main",
        ],
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
