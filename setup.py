#!/usr/bin/env python3
"""Setup script for the lkf Python package."""

import os
import re

from setuptools import find_packages, setup


def _read_version():
    here = os.path.dirname(os.path.abspath(__file__))
    with open(os.path.join(here, "lkf", "version.py")) as f:
        match = re.search(r'^__version__ = "([^"]+)"', f.read(), re.MULTILINE)
    if not match:
        raise RuntimeError("Cannot find __version__ in lkf/version.py")
    return match.group(1)


setup(
    name="lkf",
    version=_read_version(),
    description=(
        "Linear Kalman filter with a rotating-point tracking simulation"
    ),
    license="MIT",
    packages=find_packages(include=["lkf", "lkf.*"]),
    python_requires=">=3.8",
    install_requires=["numpy>=1.20"],
    extras_require={
        "test": ["pytest>=7"],
        "plot": ["matplotlib>=3.5"],
    },
)
