#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for the SignalGrid connector normalizer
"""

from pathlib import Path

from setuptools import find_packages, setup

VERSION = "1.0.0"

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")
else:
    long_description = "SignalGrid connector normalization pipeline"

setup(
    name="signalgrid",
    version=VERSION,
    description="Normalize raw connector records into canonical time series points",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="SignalGrid Platform Team",
    license="MIT",
    python_requires=">=3.9",
    packages=find_packages(include=["signalgrid", "signalgrid.*"]),
    install_requires=[
        "pydantic>=2.0",
        "prometheus_client>=0.17",
        "PyYAML>=6.0",
        "typer>=0.9",
        "rich>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "sg-normalize=signalgrid.connector_normalizer.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
