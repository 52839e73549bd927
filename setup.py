#!/usr/bin/env python3
"""
KV-DB Setup Script
==================
Allows installation of the kvdb package.

Usage:
    pip install -e .           # Development install
    pip install -e ".[test]"   # Development install with test tooling
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="kvdb",
    version="1.0.0",
    packages=find_packages(include=["kvdb", "kvdb.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "kvdb=kvdb.server:main",
        ],
    },
)
