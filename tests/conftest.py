"""Pytest configuration for django-redisson tests."""

import sys
from pathlib import Path

from tests.fixtures import (
    client,
    cluster_container,
    cluster_container_factory,
    conf,
    redis_container,
    redis_container_factory,
    redis_images,
    registry,
    reset_warnings,
)

# Re-export fixtures so pytest can discover them
__all__ = [
    "client",
    "cluster_container",
    "cluster_container_factory",
    "conf",
    "redis_container",
    "redis_container_factory",
    "redis_images",
    "registry",
    "reset_warnings",
]


def pytest_configure(config):
    """Add tests directory to Python path."""
    sys.path.insert(0, str(Path(__file__).absolute().parent))
