"""Test fixtures for django-redisson."""

from tests.fixtures.client import client, conf, registry, reset_warnings
from tests.fixtures.containers import (
    RedisContainerInfo,
    cluster_container,
    cluster_container_factory,
    redis_container,
    redis_container_factory,
    redis_images,
)

__all__ = [
    "RedisContainerInfo",
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
