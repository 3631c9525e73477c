"""Container fixtures for Redis and Redis Cluster using testcontainers.

Integration tests request ``redis_container`` or ``cluster_container``; both
skip the test when no Docker daemon is reachable.
"""

import time
from collections.abc import Callable, Generator
from contextlib import suppress
from os import environ
from typing import NamedTuple

import docker
import pytest
import redis
from testcontainers.core.container import DockerContainer
from testcontainers.core.waiting_utils import wait_for_logs

# Available Redis-compatible images with their corresponding client library
# Format: (image, client_library) where client_library is "redis" or "valkey"
REDIS_IMAGES = [
    ("redis:latest", "redis"),
    ("redis:6.2", "redis"),
]
DEFAULT_REDIS_IMAGE = "redis:latest"
DEFAULT_CLIENT_LIBRARY = "redis"

# Redis Cluster image (runs 6 nodes in single container: 3 masters + 3 replicas)
# See: https://github.com/Grokzen/docker-redis-cluster
REDIS_CLUSTER_IMAGE = "grokzen/redis-cluster:7.0.10"
CLUSTER_NODE_COUNT = 6
CLUSTER_BASE_PORT = 17000
CLUSTER_PORT_SPACING = 10  # Gap between worker port ranges for xdist
CLUSTER_RETRY_OFFSET = 100
CLUSTER_START_RETRIES = 3
CLUSTER_READY_TIMEOUT = 30.0
CLUSTER_READY_INTERVAL = 0.5


class ContainerInfo(NamedTuple):
    """Container connection info plus the container object for cleanup."""

    host: str
    port: int
    container: DockerContainer


class RedisContainerInfo(NamedTuple):
    """Redis container connection info with client library."""

    host: str
    port: int
    client_library: str  # "redis" or "valkey"

    @property
    def addr(self) -> str:
        return f"{self.host}:{self.port}"


def _require_docker() -> None:
    try:
        docker.from_env().ping()
    except Exception:  # noqa: BLE001
        pytest.skip("Docker is not available")


def _start_redis_container(image: str) -> ContainerInfo:
    """Start a Redis server with the given image on a random host port."""
    container = DockerContainer(image)
    container.with_exposed_ports(6379)
    container.with_command("redis-server --protected-mode no")
    container.start()
    wait_for_logs(container, "Ready to accept connections")
    return ContainerInfo(
        host=container.get_container_host_ip(),
        port=int(container.get_exposed_port(6379)),
        container=container,
    )


def _get_xdist_worker_id() -> int:
    """Get the xdist worker ID from environment, or 0 if not running under xdist."""
    worker = environ.get("PYTEST_XDIST_WORKER", "")
    if worker.startswith("gw"):
        return int(worker[2:])
    return 0


def _wait_for_cluster_ready(host: str, port: int, *, timeout: float = CLUSTER_READY_TIMEOUT) -> None:
    """Wait until ``CLUSTER INFO`` reports ``cluster_state:ok``.

    The container log message can appear before all nodes serve commands.
    """
    deadline = time.monotonic() + timeout
    last_error: Exception | None = None

    while time.monotonic() < deadline:
        try:
            client = redis.Redis(host=host, port=port, socket_connect_timeout=2)
            info = client.execute_command("CLUSTER", "INFO")
            client.close()
            if isinstance(info, bytes) and b"cluster_state:ok" in info:
                return
        except Exception as e:  # noqa: BLE001
            last_error = e
        time.sleep(CLUSTER_READY_INTERVAL)

    msg = f"Cluster not ready after {timeout}s"
    if last_error:
        msg += f": {last_error}"
    raise RuntimeError(msg)


def _start_cluster_container(base_port: int) -> ContainerInfo:
    """Start a Redis Cluster container (grokzen/redis-cluster).

    Ports are bound to fixed host ports because cluster nodes announce their
    addresses to clients. A port range that is taken is retried further up.
    """
    last_error: Exception | None = None
    for attempt in range(CLUSTER_START_RETRIES):
        first_port = base_port + attempt * CLUSTER_RETRY_OFFSET
        container = DockerContainer(REDIS_CLUSTER_IMAGE)
        container.with_env("IP", "0.0.0.0")  # noqa: S104
        container.with_env("INITIAL_PORT", str(first_port))
        for port in range(first_port, first_port + CLUSTER_NODE_COUNT):
            container.with_bind_ports(port, port)
        try:
            container.start()
        except Exception as e:  # noqa: BLE001
            last_error = e
            with suppress(Exception):
                container.stop()
            continue
        wait_for_logs(container, "Cluster state changed: ok")
        host = container.get_container_host_ip()
        _wait_for_cluster_ready(host, first_port)
        return ContainerInfo(host=host, port=first_port, container=container)
    msg = f"Failed to start cluster container after {CLUSTER_START_RETRIES} attempts"
    raise RuntimeError(msg) from last_error


ContainerFactory = Callable[[str], tuple[str, int]]


@pytest.fixture(params=REDIS_IMAGES, ids=lambda x: f"{x[0].split('/')[0]}-{x[1]}")
def redis_images(request) -> tuple[str, str]:
    """Parametrized image fixture. Request this to test all Redis-compatible images."""
    return request.param


@pytest.fixture(scope="session")
def redis_container_factory() -> Generator[ContainerFactory]:
    """Session-scoped factory that creates and caches Redis containers by image."""
    cache: dict[str, ContainerInfo] = {}

    def get_container(image: str) -> tuple[str, int]:
        if image not in cache:
            _require_docker()
            cache[image] = _start_redis_container(image)
        info = cache[image]
        return info.host, info.port

    yield get_container

    for info in cache.values():
        with suppress(Exception):
            info.container.stop()


@pytest.fixture
def redis_container(
    redis_container_factory: ContainerFactory,
    request: pytest.FixtureRequest,
) -> RedisContainerInfo:
    """Get a Redis container, using redis_images if opted in."""
    if "redis_images" in request.fixturenames:
        image, client_library = request.getfixturevalue("redis_images")
    else:
        image = DEFAULT_REDIS_IMAGE
        client_library = DEFAULT_CLIENT_LIBRARY

    host, port = redis_container_factory(image)
    return RedisContainerInfo(host, port, client_library)


@pytest.fixture(scope="session")
def cluster_container_factory() -> Generator[ContainerFactory]:
    """Session-scoped factory for the Redis Cluster container."""
    cached_info: list[ContainerInfo | None] = [None]

    def get_container(_image: str = "") -> tuple[str, int]:
        if cached_info[0] is None:
            _require_docker()
            base_port = CLUSTER_BASE_PORT + (_get_xdist_worker_id() * CLUSTER_PORT_SPACING)
            cached_info[0] = _start_cluster_container(base_port)
        info = cached_info[0]
        return info.host, info.port

    yield get_container

    if cached_info[0] is not None:
        with suppress(Exception):
            cached_info[0].container.stop()


@pytest.fixture
def cluster_container(cluster_container_factory: ContainerFactory) -> tuple[str, int]:
    """Get a Redis Cluster container."""
    return cluster_container_factory("")
