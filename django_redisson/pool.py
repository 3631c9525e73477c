"""Driver factories for standalone, sentinel, cluster and mock connections."""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.utils.module_loading import import_string

from django_redisson.exceptions import NoCacheError

if TYPE_CHECKING:
    from django_redisson.conf import Conf

logger = logging.getLogger(__name__)

# Try to import redis-py
_REDIS_AVAILABLE = False
try:
    from redis import Redis as RedisClient
    from redis.cluster import ClusterNode as RedisClusterNode
    from redis.cluster import RedisCluster as RedisClusterClient
    from redis.sentinel import Sentinel as RedisSentinel

    _REDIS_AVAILABLE = True
except ImportError:
    pass

# Try to import valkey-py
_VALKEY_AVAILABLE = False
try:
    from valkey import Valkey as ValkeyClient
    from valkey.cluster import ClusterNode as ValkeyClusterNode
    from valkey.cluster import ValkeyCluster as ValkeyClusterClient
    from valkey.sentinel import Sentinel as ValkeySentinel

    _VALKEY_AVAILABLE = True
except ImportError:
    pass

DEFAULT_CONNECTION_FACTORY = "django_redisson.pool.ConnectionFactory"


def split_addr(addr: str) -> tuple[str, int]:
    """Split ``"host:port"`` into its parts; the port defaults to 6379."""
    host, sep, port = addr.rpartition(":")
    if not sep:
        return addr, 6379
    return host.strip("[]"), int(port)


class ConnectionFactory:
    """Builds a driver for a :class:`~django_redisson.conf.Conf`.

    The mode is picked from the options: sentinel when ``master_name`` is set,
    cluster when ``cluster`` is set and ``force_single_client`` is not, and a
    single connection otherwise. ``mock`` replaces all of them with an
    in-process fakeredis server.
    """

    def __init__(self, conf: Conf) -> None:
        self.conf = conf

        if conf.library == "valkey":
            if not _VALKEY_AVAILABLE:
                msg = "library='valkey' requires the valkey package"
                raise ImportError(msg)
            self.client_class: Any = ValkeyClient
            self.cluster_class: Any = ValkeyClusterClient
            self.cluster_node_class: Any = ValkeyClusterNode
            self.sentinel_class: Any = ValkeySentinel
        else:
            if not _REDIS_AVAILABLE:
                msg = "library='redis' requires the redis package"
                raise ImportError(msg)
            self.client_class = RedisClient
            self.cluster_class = RedisClusterClient
            self.cluster_node_class = RedisClusterNode
            self.sentinel_class = RedisSentinel

    def _get_connection_options(self) -> dict[str, Any]:
        """Options shared by every connection mode."""
        conf = self.conf
        options: dict[str, Any] = {
            "protocol": conf.resp,
            "decode_responses": conf.decode_responses,
            "socket_timeout": conf.read_timeout,
            "socket_connect_timeout": conf.dial_timeout if conf.dial_timeout is not None else conf.write_timeout,
        }
        if conf.username:
            options["username"] = conf.username
        if conf.password:
            options["password"] = conf.password
        if conf.name:
            options["client_name"] = conf.name
        if conf.conn_pool_size:
            options["max_connections"] = conf.conn_pool_size
        return options

    def _addrs(self) -> list[str]:
        addrs = list(self.conf.addrs)
        random.shuffle(addrs)
        return addrs

    def connect(self) -> Any:
        """Create a new driver.

        Raises:
            NoCacheError: client side caching was requested over RESP2.
        """
        if self.conf.mock:
            return self._connect_mock()
        if self.conf.enable_cache and self.conf.resp == 2:
            raise NoCacheError
        if self.conf.master_name:
            return self._connect_sentinel()
        if self.conf.cluster and not self.conf.force_single_client:
            return self._connect_cluster()
        return self._connect_single()

    def disconnect(self, driver: Any) -> None:
        """Close a driver returned by :meth:`connect`."""
        driver.close()

    def _connect_single(self) -> Any:
        options = self._get_connection_options()
        addr = self._addrs()[0]
        if self.conf.net == "unix":
            return self.client_class(unix_socket_path=addr, db=self.conf.db, **options)
        host, port = split_addr(addr)
        return self.client_class(host=host, port=port, db=self.conf.db, **options)

    def _connect_cluster(self) -> Any:
        options = self._get_connection_options()
        nodes = [self.cluster_node_class(*split_addr(addr)) for addr in self._addrs()]
        return self.cluster_class(startup_nodes=nodes, **options)

    def _connect_sentinel(self) -> Any:
        options = self._get_connection_options()
        sentinel_kwargs: dict[str, Any] = {}
        if self.conf.password:
            sentinel_kwargs["password"] = self.conf.password
        if self.conf.username:
            sentinel_kwargs["username"] = self.conf.username
        sentinel = self.sentinel_class(
            [split_addr(addr) for addr in self._addrs()],
            sentinel_kwargs=sentinel_kwargs,
            **options,
        )
        return sentinel.master_for(self.conf.master_name, db=self.conf.db)

    def _connect_mock(self) -> Any:
        import fakeredis

        logger.debug("Using in-process mock server reporting version %s", self.conf.mock_version)
        return fakeredis.FakeRedis(
            server=fakeredis.FakeServer(),
            decode_responses=self.conf.decode_responses,
        )


def get_connection_factory(conf: Conf) -> ConnectionFactory:
    """Get the connection factory configured for this project.

    ``settings.REDISSON_CONNECTION_FACTORY`` may name a replacement class by
    dotted path.
    """
    factory_path: Any = DEFAULT_CONNECTION_FACTORY
    if settings.configured:
        factory_path = getattr(settings, "REDISSON_CONNECTION_FACTORY", DEFAULT_CONNECTION_FACTORY)

    if isinstance(factory_path, str):
        factory_class = import_string(factory_path)
    else:
        factory_class = factory_path

    return factory_class(conf)
