from unittest.mock import MagicMock

import fakeredis
import pytest

from django_redisson import pool
from django_redisson.conf import Conf
from django_redisson.exceptions import NoCacheError


class CustomFactory(pool.ConnectionFactory):
    pass


def test_connection_factory_default():
    cf = pool.get_connection_factory(Conf())
    assert type(cf) is pool.ConnectionFactory


def test_connection_factory_from_settings(settings):
    settings.REDISSON_CONNECTION_FACTORY = "tests.test_connection_factory.CustomFactory"
    cf = pool.get_connection_factory(Conf())
    assert type(cf).__name__ == "CustomFactory"
    assert isinstance(cf, pool.ConnectionFactory)


def test_connection_factory_class_in_settings(settings):
    settings.REDISSON_CONNECTION_FACTORY = CustomFactory
    assert isinstance(pool.get_connection_factory(Conf()), CustomFactory)


@pytest.mark.parametrize(
    ("addr", "expected"),
    [
        ("127.0.0.1:6379", ("127.0.0.1", 6379)),
        ("redis.local:7000", ("redis.local", 7000)),
        ("[::1]:6380", ("::1", 6380)),
        ("redis.local", ("redis.local", 6379)),
    ],
)
def test_split_addr(addr, expected):
    assert pool.split_addr(addr) == expected


class TestConnectionOptions:
    def test_defaults(self):
        options = pool.ConnectionFactory(Conf())._get_connection_options()
        assert options == {
            "protocol": 3,
            "decode_responses": False,
            "socket_timeout": None,
            "socket_connect_timeout": 10.0,
        }

    def test_credentials_and_pool_size(self):
        conf = Conf(username="app", password="secret", name="worker", conn_pool_size=20, dial_timeout=2.0)
        options = pool.ConnectionFactory(conf)._get_connection_options()
        assert options["username"] == "app"
        assert options["password"] == "secret"
        assert options["client_name"] == "worker"
        assert options["max_connections"] == 20
        assert options["socket_connect_timeout"] == 2.0

    def test_resp2(self):
        options = pool.ConnectionFactory(Conf(always_resp2=True))._get_connection_options()
        assert options["protocol"] == 2


class TestConnectModes:
    """The factory picks single, cluster, sentinel or mock from the options."""

    def _factory(self, conf: Conf) -> pool.ConnectionFactory:
        factory = pool.ConnectionFactory(conf)
        factory.client_class = MagicMock(name="client_class")
        factory.cluster_class = MagicMock(name="cluster_class")
        factory.cluster_node_class = MagicMock(name="cluster_node_class", side_effect=lambda h, p: (h, p))
        factory.sentinel_class = MagicMock(name="sentinel_class")
        return factory

    def test_single(self):
        factory = self._factory(Conf(addrs="10.0.0.1:6380", db=3))
        driver = factory.connect()
        assert driver is factory.client_class.return_value
        kwargs = factory.client_class.call_args.kwargs
        assert kwargs["host"] == "10.0.0.1"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 3

    def test_unix_socket(self):
        factory = self._factory(Conf(addrs="/var/run/redis.sock", net="unix"))
        factory.connect()
        assert factory.client_class.call_args.kwargs["unix_socket_path"] == "/var/run/redis.sock"

    def test_cluster(self):
        factory = self._factory(Conf(addrs=["a:7000", "b:7001"], cluster=True))
        driver = factory.connect()
        assert driver is factory.cluster_class.return_value
        nodes = factory.cluster_class.call_args.kwargs["startup_nodes"]
        assert sorted(nodes) == [("a", 7000), ("b", 7001)]

    def test_cluster_forced_single(self):
        factory = self._factory(Conf(cluster=True, force_single_client=True))
        assert factory.connect() is factory.client_class.return_value
        factory.cluster_class.assert_not_called()

    def test_sentinel(self):
        factory = self._factory(Conf(addrs=["s1:26379"], master_name="mymaster", password="pw", db=2))
        driver = factory.connect()
        sentinel = factory.sentinel_class.return_value
        sentinel.master_for.assert_called_once_with("mymaster", db=2)
        assert driver is sentinel.master_for.return_value
        assert factory.sentinel_class.call_args.kwargs["sentinel_kwargs"] == {"password": "pw"}

    def test_resp2_with_cache_rejected(self):
        factory = self._factory(Conf(always_resp2=True, enable_cache=True))
        with pytest.raises(NoCacheError):
            factory.connect()

    def test_resp2_without_cache(self):
        factory = self._factory(Conf(always_resp2=True, enable_cache=False))
        assert factory.connect() is factory.client_class.return_value

    def test_mock(self):
        driver = pool.ConnectionFactory(Conf(mock=True)).connect()
        assert isinstance(driver, fakeredis.FakeRedis)
        assert driver.ping() is True

    def test_mock_servers_are_isolated(self):
        first = pool.ConnectionFactory(Conf(mock=True)).connect()
        second = pool.ConnectionFactory(Conf(mock=True)).connect()
        first.set("k", "v")
        assert second.get("k") is None

    def test_disconnect_closes(self):
        driver = MagicMock()
        pool.ConnectionFactory(Conf()).disconnect(driver)
        driver.close.assert_called_once()
