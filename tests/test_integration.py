"""End-to-end tests against real Redis servers started with testcontainers."""

import threading

import pytest

from django_redisson.conf import Conf
from django_redisson.connect import connect
from django_redisson.probe import Version

pytestmark = pytest.mark.integration

WAIT = 10.0


@pytest.fixture
def live_client(redis_container):
    client = connect(Conf(addrs=redis_container.addr, library=redis_container.client_library, development=False))
    client.driver.flushdb()
    yield client
    client.close()


class TestStandalone:
    def test_probe(self, redis_images, redis_container):
        client = connect(Conf(addrs=redis_container.addr))
        try:
            assert client.version >= Version(6, 2, 0)
            assert client.is_cluster is False
            assert client.adjustments == []
        finally:
            client.close()

    def test_resp2_disables_cache(self, redis_container):
        client = connect(Conf(addrs=redis_container.addr, always_resp2=True))
        try:
            assert client.adjustments == ["disable_cache"]
            assert client.options.enable_cache is False
            assert client.ping() is True
        finally:
            client.close()

    def test_declared_cluster_flipped(self, redis_container):
        client = connect(Conf(addrs=redis_container.addr, cluster=True))
        try:
            assert client.adjustments == ["flip_cluster"]
            assert client.is_cluster is False
        finally:
            client.close()

    def test_commands(self, live_client):
        live_client.set("k", "v")
        assert live_client.get("k") == b"v"
        assert live_client.cache(60).get("k") == b"v"

    def test_delay_queue(self, live_client):
        received = []
        done = threading.Event()

        def callback(payload):
            received.append(payload)
            done.set()

        queue = live_client.new_delay_queue("integration", callback, interval=0.1)
        queue.add("job", 1)
        assert done.wait(WAIT)
        assert received == [b"job"]

    def test_funnel(self, live_client):
        funnel = live_client.new_funnel("rate:integration", capacity=10, operations=5, seconds=1)
        state = funnel.watering(1)
        assert state.capacity == 10

    def test_pubsub(self, live_client):
        with live_client.subscribe("integration") as session:
            live_client.publish("integration", "hello")
            message = session.get_message(timeout=WAIT)
        assert message.payload == b"hello"


class TestCluster:
    @pytest.fixture
    def cluster_client(self, cluster_container):
        host, port = cluster_container
        client = connect(Conf(addrs=f"{host}:{port}", cluster=True, development=False))
        yield client
        client.close()

    def test_probe(self, cluster_client):
        assert cluster_client.is_cluster is True
        assert cluster_client.adjustments == []

    def test_standalone_declaration_flipped(self, cluster_container):
        host, port = cluster_container
        client = connect(Conf(addrs=f"{host}:{port}"))
        try:
            assert client.adjustments == ["flip_cluster"]
            assert client.is_cluster is True
        finally:
            client.close()

    def test_safe_mget_across_slots(self, cluster_client):
        cluster_client.set("a", "1")
        cluster_client.set("b", "2")
        assert cluster_client.safe_mget("a", "b", "missing") == [b"1", b"2", None]

    def test_for_each_node(self, cluster_client):
        assert cluster_client.for_each_node(lambda node: node.ping()) == [True, True, True]

    def test_delay_queue(self, cluster_client):
        done = threading.Event()
        queue = cluster_client.new_delay_queue("cluster-jobs", lambda payload: done.set(), interval=0.1)
        queue.add("job")
        assert done.wait(WAIT)
