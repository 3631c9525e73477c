"""Process-wide clients configured through Django settings.

Configuration::

    REDISSON = {
        "default": {
            "ADDRS": ["127.0.0.1:6379"],
            "DB": 0,
        },
        "cluster": {
            "ADDRS": ["10.0.0.1:7000", "10.0.0.2:7000"],
            "CLUSTER": True,
            "SILENT_ERROR": "myapp.redis.is_expected_error",
        },
    }

Each alias is connected on first access and shared by every thread.
Changing the ``REDISSON`` setting (e.g. with ``override_settings``) closes
the connected clients.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver

from django_redisson.conf import Conf
from django_redisson.connect import connect
from django_redisson.exceptions import InvalidAliasError

if TYPE_CHECKING:
    from django_redisson.client import Client

logger = logging.getLogger(__name__)

DEFAULT_ALIAS = "default"
SETTINGS_NAME = "REDISSON"


class ConnectionHandler:
    """Lazily connects one client per configured alias."""

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> dict[str, Any]:
        return getattr(settings, SETTINGS_NAME, {DEFAULT_ALIAS: {}})

    def __getitem__(self, alias: str) -> Client:
        with self._lock:
            client = self._clients.get(alias)
            if client is None:
                client = self.create_connection(alias)
                self._clients[alias] = client
            return client

    def __contains__(self, alias: str) -> bool:
        return alias in self.settings

    def create_connection(self, alias: str) -> Client:
        try:
            options = self.settings[alias]
        except KeyError:
            raise InvalidAliasError(alias) from None
        logger.debug("Connecting redis client %r", alias)
        return connect(Conf.from_dict(options))

    def all(self) -> list[Client]:
        """Clients connected so far."""
        with self._lock:
            return list(self._clients.values())

    def close_all(self) -> None:
        """Close and forget every connected client."""
        with self._lock:
            clients = list(self._clients.items())
            self._clients.clear()
        for alias, client in clients:
            try:
                client.close()
            except Exception:
                logger.exception("Failed to close redis client %r", alias)


connections = ConnectionHandler()


def get_redis_client(alias: str = DEFAULT_ALIAS) -> Client:
    """The shared client for ``alias``, connecting it on first use."""
    return connections[alias]


@receiver(setting_changed)
def reset_connections(*, setting: str, **kwargs: Any) -> None:
    if setting == SETTINGS_NAME:
        connections.close_all()
