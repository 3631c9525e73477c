"""Connect, probe the server, and reconnect on capability mismatches.

:func:`connect` builds a driver, asks the server for its version and cluster
flag, and returns a ready :class:`~django_redisson.client.Client`. When the
driver or the probe fails with a known capability mismatch, the options are
adjusted and the whole sequence starts over. Each adjustment is applied at
most once:

==================== ================================================
Rule                 Adjustment
==================== ================================================
disable_cache        ``enable_cache=False``
flip_cluster         ``cluster = not cluster``
force_resp2          ``always_resp2=True``
force_single_client  ``force_single_client=True``
==================== ================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.utils.module_loading import import_string

from django_redisson.client import Client
from django_redisson.conf import Conf
from django_redisson.exceptions import ClusterSettingConflictError
from django_redisson.handler import Handler
from django_redisson.pool import get_connection_factory
from django_redisson.probe import ServerInfo, Version, probe

if TYPE_CHECKING:
    from collections.abc import Callable

    from django_redisson.pool import ConnectionFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconnectRule:
    """A known failure and the option change that remedies it."""

    name: str
    triggers: tuple[str, ...]
    adjust: Callable[[Conf], Conf]
    applies: Callable[[Conf], bool] = lambda conf: True

    def matches(self, error: BaseException, conf: Conf) -> bool:
        message = str(error).lower()
        return self.applies(conf) and any(trigger in message for trigger in self.triggers)


RECONNECT_RULES = (
    ReconnectRule(
        name="disable_cache",
        triggers=("no cache", "client caching is only supported with resp version 3"),
        adjust=lambda conf: conf.replace(enable_cache=False),
    ),
    ReconnectRule(
        name="flip_cluster",
        triggers=("cluster support disabled", "cluster setting conflict", "cluster mode is not enabled"),
        adjust=lambda conf: conf.replace(cluster=not conf.cluster),
    ),
    ReconnectRule(
        name="force_resp2",
        triggers=(
            "elements in cluster info address, expected 2 or 3",
            "unknown command 'hello'",
            "unsupported command `hello`",
        ),
        adjust=lambda conf: conf.replace(always_resp2=True),
        applies=lambda conf: not conf.always_resp2,
    ),
    ReconnectRule(
        name="force_single_client",
        triggers=("the slot has no redis node", "not covered by the cluster"),
        adjust=lambda conf: conf.replace(force_single_client=True),
        applies=lambda conf: not conf.force_single_client,
    ),
)


def _match_rule(error: BaseException, conf: Conf, applied: list[str]) -> ReconnectRule | None:
    for rule in RECONNECT_RULES:
        if rule.name not in applied and rule.matches(error, conf):
            return rule
    return None


def _dial(conf: Conf, factory_class: type[ConnectionFactory] | None) -> tuple[Any, ServerInfo]:
    """Build a driver and probe it; the driver is closed if the probe fails."""
    factory = factory_class(conf) if factory_class is not None else get_connection_factory(conf)
    driver = factory.connect()
    if conf.mock:
        return driver, ServerInfo(Version.parse(conf.mock_version), cluster=False)
    try:
        info = probe(driver)
        if info.cluster != conf.cluster:
            raise ClusterSettingConflictError(declared=conf.cluster, observed=info.cluster)
    except Exception:
        factory.disconnect(driver)
        raise
    return driver, info


def _silent_error(conf: Conf) -> Callable[[BaseException], bool] | None:
    predicate = conf.silent_error
    if isinstance(predicate, str):
        predicate = import_string(predicate)
    return predicate


def connect(conf: Conf, factory_class: type[ConnectionFactory] | None = None) -> Client:
    """Connect with ``conf``, adjusting it as needed.

    Raises:
        Exception: the last driver or probe error when no rule remedies it.
    """
    applied: list[str] = []
    while True:
        try:
            driver, info = _dial(conf, factory_class)
        except Exception as e:
            rule = _match_rule(e, conf, applied)
            if rule is None:
                raise
            logger.warning("Reconnecting to redis with %s after error: %s", rule.name, e)
            applied.append(rule.name)
            conf = rule.adjust(conf)
            continue
        break

    if applied:
        logger.info("Connected to redis %s with adjustments: %s", info.version, ", ".join(applied))

    handler = Handler(conf)
    handler.version = info.version
    handler.cluster = info.cluster
    if (predicate := _silent_error(conf)) is not None:
        handler.silent_error = predicate
    return Client(driver, conf, handler, adjustments=applied)


def must_new_client(conf: Conf | None = None, **options: Any) -> Client:
    """Connect with ``conf``, or with a ``Conf`` built from ``options``.

    Example::

        client = must_new_client(addrs=["127.0.0.1:6379"], db=1)
    """
    if conf is None:
        conf = Conf(**options)
    elif options:
        conf = conf.replace(**options)
    return connect(conf)
