VERSION = (0, 1, 0)
__version__ = ".".join(map(str, VERSION))


def get_redis_client(alias="default"):
    """Helper used for obtaining the shared client configured in ``settings.REDISSON``."""
    from django_redisson.connections import get_redis_client as _get_redis_client

    return _get_redis_client(alias)
