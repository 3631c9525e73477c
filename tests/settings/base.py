"""Base Django settings for tests."""

SECRET_KEY = "django_tests_secret_key"

INSTALLED_APPS = [
    "django.contrib.contenttypes",
]

USE_TZ = False

# Every alias runs against an in-process fakeredis server unless a test
# overrides the setting with a container address.
REDISSON = {
    "default": {
        "MOCK": True,
    },
    "nocache": {
        "MOCK": True,
        "ENABLE_CACHE": False,
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "loggers": {
        "django_redisson": {"level": "DEBUG"},
    },
}
