"""Test settings: in-memory caches, eager Celery, no throttling."""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

from config.settings import *  # noqa: E402,F401,F403

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "default",
    },
    LISTING_CACHE_ALIAS: {  # noqa: F405
        "BACKEND": "tests.support.cache.PatternLocMemCache",
        "LOCATION": "listing",
        "KEY_PREFIX": "test",
        "TIMEOUT": 60,
    },
}

LISTING_CACHE_RETRY_ENABLED = False

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": [],
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
