from .base import *  # noqa
from .base import BASE_DIR, DB_ENGINE
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

DEBUG = False

# SQLite by default; DATABASE_ENGINE=postgres keeps base.DATABASES so the
# threaded reservation tests run against real row locks
if DB_ENGINE.lower() != "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "test_db.sqlite3",
        }
    }

# Static manifests are not built in tests
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {}),
    "user": "10000/min",
    "anon": "10000/min",
    "inventory": "10000/min",
    "inventory_write": "10000/min",
}

# Fixed hold lifetimes so expiry assertions do not depend on the environment
RESERVATION_TTL_MINUTES = 15
RESERVATION_MAX_TTL_MINUTES = 120
RESERVATION_REAPER_BATCH_SIZE = 100
INVENTORY_LOW_STOCK_THRESHOLD = 10
