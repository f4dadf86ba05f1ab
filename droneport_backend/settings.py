"""
Django settings for the droneport backend.

Only the ORM, transactions and logging are used: there is no HTTP layer here.
Every tunable is read from the environment; a .env file next to manage.py is
loaded first (see .env.example).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "droneport-dev-only-secret-key")
DEBUG = os.getenv("DJANGO_DEBUG", "false").lower() in ("1", "true", "yes")

INSTALLED_APPS = [
    "users",
    "drones",
    "orders",
]

# --- Database ---
# SQLite for development and tests, PostgreSQL in production.
# The reservation claim relies on conditional UPDATEs, so any engine with
# row-level locking and at least READ COMMITTED isolation works.
DATABASE_ENGINE = os.getenv("DATABASE_ENGINE", "sqlite").lower()

if DATABASE_ENGINE == "postgresql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DATABASE_NAME", "droneport"),
            "USER": os.getenv("DATABASE_USER", "droneport"),
            "PASSWORD": os.getenv("DATABASE_PASSWORD", ""),
            "HOST": os.getenv("DATABASE_HOST", "localhost"),
            "PORT": os.getenv("DATABASE_PORT", "5432"),
            "CONN_MAX_AGE": int(os.getenv("DATABASE_CONN_MAX_AGE", "60")),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("DATABASE_NAME", str(BASE_DIR / "droneport.sqlite3")),
            # Writers take the lock when the transaction opens instead of
            # failing to upgrade a shared lock halfway through.
            "OPTIONS": {
                "transaction_mode": "IMMEDIATE",
                "timeout": 20,
            },
            # On disk, not in memory: the reservation race tests open one
            # connection per thread.
            "TEST": {
                "NAME": os.getenv("DATABASE_TEST_NAME", str(BASE_DIR / "test_droneport.sqlite3")),
            },
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "UTC")

# --- Logging ---
LOG_LEVEL = os.getenv("DRONEPORT_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "droneport": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "droneport",
        },
    },
    "loggers": {
        "dispatch": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "droneport_backend": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}
