"""
Django settings for running the filedb app on its own.

Suitable for development and the test suite; a deployment would provide its
own settings module.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "filedb-insecure-development-key")

DEBUG = os.environ.get("DJANGO_DEBUG", "false").lower() == "true"

ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "drf_spectacular",
    "filedb",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("FILEDB_SQLITE_PATH", str(BASE_DIR / "filedb.sqlite3")),
        "OPTIONS": {
            # Seconds a writer waits for the database lock before failing
            "timeout": 20,
            # Readers keep their snapshot while another connection commits
            "init_command": "PRAGMA journal_mode=WAL;",
        },
        "TEST": {
            # A file, not shared-cache memory, so test threads get real snapshots
            "NAME": str(BASE_DIR / "filedb_test.sqlite3"),
        },
    }
}

USE_TZ = True
TIME_ZONE = "UTC"

FILEDB_DATABASE = "default"
FILEDB_RETENTION_DAYS = None
FILEDB_ITERATOR_CHUNK_SIZE = 500

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "UNAUTHENTICATED_USER": None,
}

SPECTACULAR_SETTINGS = {
    "TITLE": "filedb API",
    "DESCRIPTION": "Versioned file storage keyed by name and caller-supplied timestamp.",
    "VERSION": "1.0.0",
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "filedb": {
            "handlers": ["console"],
            "level": os.environ.get("FILEDB_LOG_LEVEL", "INFO"),
        },
    },
}
