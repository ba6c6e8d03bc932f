"""
Test settings for Django tests with SQLite.

Import all settings from the main settings file, then override the database
and run background tasks inline.
"""

import os

# Prevent a configured Postgres from being used
for _var in ("POSTGRES_DB", "THREADLINE_GENERATOR"):
    if _var in os.environ:
        del os.environ[_var]

from threadline.settings import *  # noqa: F401, F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
        "TEST": {
            "NAME": ":memory:",
        },
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

THREADLINE_BASE_URL = "http://testserver"
THREADLINE_RUN_TASKS_INLINE = True
THREADLINE_REPLY_TIMEOUT = 2.0
THREADLINE_REPLY_POLL_INTERVAL = 0.01
