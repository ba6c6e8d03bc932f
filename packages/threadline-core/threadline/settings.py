"""
Django settings for the threadline project.

Configuration is read from environment variables so the same module serves
local development, the worker cluster and production.
"""

import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-threadline-dev-key")

DEBUG = os.getenv("DEBUG", "False") == "True"

ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "organizations",
    "django_q",
    "projects",
    "files",
    "chat",
    "channels",
    "platform_adapters",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "threadline.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

ASGI_APPLICATION = "threadline.asgi.application"

# Database
# Postgres in production, SQLite for local development
if os.getenv("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB"),
            "USER": os.getenv("POSTGRES_USER", "threadline"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "/media/"
MEDIA_ROOT = Path(os.getenv("MEDIA_ROOT", BASE_DIR / "media"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.getenv("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.getenv("DJANGO_LOG_LEVEL", "WARNING"),
            "propagate": False,
        },
    },
}

# Django-Q2 background workers
Q_CLUSTER = {
    "name": "threadline",
    "workers": int(os.getenv("Q_WORKERS", "4")),
    "timeout": 600,
    "retry": 660,
    "orm": "default",
}

# Public base URL, used to build absolute upload URLs
THREADLINE_BASE_URL = os.getenv("THREADLINE_BASE_URL", "http://localhost:8000")

# Dotted path to the generator used by chat.tasks.run_generation
THREADLINE_GENERATOR = os.getenv("THREADLINE_GENERATOR") or None

# Run background tasks synchronously instead of enqueueing them
THREADLINE_RUN_TASKS_INLINE = os.getenv("THREADLINE_RUN_TASKS_INLINE", "False") == "True"

THREADLINE_PAIRING_CODE_TTL = timedelta(minutes=int(os.getenv("THREADLINE_PAIRING_CODE_TTL_MINUTES", "60")))

# Seconds a webhook processing task waits for the assistant reply
THREADLINE_REPLY_TIMEOUT = float(os.getenv("THREADLINE_REPLY_TIMEOUT", "120"))
THREADLINE_REPLY_POLL_INTERVAL = float(os.getenv("THREADLINE_REPLY_POLL_INTERVAL", "1.0"))

THREADLINE_UPLOAD_URL_MAX_AGE = int(os.getenv("THREADLINE_UPLOAD_URL_MAX_AGE", "900"))

TELEGRAM_API_BASE = os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org")
WHATSAPP_API_BASE = os.getenv("WHATSAPP_API_BASE", "https://graph.facebook.com/v18.0")

# Dotted path to the files.storage.ObjectStorage backend
THREADLINE_STORAGE_BACKEND = os.getenv("THREADLINE_STORAGE_BACKEND", "files.storage.SignedUploadStorage")
