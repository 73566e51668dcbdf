# config/settings/test.py
from .base import *  # noqa

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

LAB_REQUESTS_ALLOW_REASSIGN = True
LAB_REQUESTS_EMAIL_NOTIFICATIONS = False

LOGGING["loggers"]["clinic_core"]["level"] = "WARNING"  # noqa: F405
