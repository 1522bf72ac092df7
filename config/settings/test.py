"""
With these settings, tests run faster.
"""

from .base import *  # noqa: F403
from .base import env

# GENERAL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#secret-key
SECRET_KEY = env(
    "DJANGO_SECRET_KEY",
    default="AlGzerkUv160WCFbKM8vn2qyFYWS5jX0AHND8TnRj55iqlMSPtJsUllwpba1oqOO",
)
# https://docs.djangoproject.com/en/dev/ref/settings/#test-runner
TEST_RUNNER = "django.test.runner.DiscoverRunner"
ALLOWED_HOSTS = ["testserver", "localhost"]

# DATABASES
# ------------------------------------------------------------------------------
# SQLite unless a DATABASE_URL is provided (CI runs against Postgres).
DATABASES = {"default": env.db("DATABASE_URL", default="sqlite://:memory:")}
if DATABASES["default"]["ENGINE"] == "django.db.backends.postgresql":
    # Force Postgres test DB to use template0 to avoid collation
    # version mismatch in containerized environments
    DATABASES["default"].setdefault("TEST", {})
    DATABASES["default"]["TEST"]["TEMPLATE"] = "template0"

# PASSWORDS
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#password-hashers
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# EMAIL
# ------------------------------------------------------------------------------
# https://docs.djangoproject.com/en/dev/ref/settings/#email-backend
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

# Evaluation workflow
# ------------------------------------------------------------------------------
EVALIFY_BASE_URL = "http://testserver"
EVALIFY_SCORE_SCALE_MAX = 5
EVALIFY_SCORE_AGGREGATOR = "mean"
TELEGRAM_BOT_TOKEN = ""
TELEGRAM_CHAT_ID = ""
