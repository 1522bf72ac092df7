"""
WSGI config for the hr_evalify project.

Exposes the module-level ``application`` used by ``runserver`` and any
production WSGI server through the ``WSGI_APPLICATION`` setting.
"""

import os

from django.core.wsgi import get_wsgi_application

# If DJANGO_SETTINGS_MODULE is unset, select a default based on BUILD_ENV
if "DJANGO_SETTINGS_MODULE" not in os.environ:
    build_env = os.environ.get("BUILD_ENV", "production").lower()
    default_settings = (
        "config.settings.local"
        if build_env == "local"
        else "config.settings.production"
    )
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", default_settings)

application = get_wsgi_application()
