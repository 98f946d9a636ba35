"""
WSGI entry point for the REST API and admin only.

Websockets and the presence sweeper lifespan need config.asgi.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
