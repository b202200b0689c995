"""ASGI config for the service-management API."""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "itsm_service.settings")

application = get_asgi_application()
