"""WSGI config for the service-management API."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "itsm_service.settings")

application = get_wsgi_application()
