"""WSGI entry point for gst_project."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gst_project.settings")

application = get_wsgi_application()
