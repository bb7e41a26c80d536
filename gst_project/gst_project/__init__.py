# Celery instance is defined in gst_project/celery.py
# It points the celery_app at the Django settings
from .celery import celery_app

# 'from gst_project import *', only exports celery_app
__all__ = ("celery_app",)

""" When you run Celery workers, "celery -A gst_project worker -l info"
    The -A gst_project means:
    Import gst_project/__init__.py →
    which exposes celery_app →  now Celery knows what to run. """
