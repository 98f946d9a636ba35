# Load the Celery app with Django so the presence sweep task is registered
from config.celery import app as celery_app

__all__ = ("celery_app",)
