# Load the Celery app with Django so chat.tasks is registered for fan-out.
from config.celery import app as celery_app

__all__ = ("celery_app",)
