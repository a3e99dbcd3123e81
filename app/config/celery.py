"""
Celery configuration for the chat backend.

The worker delivers real-time fan-out: chat services enqueue
chat.tasks.broadcast_event after their transaction commits, and the task
pushes the event onto the channel layer for connected WebSocket clients.

Redis is both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

Usage:
    celery -A config worker -Q realtime,celery -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
