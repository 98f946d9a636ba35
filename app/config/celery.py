"""
Celery app for the chat backend.

The only scheduled work is the presence sweep (chat.tasks). Its interval
is stored in django_celery_beat's tables, so beat must run with the
database scheduler:

    celery -A config worker -l info
    celery -A config beat -l info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("chat_backend")
# CELERY_* settings in config.settings
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
