"""
Celery tasks for chat app.

This module defines periodic tasks for:
- Presence sweeping (stale users offline, expired typing cleared)

The beat schedule is stored in django_celery_beat (see migration
0002_presence_sweep_schedule and PresenceSweeper.start).

Usage:
    from chat.tasks import sweep_stale_presence

    sweep_stale_presence.delay()
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def sweep_stale_presence() -> dict:
    """
    Run one presence sweep pass.

    Never raises; PresenceSweeper logs failures and flags them in the
    result.

    Returns:
        {"marked_offline", "typing_cleared", "failed"}
    """
    from .sweeper import PresenceSweeper

    result = PresenceSweeper().cleanup()
    if result.failed:
        logger.warning("Scheduled presence sweep failed")
    return result.as_dict()
