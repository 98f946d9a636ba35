"""
Presence sweeper.

Demotes presence records whose owner stopped sending heartbeats and clears
typing indicators nobody stopped. Runs:

- once at ASGI startup (RegistryLifespan), as a warm-up
- every SWEEP_INTERVAL_SECONDS through the Celery beat task
  chat.tasks.sweep_stale_presence (django_celery_beat PeriodicTask)

Each pass is two UPDATE statements filtered on the timestamps, so a
heartbeat committed before the sweep is never overwritten. Expired typing
is cleared silently; clients time out indicators on their own.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import timedelta

from django.utils import timezone
from django_celery_beat.models import IntervalSchedule, PeriodicTask

from chat.constants import presence_setting
from chat.models import PresenceRecord, PresenceStatus

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    marked_offline: int = 0
    typing_cleared: int = 0
    failed: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


class PresenceSweeper:
    """
    Bulk cleanup of stale presence state.

    Args:
        stale_window: Seconds without a heartbeat before a user is offline
        typing_window: Seconds before a typing indicator expires

    Usage:
        sweeper = PresenceSweeper()
        sweeper.start()     # warm-up pass + enable the beat schedule
        sweeper.cleanup()   # one pass, safe to call at any time
        sweeper.stop()      # disable the beat schedule
    """

    def __init__(self, stale_window: int | None = None, typing_window: int | None = None):
        self.stale_window = stale_window or presence_setting("STALE_WINDOW_SECONDS")
        self.typing_window = typing_window or presence_setting("TYPING_WINDOW_SECONDS")

    def cleanup(self, now=None) -> SweepResult:
        """
        Run one sweep pass.

        Never raises: a failure is logged and reported as
        ``SweepResult(failed=True)``.
        """
        now = now or timezone.now()
        stale_cutoff = now - timedelta(seconds=self.stale_window)
        typing_cutoff = now - timedelta(seconds=self.typing_window)

        try:
            marked_offline = (
                PresenceRecord.objects.filter(last_seen__lt=stale_cutoff)
                .exclude(status=PresenceStatus.OFFLINE)
                .update(
                    status=PresenceStatus.OFFLINE,
                    active_session_ref=None,
                    typing_target=None,
                    typing_started_at=None,
                    updated_at=now,
                )
            )
            typing_cleared = PresenceRecord.objects.filter(
                typing_target__isnull=False,
                typing_started_at__lt=typing_cutoff,
            ).update(typing_target=None, typing_started_at=None, updated_at=now)
        except Exception:
            logger.exception("Presence sweep failed")
            return SweepResult(failed=True)

        if marked_offline or typing_cleared:
            logger.info(
                f"Presence sweep: {marked_offline} marked offline, "
                f"{typing_cleared} typing indicators cleared"
            )
        return SweepResult(marked_offline=marked_offline, typing_cleared=typing_cleared)

    def start(self) -> SweepResult:
        """
        Run a warm-up pass and enable the periodic sweep.

        Creates the beat schedule when it is missing. Saving the
        PeriodicTask (rather than a queryset update) notifies beat.
        """
        result = self.cleanup()

        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=presence_setting("SWEEP_INTERVAL_SECONDS"),
            period=IntervalSchedule.SECONDS,
        )
        task, created = PeriodicTask.objects.get_or_create(
            name=presence_setting("SWEEP_TASK_NAME"),
            defaults={
                "task": presence_setting("SWEEP_TASK_PATH"),
                "interval": schedule,
                "enabled": True,
            },
        )
        if not created and (not task.enabled or task.interval_id != schedule.id):
            task.enabled = True
            task.interval = schedule
            task.save()

        logger.info(f"Presence sweep scheduled every {schedule.every}s")
        return result

    def stop(self) -> bool:
        """Disable the periodic sweep. Returns True if it was enabled."""
        task = PeriodicTask.objects.filter(
            name=presence_setting("SWEEP_TASK_NAME"), enabled=True
        ).first()
        if task is None:
            return False

        task.enabled = False
        task.save()
        logger.info("Presence sweep schedule disabled")
        return True
