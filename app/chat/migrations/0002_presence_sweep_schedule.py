"""
Register the presence sweep with Celery Beat.

Creates an IntervalSchedule (every 2 minutes) and the PeriodicTask that
runs chat.tasks.sweep_stale_presence through django_celery_beat's
DatabaseScheduler. PresenceSweeper.start()/stop() toggle the same task.
"""

from django.db import migrations

SWEEP_TASK_NAME = "Chat: Sweep Stale Presence"
SWEEP_TASK_PATH = "chat.tasks.sweep_stale_presence"
SWEEP_INTERVAL_SECONDS = 120


def create_periodic_task(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=SWEEP_INTERVAL_SECONDS,
        period="seconds",
    )
    PeriodicTask.objects.get_or_create(
        name=SWEEP_TASK_NAME,
        defaults={
            "task": SWEEP_TASK_PATH,
            "interval": schedule,
            "enabled": True,
            "description": (
                "Demote stale online/away/busy presence records to offline "
                "and clear expired typing indicators."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name=SWEEP_TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("chat", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
