"""
Add Celery Beat schedules for webhook maintenance.

Failed webhook events are re-queued every 15 minutes; events left in
processing by a crashed worker are reset every 10 minutes so the retry
task can pick them up.
"""

from django.db import migrations

TASKS = [
    {
        "name": "Payments: Retry Failed Webhooks",
        "task": "payments.tasks.retry_failed_webhooks",
        "minute": "*/15",
        "description": (
            "Re-queue failed Stripe webhook events that have not exhausted "
            "their retry budget."
        ),
    },
    {
        "name": "Payments: Reset Stuck Webhooks",
        "task": "payments.tasks.cleanup_stuck_webhooks",
        "minute": "*/10",
        "description": (
            "Mark webhook events stuck in processing for over 30 minutes as "
            "failed so they are retried."
        ),
    },
]


def create_webhook_tasks(apps, schema_editor):
    """Create the webhook maintenance periodic tasks."""
    CrontabSchedule = apps.get_model("django_celery_beat", "CrontabSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for spec in TASKS:
        crontab, _ = CrontabSchedule.objects.get_or_create(
            minute=spec["minute"],
            hour="*",
            day_of_week="*",
            day_of_month="*",
            month_of_year="*",
        )
        PeriodicTask.objects.get_or_create(
            name=spec["name"],
            defaults={
                "task": spec["task"],
                "crontab": crontab,
                "enabled": True,
                "description": spec["description"],
            },
        )


def remove_webhook_tasks(apps, schema_editor):
    """Remove the webhook maintenance tasks on rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name__in=[spec["name"] for spec in TASKS]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_webhook_tasks, remove_webhook_tasks),
    ]
