import os
from celery import Celery
from celery.schedules import crontab

# Set default Django settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('fanframe')

# Load configuration from Django settings
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks from installed apps
app.autodiscover_tasks()

# Periodic tasks schedule
app.conf.beat_schedule = {
    'purge-finished-generations': {
        'task': 'fanframe.tasks.purge_finished_generations',
        'schedule': crontab(hour=2, minute=0),  # Daily at 2 AM UTC
    },
    'cleanup-failed-generations': {
        'task': 'fanframe.tasks.cleanup_failed_generations',
        'schedule': crontab(minute=30),  # Hourly
    },
    'cleanup-stale-rate-limits': {
        'task': 'fanframe.tasks.cleanup_stale_rate_limits',
        'schedule': crontab(hour=3, minute=0),  # Daily at 3 AM UTC
    },
}
