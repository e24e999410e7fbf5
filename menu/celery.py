"""
Celery application and beat schedule for the menu fetcher.

Run a worker with beat embedded:

    celery -A menu.celery worker -B -l info
"""
from celery import Celery
from celery.schedules import crontab

from menu.settings import load_settings

settings = load_settings()

app = Celery(
    'menu',
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=['menu.tasks'],
)

app.conf.update(
    timezone=settings.timezone,
    enable_utc=True,
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
)

app.conf.beat_schedule = {
    # Fetch today's menus at 6 AM (Seoul) daily
    'fetch-daily-menus': {
        'task': 'menu.tasks.fetch_daily_menus',
        'schedule': crontab(minute='0', hour='6'),
    },
}
