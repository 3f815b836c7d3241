"""Celery application configuration."""

from celery import Celery

from src.config import get_settings

settings = get_settings()

app = Celery(
    "debt_tracker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["src.tasks.cache_maintenance"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,  # 4 minutes soft limit
)

app.conf.beat_schedule = {
    "cleanup-expired-cache-entries": {
        "task": "src.tasks.cache_maintenance.cleanup_expired_cache_entries",
        "schedule": settings.cache_cleanup_interval_minutes * 60.0,
    },
}
