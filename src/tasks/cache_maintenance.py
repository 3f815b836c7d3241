"""Celery tasks for cache table maintenance."""

import logging

from src.celery_app import app as celery_app
from src.services.cache import get_cache_service

logger = logging.getLogger(__name__)


@celery_app.task
def cleanup_expired_cache_entries() -> dict:
    """Delete cache entries whose ExpiresAt has passed.

    Runs on the celery-beat schedule. Expired entries are already ignored on
    read, so this only reclaims space.

    Returns:
        dict with the number of deleted entries and the remaining count
    """
    cache = get_cache_service()
    deleted = cache.cleanup_expired()
    stats = cache.get_statistics()
    logger.info(f"Cache cleanup deleted {deleted} entries; {stats.total_entries} remain")
    return {"deleted": deleted, "remaining": stats.total_entries}
