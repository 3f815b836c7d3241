"""Cache schemas."""

from datetime import datetime

from pydantic import BaseModel


class CacheStatistics(BaseModel):
    """Best-effort entry count for the cache table.

    ``total_entries`` is -1 when the count could not be taken.
    """

    total_entries: int
    table_name: str
    last_updated: datetime
    error: str | None = None
