"""Wall clock helpers"""
from datetime import datetime
from zoneinfo import ZoneInfo

from leadboard.core.config import settings


def local_now() -> datetime:
    """Naive current time in the deployment timezone, comparable to Task.due_date"""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None, microsecond=0)


def to_local_naive(value: datetime) -> datetime:
    """Offset-aware datetimes are converted to deployment wall clock; naive ones pass through"""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)
