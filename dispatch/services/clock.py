"""Wall-clock helpers.  "Today" is the service-area day, not the server's."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from dispatch.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    return datetime.now(ZoneInfo(settings.timezone))


def local_today() -> date:
    return local_now().date()
