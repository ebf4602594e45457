from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

log = logging.getLogger("timeutils")

JAKARTA_ZONE = "Asia/Jakarta"
JAKARTA_OFFSET = timezone(timedelta(hours=7))
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S+07:00"


def _jakarta_tz() -> tzinfo:
    try:
        return ZoneInfo(JAKARTA_ZONE)
    except ZoneInfoNotFoundError:
        # No tz database on this host; Jakarta has had no DST since 1964
        log.debug("zoneinfo %s unavailable, using fixed UTC+7 offset", JAKARTA_ZONE)
        return JAKARTA_OFFSET


def jakarta_now(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(_jakarta_tz())


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def jakarta_timestamp(now: Optional[datetime] = None) -> str:
    return format_timestamp(jakarta_now(now))


def default_valid_up_to(now: Optional[datetime] = None) -> str:
    """Order expiry used when the caller does not pass one: one hour from now."""
    return format_timestamp(jakarta_now(now) + timedelta(hours=1))
