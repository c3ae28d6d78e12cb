from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def is_older_than(timestamp: Optional[datetime], age: timedelta, now: datetime) -> bool:
    # None means "never happened", which is older than any window.
    if timestamp is None:
        return True
    return timestamp < now - age


def index_date_suffix(moment: datetime, tz_name: str = "UTC") -> str:
    return moment.astimezone(ZoneInfo(tz_name)).strftime("%Y.%m.%d")
