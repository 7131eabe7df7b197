from datetime import datetime, timedelta, timezone


def as_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; bring aware inputs onto the same footing."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def month_range(now: datetime) -> tuple[datetime, datetime]:
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        next_month = datetime(now.year + 1, 1, 1)
    else:
        next_month = datetime(now.year, now.month + 1, 1)
    end = next_month - timedelta(milliseconds=1)
    return start, end


def current_month_range() -> tuple[datetime, datetime]:
    return month_range(datetime.utcnow())
