from datetime import datetime, timezone


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, matches MySQL TIMESTAMP columns)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def hours_since(moment: datetime, now: datetime | None = None) -> float:
    """Hours elapsed since ``moment``; aware datetimes are normalized to UTC-naive."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    now = now or utcnow()
    return (now - moment).total_seconds() / 3600
