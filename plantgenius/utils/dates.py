import datetime

SCAN_DATE_FORMAT = "%Y-%m-%d"


def utcnow() -> datetime.datetime:
    # Naive UTC, matching what the DateTime columns store
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def today_str(now: datetime.datetime | None = None) -> str:
    return (now or utcnow()).strftime(SCAN_DATE_FORMAT)


def is_scan_date(value: str) -> bool:
    if not value or len(value) != 10:
        return False
    try:
        datetime.datetime.strptime(value, SCAN_DATE_FORMAT)
    except ValueError:
        return False
    return True


def isoformat(value: datetime.datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat() + "Z"
