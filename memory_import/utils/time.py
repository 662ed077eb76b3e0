from datetime import datetime
import pytz

UTC = pytz.UTC


def utc_now():
    return datetime.now(UTC)


def to_local(moment: datetime, tz=UTC) -> datetime:
    """
    Convert a timestamp to the given pytz zone.
    Naive timestamps are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = UTC.localize(moment)
    return moment.astimezone(tz)


def day_key(moment: datetime, tz=UTC) -> str:
    """Local calendar day of a timestamp, YYYY-MM-DD."""
    return to_local(moment, tz).strftime("%Y-%m-%d")


def local_midnight(date_key: str, tz=UTC) -> datetime:
    """Start of the local day named by a YYYY-MM-DD key, tz-aware."""
    naive = datetime.strptime(date_key, "%Y-%m-%d")
    return tz.localize(naive)


def long_date(moment: datetime) -> str:
    """October 19, 2026 (no zero padding, English month names)."""
    return f"{moment:%B} {moment.day}, {moment.year}"
