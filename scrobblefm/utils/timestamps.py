from datetime import datetime, time, timezone


def current_unix_timestamp() -> int:
    """Current UTC time as whole unix seconds."""
    return int(datetime.now(timezone.utc).timestamp())


def start_of_local_day(now=None) -> int:
    """Unix timestamp of midnight today, in the host's local timezone.

    Midnight is resolved with the zone rules in force at midnight, so the
    result is right on days when the UTC offset changes.
    """
    now = now or datetime.now().astimezone()
    midnight = datetime.combine(now.date(), time(0, 0))
    return int(midnight.timestamp())


def to_local_datetime(timestamp_utc: int) -> datetime:
    return datetime.fromtimestamp(timestamp_utc, tz=timezone.utc).astimezone()
