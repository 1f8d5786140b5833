from datetime import datetime, timezone
from time import time


def get_time(seconds_precision=True):
    """Return current time as Unix/Epoch timestamp, in seconds.
    :param seconds_precision: if True, return with seconds precision as integer (default).
                              If False, return with milliseconds precision as floating point number of seconds.
    """
    return time() if not seconds_precision else int(time())


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def odata_quote(value: str) -> str:
    """Quote a string literal for an OData key or $filter expression."""
    return "'" + value.replace("'", "''") + "'"
