"""
Calendar and interval conversions between host values and native payloads.
"""
import datetime
import logging

from dateutil import tz
from dateutil.relativedelta import relativedelta

from ocibind.native import IntervalKind, NativeDate, NativeInterval
from ocibind.native import NativeTimestamp

logger = logging.getLogger(__name__)

_NANOSECONDS_PER_MICROSECOND = 1_000
_NANOSECONDS_PER_MILLISECOND = 1_000_000
_SECONDS_PER_DAY = 24 * 3600
DAYS_PER_YEAR = 365
DAYS_PER_MONTH = 30


def duration_as_days(value: datetime.timedelta) -> tuple[int, int, int, int, int]:
    """Split a duration into (days, hours, minutes, seconds, milliseconds).

    Uses a 24-hour day and truncates sub-millisecond precision toward zero.
    The sign applies to every field.

    >>> duration_as_days(datetime.timedelta(seconds=90000))
    (1, 1, 0, 0, 0)
    >>> duration_as_days(-datetime.timedelta(hours=25, milliseconds=5))
    (-1, -1, 0, 0, -5)
    """
    total_ms = abs(value) // datetime.timedelta(milliseconds=1)
    sign = -1 if value < datetime.timedelta(0) else 1
    total_s, ms = divmod(total_ms, 1000)
    days, rem = divmod(total_s, _SECONDS_PER_DAY)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)
    return sign * days, sign * hours, sign * minutes, sign * seconds, sign * ms


def timedelta_to_interval(value: datetime.timedelta) -> NativeInterval:
    """Day-second interval for a duration; the fraction is in nanoseconds.
    """
    days, hours, minutes, seconds, ms = duration_as_days(value)
    return NativeInterval(IntervalKind.DAY_SECOND, days=days, hours=hours,
                          minutes=minutes, seconds=seconds,
                          fraction=ms * _NANOSECONDS_PER_MILLISECOND)


def interval_to_timedelta(value: NativeInterval, exact_year_month: bool = False
                          ) -> datetime.timedelta | relativedelta:
    """Host duration for a native interval.

    Year-month intervals use 365-day years and 30-day months unless
    ``exact_year_month`` asks for a calendar-aware ``relativedelta``.
    """
    if value.kind == IntervalKind.YEAR_MONTH:
        years, months = value.get_year_month()
        if exact_year_month:
            return relativedelta(years=years, months=months)
        return datetime.timedelta(days=DAYS_PER_YEAR * years + DAYS_PER_MONTH * months)
    days, hours, minutes, seconds, fraction = value.get_day_second()
    return datetime.timedelta(days=days, hours=hours, minutes=minutes, seconds=seconds,
                              microseconds=fraction / 1000)


def date_to_native(value: datetime.date) -> NativeDate:
    """Second-precision calendar fields; sub-second parts are dropped.
    """
    if not isinstance(value, datetime.datetime):
        return NativeDate(value.year, value.month, value.day)
    return NativeDate(value.year, value.month, value.day,
                      value.hour, value.minute, value.second)


def datetime_to_timestamp(value: datetime.datetime) -> NativeTimestamp:
    """Calendar fields, nanosecond fraction and UTC offset of a datetime.

    Naive datetimes are bound with a zero offset.
    """
    offset = value.utcoffset() or datetime.timedelta(0)
    total = int(offset.total_seconds()) // 60
    sign = -1 if total < 0 else 1
    tz_hour, tz_minute = divmod(abs(total), 60)
    return NativeTimestamp(
        value.year, value.month, value.day,
        value.hour, value.minute, value.second,
        fraction=value.microsecond * _NANOSECONDS_PER_MICROSECOND,
        tz_hour=sign * tz_hour, tz_minute=sign * tz_minute,
        tz_name=getattr(value.tzinfo, 'key', None),
        )


def offset_label(tz_hour: int, tz_minute: int) -> str:
    """
    >>> offset_label(5, 30)
    '+05:30'
    >>> offset_label(-3, 0)
    '-03:00'
    """
    sign = '-' if tz_hour < 0 or tz_minute < 0 else '+'
    return f'{sign}{abs(tz_hour):02d}:{abs(tz_minute):02d}'


def offset_zone(tz_hour: int, tz_minute: int, name: str | None = None) -> datetime.tzinfo:
    """Time zone for a native offset.

    A region ``name`` that resolves wins; otherwise a fixed zone labeled
    ``+HH:MM``.
    """
    if name:
        zone = tz.gettz(name)
        if zone is not None:
            return zone
        logger.debug(f'Unknown time zone {name!r}, using fixed offset')
    seconds = abs(tz_hour) * 3600 + abs(tz_minute) * 60
    if tz_hour < 0 or tz_minute < 0:
        seconds = -seconds
    return tz.tzoffset(offset_label(tz_hour, tz_minute), seconds)


def native_to_datetime(value: NativeDate) -> datetime.datetime:
    return datetime.datetime(*value.get_date_time())


def timestamp_to_datetime(value: NativeTimestamp) -> datetime.datetime:
    """Aware datetime for a native timestamp, microsecond precision.
    """
    year, month, day, hour, minute, second, fraction = value.get_date_time()
    zone = offset_zone(*value.get_time_zone_offset(), name=value.tz_name)
    return datetime.datetime(year, month, day, hour, minute, second,
                             fraction // _NANOSECONDS_PER_MICROSECOND, tzinfo=zone)
