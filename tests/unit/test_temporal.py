import datetime

from dateutil import tz
from dateutil.relativedelta import relativedelta
from ocibind.native import IntervalKind, NativeDate, NativeInterval, NativeTimestamp
from ocibind.temporal import date_to_native, datetime_to_timestamp, duration_as_days
from ocibind.temporal import interval_to_timedelta, offset_label, offset_zone
from ocibind.temporal import timedelta_to_interval, timestamp_to_datetime


def test_duration_as_days():
    """Durations split on a 24-hour day with the sign on every field"""
    assert duration_as_days(datetime.timedelta(seconds=90000)) == (1, 1, 0, 0, 0)
    assert duration_as_days(datetime.timedelta(minutes=61, seconds=1.5)) == (0, 1, 1, 1, 500)
    assert duration_as_days(-datetime.timedelta(hours=25, milliseconds=5)) == (-1, -1, 0, 0, -5)


def test_duration_truncates_below_milliseconds():
    assert duration_as_days(datetime.timedelta(microseconds=1999)) == (0, 0, 0, 0, 1)
    assert duration_as_days(-datetime.timedelta(microseconds=1999)) == (0, 0, 0, 0, -1)


def test_timedelta_to_interval():
    interval = timedelta_to_interval(datetime.timedelta(days=2, seconds=3, milliseconds=4))
    assert interval.kind is IntervalKind.DAY_SECOND
    assert interval.get_day_second() == (2, 0, 0, 3, 4_000_000)


def test_interval_to_timedelta():
    day_second = NativeInterval(IntervalKind.DAY_SECOND, days=-1, hours=-2, fraction=-500_000_000)
    assert interval_to_timedelta(day_second) == -datetime.timedelta(days=1, hours=2, milliseconds=500)

    year_month = NativeInterval(IntervalKind.YEAR_MONTH, years=2, months=-1)
    assert interval_to_timedelta(year_month) == datetime.timedelta(days=700)
    assert interval_to_timedelta(year_month, exact_year_month=True) == relativedelta(years=2, months=-1)


def test_date_to_native():
    assert date_to_native(datetime.date(2024, 2, 29)) == NativeDate(2024, 2, 29)
    value = datetime.datetime(2024, 2, 29, 23, 59, 58, 999999)
    assert date_to_native(value) == NativeDate(2024, 2, 29, 23, 59, 58)


def test_datetime_to_timestamp_offsets():
    west = datetime.datetime(2020, 1, 1, 12, tzinfo=tz.tzoffset(None, -(3 * 3600 + 30 * 60)))
    assert datetime_to_timestamp(west).get_time_zone_offset() == (-3, -30)

    naive = datetime_to_timestamp(datetime.datetime(2020, 1, 1, 0, 0, 0, 1))
    assert naive.get_time_zone_offset() == (0, 0)
    assert naive.fraction == 1000


def test_offset_label_and_zone():
    assert offset_label(5, 30) == '+05:30'
    assert offset_label(0, -30) == '-00:30'
    zone = offset_zone(-3, -30)
    assert zone.utcoffset(None) == -datetime.timedelta(hours=3, minutes=30)
    assert zone.tzname(None) == '-03:30'


def test_timestamp_round_trip():
    value = datetime.datetime(2021, 6, 1, 8, 15, 0, 250000, tzinfo=tz.tzoffset(None, 7200))
    back = timestamp_to_datetime(datetime_to_timestamp(value))
    assert back == value
    assert back.utcoffset() == datetime.timedelta(hours=2)


def test_timestamp_fraction_truncated_to_microseconds():
    raw = NativeTimestamp(2021, 6, 1, fraction=999_999_999)
    assert timestamp_to_datetime(raw).microsecond == 999999


if __name__ == '__main__':
    __import__('pytest').main([__file__])
