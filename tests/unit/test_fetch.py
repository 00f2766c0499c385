import datetime
import decimal

import numpy as np
import pandas as pd
import pytest
from dateutil.relativedelta import relativedelta
from ocibind.adapters.column_info import ColumnDescriptor
from ocibind.config.type_mapping import TypeMappingConfig
from ocibind.exceptions import FetchError, TypeConversionError
from ocibind.fetch import ColumnFetcher, ResultCursor, zero_value
from ocibind.native import ColumnType, IntervalKind, NativeDate, NativeInterval
from ocibind.native import NativeTimestamp
from ocibind.number import PackedNumber, encode_number
from ocibind.options import FetchOptions
from ocibind.values import Lob, Long, NullInt64, NullTime, Var


def packed(text):
    return bytes(encode_number(text))


def numeric(name='N', precision=0, scale=0):
    return ColumnDescriptor(name, ColumnType.NUMERIC, 'NUMBER', precision=precision, scale=scale)


def test_numeric_small_integer():
    """Integral values of precision <= 19 decode to int"""
    fetcher = ColumnFetcher()
    assert fetcher.fetch_into(None, numeric(), packed('123')) == 123
    assert fetcher.fetch_into(None, numeric(precision=10), packed('-4000')) == -4000
    assert fetcher.fetch_into(None, numeric(), np.int64(5)) == 5


def test_numeric_fraction_as_text():
    desc = numeric()
    assert ColumnFetcher().fetch_into(None, desc, packed('12.3')) == '12.3'
    assert (desc.precision, desc.scale) == (3, 1)


def test_numeric_shape_is_not_reinferred():
    """The first observed value fixes the shape of the column"""
    desc = numeric()
    fetcher = ColumnFetcher()
    fetcher.fetch_into(None, desc, packed('12.3'))
    assert fetcher.fetch_into(None, desc, packed('5')) == '5'
    assert (desc.precision, desc.scale) == (3, 1)


def test_numeric_wide_integer():
    value = '1' * 25
    assert ColumnFetcher().fetch_into(None, numeric(), packed(value)) == value

    fetcher = ColumnFetcher(FetchOptions(arbitrary_precision=True))
    assert fetcher.fetch_into(None, numeric(), packed(value)) == int(value)
    assert fetcher.fetch_into(None, numeric(), packed('12.3')) == decimal.Decimal('12.3')


def test_numeric_negative_at_precision_ceiling():
    value = '-12345678901234567890123456789012345678'
    assert ColumnFetcher().fetch_into(None, numeric(), packed(value)) == value
    fetcher = ColumnFetcher(FetchOptions(arbitrary_precision=True))
    assert fetcher.fetch_into(None, numeric(), packed(value)) == int(value)


def test_numeric_text_raw():
    assert ColumnFetcher().fetch_into(None, numeric(), '0012.30') == '12.3'


def test_corrupt_number_raises_fetch_error():
    with pytest.raises(FetchError, match=r'fetch\(AMOUNT\)'):
        ColumnFetcher().fetch_into(None, numeric('AMOUNT'), bytes([2, 193, 200]))


def test_date_and_timestamp():
    fetcher = ColumnFetcher()
    date_col = ColumnDescriptor('D', ColumnType.DATE)
    ts_col = ColumnDescriptor('TS', ColumnType.TIMESTAMP)

    value = fetcher.fetch_into(None, date_col, NativeDate(2023, 5, 15, 14, 30, 45))
    assert value == datetime.datetime(2023, 5, 15, 14, 30, 45)
    assert value.tzinfo is None

    raw = NativeTimestamp(2023, 5, 15, 14, 30, 45, 123456789, 5, 30)
    value = fetcher.fetch_into(None, ts_col, raw)
    assert value.microsecond == 123456
    assert value.utcoffset() == datetime.timedelta(hours=5, minutes=30)
    assert value.tzname() == '+05:30'


def test_timestamp_unknown_region_uses_offset():
    raw = NativeTimestamp(2023, 1, 1, tz_hour=-3, tz_minute=0, tz_name='Nowhere/Unknown')
    value = ColumnFetcher().fetch_into(None, ColumnDescriptor('TS', ColumnType.TIMESTAMP), raw)
    assert value.utcoffset() == datetime.timedelta(hours=-3)


def test_intervals():
    desc = ColumnDescriptor('I', ColumnType.INTERVAL)
    day_second = NativeInterval(IntervalKind.DAY_SECOND, days=1, hours=2, fraction=250_000_000)
    year_month = NativeInterval(IntervalKind.YEAR_MONTH, years=1, months=2)

    fetcher = ColumnFetcher()
    assert fetcher.fetch_into(None, desc, day_second) == datetime.timedelta(
        days=1, hours=2, milliseconds=250)
    assert fetcher.fetch_into(None, desc, year_month) == datetime.timedelta(days=365 + 60)

    exact = ColumnFetcher(FetchOptions(exact_year_month=True))
    assert exact.fetch_into(None, desc, year_month) == relativedelta(years=1, months=2)
    assert fetcher.fetch_into(relativedelta, desc, year_month) == relativedelta(years=1, months=2)


def test_text_raw_and_long():
    fetcher = ColumnFetcher()
    assert fetcher.fetch_into(None, ColumnDescriptor('T', ColumnType.TEXT), b'abc\x00junk') == 'abc'
    assert fetcher.fetch_into(None, ColumnDescriptor('R', ColumnType.RAW), bytearray(b'\x01')) == b'\x01'

    long_raw = ColumnDescriptor('L', ColumnType.LONG, 'LONG RAW')
    long_text = ColumnDescriptor('L', ColumnType.LONG, 'LONG', size=4000)
    assert fetcher.fetch_into(None, long_raw, b'\x00\x01') == b'\x00\x01'
    assert fetcher.fetch_into(None, long_text, b'text') == 'text'
    assert fetcher.fetch_into(None, long_text, 'handle') == 'handle'
    assert fetcher.fetch_into(None, long_text, 7) == Long(7, size=4000)


def test_handles_and_cursor(make_resultset):
    fetcher = ColumnFetcher()
    lob = fetcher.fetch_into(None, ColumnDescriptor('C', ColumnType.LOB, 'CLOB', subtype=2), 'h')
    assert lob == Lob('h', type_info=2)

    nested = make_resultset([('X', ColumnType.TEXT)], [('a',), ('b',)])
    cursor = fetcher.fetch_into(None, ColumnDescriptor('RC', ColumnType.CURSOR), nested)
    assert isinstance(cursor, ResultCursor)
    assert cursor.fetchall() == [['a'], ['b']]


def test_unknown_type_tag_uses_str():
    assert ColumnFetcher().fetch_into(None, ColumnDescriptor('U', 99), 1.5) == '1.5'


def test_null_stores_zero_value():
    """NULL yields the zero value of the destination type"""
    fetcher = ColumnFetcher()
    desc = numeric()
    assert fetcher.fetch_into(None, desc, None, True) is None
    assert fetcher.fetch_into(int, desc, packed('1'), True) == 0
    assert fetcher.fetch_into(str, desc, None, True) == ''
    assert fetcher.fetch_into(PackedNumber, desc, None, True).is_null
    assert fetcher.fetch_into(NullInt64, desc, None, True) == NullInt64.null()
    assert fetcher.fetch_into(np.int32, desc, None, True) == np.int32(0)

    var = Var(float, 1.0)
    assert fetcher.fetch_into(var, desc, None, True) == 0.0
    assert var.is_null


def test_zero_value():
    assert zero_value(bytes) == b''
    assert zero_value(bool) is False
    assert zero_value(NullTime) == NullTime.null()
    assert zero_value(datetime.datetime) is None


def test_numeric_destinations():
    fetcher = ColumnFetcher()
    desc = numeric()
    assert fetcher.fetch_into(int, desc, packed('-3.7')) == -3
    assert fetcher.fetch_into(float, desc, packed('1.5')) == 1.5
    assert fetcher.fetch_into(decimal.Decimal, desc, packed('1.5')) == decimal.Decimal('1.5')
    assert fetcher.fetch_into(bool, desc, packed('0')) is False
    assert fetcher.fetch_into(NullInt64, desc, packed('9')) == NullInt64(9)
    assert fetcher.fetch_into(np.int16, desc, packed('9')) == np.int16(9)
    assert fetcher.fetch_into(decimal.Decimal, desc, 0.1) == decimal.Decimal('0.1')
    assert str(fetcher.fetch_into(PackedNumber, desc, packed('-3.14'))) == '-3.14'
    assert str(fetcher.fetch_into(PackedNumber, desc, 42)) == '42'


def test_string_destinations():
    fetcher = ColumnFetcher()
    assert fetcher.fetch_into(str, numeric(), 0.1) == '0.1'
    assert fetcher.fetch_into(str, numeric(), packed('.5')) == '.5'
    assert fetcher.fetch_into(str, ColumnDescriptor('T', ColumnType.TEXT), b'x\x00') == 'x'
    assert fetcher.fetch_into(bytes, ColumnDescriptor('T', ColumnType.TEXT), b'x\x00') == b'x'
    assert fetcher.fetch_into('', ColumnDescriptor('T', ColumnType.TEXT), 'proto') == 'proto'


def test_time_destinations():
    fetcher = ColumnFetcher()
    desc = ColumnDescriptor('D', ColumnType.DATE)
    raw = NativeDate(2020, 2, 29, 12)
    assert fetcher.fetch_into(datetime.date, desc, raw) == datetime.date(2020, 2, 29)
    assert fetcher.fetch_into(NullTime, desc, raw) == NullTime(datetime.datetime(2020, 2, 29, 12))


def test_incompatible_destinations():
    fetcher = ColumnFetcher()
    with pytest.raises(TypeConversionError):
        fetcher.fetch_into(int, ColumnDescriptor('T', ColumnType.TEXT), b'12')
    with pytest.raises(TypeConversionError):
        fetcher.fetch_into(datetime.timedelta, numeric(), packed('1'))
    with pytest.raises(TypeConversionError):
        fetcher.fetch_into(datetime.datetime, numeric(), packed('1'))
    with pytest.raises(TypeConversionError):
        fetcher.fetch_into(bytes, numeric(), packed('1'))


def test_fetch_row_length_mismatch():
    with pytest.raises(ValueError):
        ColumnFetcher().fetch_row([numeric()], [packed('1'), packed('2')])


def test_result_cursor(make_resultset):
    columns = [
        ('ID', ColumnType.NUMERIC, 'NUMBER', 22, 10, 0, False),
        ('NAME', ColumnType.TEXT, 'VARCHAR2(30)', 30),
    ]
    rows = [(packed('1'), b'alice\x00'), (packed('2'), (None, True))]
    cursor = ResultCursor(make_resultset(columns, rows))

    assert ColumnDescriptor.get_names(cursor.columns) == ['ID', 'NAME']
    assert cursor.columns[0].python_type is int
    assert cursor.columns[0].nullable is False
    assert list(cursor) == [[1, 'alice'], [2, None]]
    assert cursor.rowcount == 2
    assert cursor.fetchone() is None


def test_result_cursor_fetch_into_vars(make_resultset):
    columns = [('ID', ColumnType.NUMERIC), ('NAME', ColumnType.TEXT)]
    cursor = ResultCursor(make_resultset(columns, [(packed('7'), (None, True))]))
    dest = [Var(float), Var(str)]
    assert cursor.fetch_into(dest) is True
    assert dest[0].value == 7.0
    assert dest[1].value == ''
    assert dest[1].is_null
    assert cursor.fetch_into(dest) is False


def test_result_cursor_native_failure(make_resultset):
    cursor = ResultCursor(make_resultset([('D', ColumnType.DATE)], [(None,)], fail_at=1))
    with pytest.raises(FetchError) as excinfo:
        cursor.fetchone()
    assert excinfo.value.column == 'D'
    assert excinfo.value.code == 1801


def test_result_cursor_configured_override(make_resultset):
    TypeMappingConfig.get_instance().add_column_mapping('orders', 'amount', 'decimal')
    columns = [('AMOUNT', ColumnType.NUMERIC, 'NUMBER', 22, 12, 2)]
    cursor = ResultCursor(make_resultset(columns, [(packed('12.5'),)]), table_name='orders')
    assert cursor.columns[0].override_type is decimal.Decimal
    assert cursor.fetchone() == [decimal.Decimal('12.5')]


def test_result_cursor_load_dataframe(make_resultset):
    columns = [('ID', ColumnType.NUMERIC, 'NUMBER', 22, 10, 0), ('NAME', ColumnType.TEXT)]
    rows = [(packed('1'), b'alice'), (packed('2'), b'bob')]
    fetcher = ColumnFetcher(FetchOptions(data_loader='pandas_numpy'))
    df = ResultCursor(make_resultset(columns, rows), fetcher).load()

    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ['ID', 'NAME']
    assert df.iloc[1]['NAME'] == 'bob'
    assert df.attrs['column_types']['ID']['python_type'] == 'int'


def test_result_cursor_load_empty(make_resultset):
    fetcher = ColumnFetcher(FetchOptions(data_loader='pandas_numpy'))
    df = ResultCursor(make_resultset([('ID', ColumnType.NUMERIC)], []), fetcher).load()
    assert df.empty
    assert list(df.columns) == ['ID']


if __name__ == '__main__':
    __import__('pytest').main([__file__])
