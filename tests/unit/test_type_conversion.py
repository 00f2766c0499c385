import datetime
import decimal

import numpy as np
import pandas as pd
import pyarrow as pa
import pytest
from ocibind.adapters.type_conversion import TypeConverter, kind_for_type
from ocibind.exceptions import UnsupportedTypeError
from ocibind.number import PackedNumber
from ocibind.values import File, NullBool, NullFloat64, NullTime, ValueKind, Var


def test_convert_value_nulls():
    """NaN, NaT and NA all normalize to None"""
    for value in [None, float('nan'), np.float64('nan'), np.datetime64('NaT'), pd.NA, pd.NaT,
                  decimal.Decimal('NaN'), pa.scalar(None, type=pa.int64())]:
        assert TypeConverter.convert_value(value) is None


def test_convert_value_scalars():
    assert TypeConverter.convert_value(np.int32(42)) == 42
    assert TypeConverter.convert_value(pa.scalar(7)) == 7
    assert TypeConverter.convert_value(pd.Timestamp('2020-01-02 03:04:05')) == datetime.datetime(
        2020, 1, 2, 3, 4, 5)
    assert TypeConverter.convert_value(np.datetime64('2020-01-02')) == datetime.datetime(2020, 1, 2)
    assert TypeConverter.convert_value(pd.Timedelta(seconds=5)) == datetime.timedelta(seconds=5)


def test_classify_scalars(value_dict):
    cases = {
        'int_value': ValueKind.INT64,
        'huge_int': ValueKind.NUMBER,
        'bool_true': ValueKind.BOOL,
        'float_value': ValueKind.FLOAT64,
        'decimal_value': ValueKind.NUMBER,
        'varchar_value': ValueKind.STRING,
        'binary_value': ValueKind.BYTES,
        'date_value': ValueKind.DATE,
        'datetime_value': ValueKind.DATE,
        'timestamp_value': ValueKind.TIMESTAMP,
        'duration_value': ValueKind.DURATION,
        'null_value': ValueKind.NULL,
    }
    for key, kind in cases.items():
        assert TypeConverter.classify(value_dict[key]).kind is kind, key


def test_classify_numpy_scalars():
    assert TypeConverter.classify(np.int8(1)).kind is ValueKind.INT16
    assert TypeConverter.classify(np.uint16(1)).kind is ValueKind.UINT16
    assert TypeConverter.classify(np.uint64(1)).kind is ValueKind.UINT64
    assert TypeConverter.classify(np.float32(1)).kind is ValueKind.FLOAT32
    assert TypeConverter.classify(np.bool_(True)).kind is ValueKind.BOOL
    bound = TypeConverter.classify(np.float64('nan'))
    assert bound.kind is ValueKind.NULL
    assert bound.null


def test_classify_number_values():
    bound = TypeConverter.classify(decimal.Decimal('-3.14'))
    assert isinstance(bound.value, PackedNumber)
    assert str(bound.value) == '-3.14'
    assert TypeConverter.classify(PackedNumber.null()).null


def test_classify_wrappers():
    bound = TypeConverter.classify(NullFloat64.null())
    assert bound.kind is ValueKind.NULL_FLOAT64
    assert bound.null
    assert TypeConverter.classify(NullBool(True)).kind is ValueKind.BOOL
    assert TypeConverter.classify(NullTime(datetime.datetime(2020, 1, 1))).kind is ValueKind.DATE
    assert TypeConverter.classify(NullTime()).null
    assert TypeConverter.classify(File('f')).kind is ValueKind.FILE


def test_classify_empty_strings():
    assert TypeConverter.classify('').null
    assert not TypeConverter.classify('', empty_is_null=False).null
    assert TypeConverter.classify(b'').null


def test_classify_var():
    bound = TypeConverter.classify(Var(str, size=20))
    assert bound.kind is ValueKind.STRING
    assert bound.by_ref
    assert bound.null
    assert bound.size == 20

    bound = TypeConverter.classify(Var(value=1.5))
    assert bound.kind is ValueKind.FLOAT64
    assert bound.by_ref
    assert not bound.null


def test_classify_lists():
    bound = TypeConverter.classify([1, 2.5])
    assert bound.kind is ValueKind.FLOAT64
    assert bound.is_array

    bound = TypeConverter.classify([1, decimal.Decimal('2')])
    assert bound.kind is ValueKind.NUMBER

    bound = TypeConverter.classify([datetime.date(2020, 1, 1), datetime.datetime(2020, 1, 1, 0, 0, 0, 5)])
    assert bound.kind is ValueKind.TIMESTAMP

    bound = TypeConverter.classify([None, None])
    assert bound.kind is ValueKind.STRING
    assert bound.nulls == (1, 2)

    bound = TypeConverter.classify(('a', '', None))
    assert bound.kind is ValueKind.STRING
    assert bound.nulls == (2, 3)

    bound = TypeConverter.classify([1.0, None])
    assert bound.kind is ValueKind.NULL_FLOAT64
    assert bound.nulls == (2,)


def test_classify_empty_list():
    bound = TypeConverter.classify([])
    assert bound.is_array
    assert len(bound) == 0


def test_classify_mixed_list_unsupported():
    with pytest.raises(UnsupportedTypeError, match=r'list\[int \| str\]'):
        TypeConverter.classify([1, 'a'])


def test_classify_ndarrays():
    bound = TypeConverter.classify(np.array([1.0, np.nan]))
    assert bound.kind is ValueKind.NULL_FLOAT64
    assert bound.nulls == (2,)
    assert bound.value == [1.0, None]

    bound = TypeConverter.classify(np.array([True, False]))
    assert bound.kind is ValueKind.BOOL
    assert bound.value.dtype == np.int32

    with pytest.raises(UnsupportedTypeError):
        TypeConverter.classify(np.zeros((2, 2)))


def test_classify_series():
    bound = TypeConverter.classify(pd.Series([1, None, 3], dtype='Int64'))
    assert bound.kind is ValueKind.NULL_INT64
    assert bound.nulls == (2,)
    assert bound.value.tolist() == [1, 0, 3]

    bound = TypeConverter.classify(pd.Series(['a', 'b']))
    assert bound.kind is ValueKind.STRING
    assert bound.value == ['a', 'b']

    bound = TypeConverter.classify(pd.Series([1.5, 2.5]))
    assert bound.kind is ValueKind.FLOAT64


def test_classify_pyarrow_array():
    bound = TypeConverter.classify(pa.array([1, None, 3]))
    assert bound.kind is ValueKind.NULL_INT64
    assert bound.nulls == (2,)


def test_kind_for_type():
    assert kind_for_type(int) is ValueKind.INT64
    assert kind_for_type(np.uint8) is ValueKind.UINT16
    assert kind_for_type(File) is ValueKind.FILE
    assert kind_for_type(decimal.Decimal) is ValueKind.NUMBER
    with pytest.raises(UnsupportedTypeError):
        kind_for_type(set)


if __name__ == '__main__':
    __import__('pytest').main([__file__])
