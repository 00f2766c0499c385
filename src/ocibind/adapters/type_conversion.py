"""
Type conversion for bind parameters (Python → database direction only).

This module provides:
1. TypeConverter.convert_value: normalizes NumPy, Pandas and PyArrow values
   to plain Python values, mapping NaN/NaT/NA to None
2. TypeConverter.classify: turns a host value (or a sequence of them) into a
   BoundValue tagged with its ValueKind

Usage:
    bound = TypeConverter.classify(np.int16(7))
    assert bound.kind is ValueKind.INT16

    assert TypeConverter.convert_value(np.float64('nan')) is None
"""
import datetime
import decimal
import logging
import math
from collections.abc import Sequence
from typing import Any

import numpy as np
import pandas as pd
import pyarrow as pa

from ocibind.exceptions import UnsupportedTypeError
from ocibind.number import PackedNumber
from ocibind.values import BoundValue, Handle, NullBool, NullFloat64
from ocibind.values import NullInt64, NullTime, ValueKind, Var

logger = logging.getLogger(__name__)

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

NUMPY_INT_KINDS: dict[np.dtype, ValueKind] = {
    np.dtype(np.int8): ValueKind.INT16,
    np.dtype(np.int16): ValueKind.INT16,
    np.dtype(np.uint8): ValueKind.UINT16,
    np.dtype(np.uint16): ValueKind.UINT16,
    np.dtype(np.int32): ValueKind.INT32,
    np.dtype(np.uint32): ValueKind.UINT32,
    np.dtype(np.int64): ValueKind.INT64,
    np.dtype(np.uint64): ValueKind.UINT64,
    }

NUMPY_FLOAT_KINDS: dict[np.dtype, ValueKind] = {
    np.dtype(np.float16): ValueKind.FLOAT32,
    np.dtype(np.float32): ValueKind.FLOAT32,
    np.dtype(np.float64): ValueKind.FLOAT64,
    }

# Pandas nullable dtypes bind as nullable arrays
PANDAS_NULLABLE_TYPES = (
    pd.Int64Dtype, pd.Int32Dtype, pd.Int16Dtype, pd.Int8Dtype,
    pd.UInt64Dtype, pd.UInt32Dtype, pd.UInt16Dtype, pd.UInt8Dtype,
    )
PANDAS_NULLABLE_FLOAT_TYPES = (pd.Float64Dtype, pd.Float32Dtype)

_NUMERIC_ORDER = {ValueKind.INT64: 0, ValueKind.FLOAT64: 1, ValueKind.NUMBER: 2}


def _convert_pyarrow_value(value: Any) -> Any:
    """
    Convert PyArrow value to Python type.

    Scalars go through ``as_py`` (null scalars become None); arrays become
    lists.
    """
    if isinstance(value, pa.Scalar):
        return value.as_py() if value.is_valid else None
    if isinstance(value, pa.Array | pa.ChunkedArray):
        return value.to_pylist()
    return value


def _convert_numpy_value(val: Any) -> Any:
    """
    Convert NumPy scalar to Python type.

    NaN and NaT become None; datetime64 becomes a naive datetime and
    timedelta64 a timedelta.

    >>> _convert_numpy_value(np.int32(42))
    42
    >>> _convert_numpy_value(np.float64('nan')) is None
    True
    """
    if isinstance(val, np.floating) and np.isnan(val):
        return None
    if isinstance(val, np.datetime64 | np.timedelta64) and np.isnat(val):
        return None
    if isinstance(val, np.datetime64):
        logger.debug(f'Converting np.datetime64 to Python datetime: {val}')
        return pd.Timestamp(val).to_pydatetime()
    if isinstance(val, np.timedelta64):
        return pd.Timedelta(val).to_pytimedelta()
    if isinstance(val, np.generic):
        return val.item()
    return val


def _convert_pandas_value(val: Any) -> Any:
    """
    Convert Pandas scalar to Python type, handling NA/NaT as NULL.
    """
    if val is pd.NA or val is pd.NaT:
        return None
    if isinstance(val, pd.Timestamp):
        return val.to_pydatetime()
    if isinstance(val, pd.Timedelta):
        return val.to_pytimedelta()
    return val


def _is_array(value: Any) -> bool:
    if isinstance(value, str | bytes | bytearray | memoryview):
        return False
    return isinstance(value, list | tuple | np.ndarray | pd.Series | pa.Array | pa.ChunkedArray)


def _scalar_kind(value: Any) -> ValueKind:
    """ValueKind of an already normalized, non-null scalar.
    """
    if isinstance(value, bool | np.bool_):
        return ValueKind.BOOL
    if isinstance(value, np.integer):
        return NUMPY_INT_KINDS[value.dtype]
    if isinstance(value, np.floating):
        return NUMPY_FLOAT_KINDS.get(value.dtype, ValueKind.FLOAT64)
    if isinstance(value, int):
        return ValueKind.INT64 if INT64_MIN <= value <= INT64_MAX else ValueKind.NUMBER
    if isinstance(value, float):
        return ValueKind.FLOAT64
    if isinstance(value, decimal.Decimal | PackedNumber):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, bytes | bytearray | memoryview):
        return ValueKind.BYTES
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None or value.microsecond:
            return ValueKind.TIMESTAMP
        return ValueKind.DATE
    if isinstance(value, datetime.date):
        return ValueKind.DATE
    if isinstance(value, datetime.timedelta):
        return ValueKind.DURATION
    if isinstance(value, Handle):
        return value.kind
    if isinstance(value, NullInt64):
        return ValueKind.NULL_INT64
    if isinstance(value, NullFloat64):
        return ValueKind.NULL_FLOAT64
    if isinstance(value, NullBool):
        return ValueKind.BOOL
    if isinstance(value, NullTime):
        return _scalar_kind(value.value) if value.valid else ValueKind.DATE
    raise UnsupportedTypeError(type(value).__name__)


_TYPE_KINDS: dict[type, ValueKind] = {
    bool: ValueKind.BOOL,
    int: ValueKind.INT64,
    float: ValueKind.FLOAT64,
    str: ValueKind.STRING,
    bytes: ValueKind.BYTES,
    bytearray: ValueKind.BYTES,
    decimal.Decimal: ValueKind.NUMBER,
    PackedNumber: ValueKind.NUMBER,
    datetime.datetime: ValueKind.DATE,
    datetime.date: ValueKind.DATE,
    datetime.timedelta: ValueKind.DURATION,
    NullInt64: ValueKind.NULL_INT64,
    NullFloat64: ValueKind.NULL_FLOAT64,
    NullBool: ValueKind.BOOL,
    NullTime: ValueKind.DATE,
    }


def kind_for_type(python_type: type) -> ValueKind:
    """ValueKind used to bind an empty slot of the given destination type.
    """
    if python_type in _TYPE_KINDS:
        return _TYPE_KINDS[python_type]
    if isinstance(python_type, type) and issubclass(python_type, np.generic):
        dtype = np.dtype(python_type)
        if dtype in NUMPY_INT_KINDS:
            return NUMPY_INT_KINDS[dtype]
        if dtype in NUMPY_FLOAT_KINDS:
            return NUMPY_FLOAT_KINDS[dtype]
    if isinstance(python_type, type) and issubclass(python_type, Handle):
        return python_type.kind
    raise UnsupportedTypeError(getattr(python_type, '__name__', str(python_type)))


class TypeConverter:
    """Universal type conversion for bind parameters"""

    @staticmethod
    def convert_value(value: Any) -> Any:
        """Convert a single value to a plain Python value

        Args:
            value: Any Python, NumPy, Pandas or PyArrow scalar

        Returns
            Converted value; None for NaN, NaT and NA
        """
        if value is None:
            return None

        if isinstance(value, float) and math.isnan(value):
            return None

        if isinstance(value, decimal.Decimal) and value.is_nan():
            return None

        if isinstance(value, np.generic):
            return _convert_numpy_value(value)

        if isinstance(value, pa.Scalar):
            return _convert_pyarrow_value(value)

        return _convert_pandas_value(value)

    @staticmethod
    def classify(value: Any, empty_is_null: bool = True) -> BoundValue:
        """Classify a host value into a BoundValue

        Args:
            value: scalar, sequence, numpy array, pandas Series, pyarrow array,
                nullable wrapper, handle or Var
            empty_is_null: flag empty strings and bytes as NULL

        Returns
            BoundValue with kind, value and null flags
        """
        if isinstance(value, Var):
            return TypeConverter._classify_var(value, empty_is_null)
        if _is_array(value):
            return TypeConverter._classify_array(value, empty_is_null)
        return TypeConverter._classify_scalar(value, empty_is_null)

    @staticmethod
    def _classify_var(var: Var, empty_is_null: bool) -> BoundValue:
        if _is_array(var.value):
            raise UnsupportedTypeError(f'Var[{type(var.value).__name__}]')
        if var.value is None:
            kind = kind_for_type(var.type)
            return BoundValue(kind, None, by_ref=True, null=True, size=var.size)
        bound = TypeConverter._classify_scalar(var.value, empty_is_null)
        bound.by_ref = True
        bound.size = var.size
        return bound

    @staticmethod
    def _classify_scalar(value: Any, empty_is_null: bool) -> BoundValue:
        raw = value
        if not isinstance(value, np.integer | np.floating | np.bool_):
            value = TypeConverter.convert_value(value)
        elif isinstance(value, np.floating) and np.isnan(value):
            value = None
        if value is None:
            return BoundValue(ValueKind.NULL, None, null=True)

        kind = _scalar_kind(value)
        if kind is ValueKind.NUMBER:
            number = PackedNumber.from_value(value)
            return BoundValue(kind, number, null=number.is_null)
        if kind in {ValueKind.STRING, ValueKind.BYTES}:
            return BoundValue(kind, value, null=empty_is_null and len(value) == 0)
        if kind in {ValueKind.NULL_INT64, ValueKind.NULL_FLOAT64}:
            return BoundValue(kind, value.value, null=not value.valid)
        if isinstance(value, NullBool | NullTime):
            return BoundValue(kind, value.value, null=not value.valid)
        logger.debug(f'Classified {type(raw).__name__} as {kind.value}')
        return BoundValue(kind, value)

    @staticmethod
    def _classify_array(values: Any, empty_is_null: bool) -> BoundValue:
        if isinstance(values, pa.Array | pa.ChunkedArray):
            values = _convert_pyarrow_value(values)
        if isinstance(values, pd.Series):
            return TypeConverter._classify_series(values, empty_is_null)
        if isinstance(values, np.ndarray):
            return TypeConverter._classify_ndarray(values, empty_is_null)
        return TypeConverter._classify_list(list(values), empty_is_null)

    @staticmethod
    def _classify_series(series: pd.Series, empty_is_null: bool) -> BoundValue:
        if isinstance(series.dtype, PANDAS_NULLABLE_TYPES):
            mask = series.isna().to_numpy()
            data = series.fillna(0).to_numpy(dtype=np.int64)
            nulls = tuple(int(i) + 1 for i in np.flatnonzero(mask))
            return BoundValue(ValueKind.NULL_INT64, data, is_array=True, nulls=nulls)
        if isinstance(series.dtype, PANDAS_NULLABLE_FLOAT_TYPES):
            values = [None if pd.isna(v) else float(v) for v in series]
            nulls = tuple(i + 1 for i, v in enumerate(values) if v is None)
            return BoundValue(ValueKind.NULL_FLOAT64, values, is_array=True, nulls=nulls)
        if series.dtype == object or isinstance(series.dtype, pd.ArrowDtype | pd.StringDtype):
            return TypeConverter._classify_list(series.tolist(), empty_is_null)
        return TypeConverter._classify_ndarray(series.to_numpy(), empty_is_null)

    @staticmethod
    def _classify_ndarray(array: np.ndarray, empty_is_null: bool) -> BoundValue:
        if array.ndim != 1:
            raise UnsupportedTypeError(f'ndarray[{array.ndim}d]')
        dtype = array.dtype
        if dtype in NUMPY_INT_KINDS:
            return BoundValue(NUMPY_INT_KINDS[dtype], array, is_array=True)
        if dtype in NUMPY_FLOAT_KINDS:
            nulls = tuple(int(i) + 1 for i in np.flatnonzero(np.isnan(array)))
            kind = NUMPY_FLOAT_KINDS[dtype]
            if nulls:
                values = [None if math.isnan(v) else v for v in array.tolist()]
                return BoundValue(ValueKind.NULL_FLOAT64, values, is_array=True, nulls=nulls)
            return BoundValue(kind, array, is_array=True)
        if dtype == np.bool_:
            return BoundValue(ValueKind.BOOL, array.astype(np.int32), is_array=True)
        return TypeConverter._classify_list(list(array), empty_is_null)

    @staticmethod
    def _classify_list(values: list, empty_is_null: bool) -> BoundValue:
        """Classify a homogeneous list.

        The first non-null element decides the kind; int and float mixes
        promote to float, Decimal mixes to NUMBER. None holes are recorded
        as 1-based null positions.
        """
        if not values:
            return BoundValue(ValueKind.NULL, [], is_array=True)

        items = []
        nulls = []
        kinds = set()
        for pos, item in enumerate(values, 1):
            if isinstance(item, NullInt64 | NullFloat64 | NullBool | NullTime):
                kinds.add(_scalar_kind(item))
                if not item.valid:
                    nulls.append(pos)
                items.append(item.value if item.valid else None)
                continue
            item = TypeConverter.convert_value(item)
            if item is None:
                nulls.append(pos)
                items.append(None)
                continue
            kinds.add(_scalar_kind(item))
            items.append(item)

        kind = _merge_kinds(kinds, values)
        if empty_is_null and kind in {ValueKind.STRING, ValueKind.BYTES}:
            empty = {i for i, v in enumerate(items, 1) if v is not None and len(v) == 0}
            nulls = sorted(set(nulls) | empty)
        if nulls and kind is ValueKind.INT64:
            kind = ValueKind.NULL_INT64
        elif nulls and kind in {ValueKind.FLOAT64, ValueKind.FLOAT32}:
            kind = ValueKind.NULL_FLOAT64
        logger.debug(f'Classified list of {len(items)} as {kind.value}, {len(nulls)} NULL')
        return BoundValue(kind, items, is_array=True, nulls=tuple(nulls))


def _merge_kinds(kinds: set[ValueKind], values: Sequence) -> ValueKind:
    """Element kind of a list from the kinds of its non-null elements.
    """
    if not kinds:
        return ValueKind.STRING
    if len(kinds) == 1:
        return next(iter(kinds))
    if kinds <= {ValueKind.DATE, ValueKind.TIMESTAMP}:
        return ValueKind.TIMESTAMP
    if kinds <= {ValueKind.NULL_INT64, ValueKind.INT64}:
        return ValueKind.NULL_INT64
    if kinds <= {ValueKind.NULL_FLOAT64, ValueKind.FLOAT64, ValueKind.FLOAT32}:
        return ValueKind.NULL_FLOAT64
    if kinds <= {ValueKind.FLOAT32, ValueKind.FLOAT64}:
        return ValueKind.FLOAT64
    if kinds <= set(_NUMERIC_ORDER):
        return max(kinds, key=_NUMERIC_ORDER.__getitem__)
    names = sorted({type(v).__name__ for v in values if v is not None})
    raise UnsupportedTypeError(f'list[{" | ".join(names)}]')


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
