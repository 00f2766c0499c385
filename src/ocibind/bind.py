"""
Parameter binding.

ParameterBinder classifies host values with TypeConverter.classify and hands
each BoundValue to the bind function registered for its ValueKind. Every
ValueKind has exactly one bind function; importing this module fails if one
is missing.

Usage:
    binder = ParameterBinder(statement)
    binder.bind(1, 42)                      # :1 as a 64-bit integer
    binder.bind('name', ['a', 'bb'])        # :name as a string array
    out = Var(int)
    binder.bind('total', out)               # IN/OUT slot
    statement.execute()
    binder.read_back()                      # out.value now holds the result

    bind_execute(statement, 'begin :1 := :2 * 2; end;', [Var(int), 21])
"""
import datetime
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np

from ocibind.adapters.type_conversion import TypeConverter
from ocibind.exceptions import BindError, NativeError, UnsupportedTypeError
from ocibind.exceptions import ValidationError
from ocibind.fetch import ColumnFetcher
from ocibind.native import BindDirection, IntervalKind, NativeBind
from ocibind.native import NativeStatement, NativeType
from ocibind.number import PackedNumber, pack_numbers
from ocibind.options import BindOptions, FetchOptions
from ocibind.temporal import date_to_native, datetime_to_timestamp
from ocibind.temporal import timedelta_to_interval
from ocibind.values import BoundValue, ValueKind, Var

logger = logging.getLogger(__name__)

BindFunction = Callable[['ParameterBinder', str, BoundValue], tuple[NativeBind, NativeType]]

_BINDERS: dict[ValueKind, BindFunction] = {}


def register_binder(*kinds: ValueKind):
    """Decorator to register the bind function for one or more value kinds.

    Usage:
        @register_binder(ValueKind.BOOL)
        def _bind_bool(binder, name, bound):
            ...
    """
    def decorator(func: BindFunction) -> BindFunction:
        for kind in kinds:
            if kind in _BINDERS:
                raise ValueError(f'{kind} already has a bind function')
            _BINDERS[kind] = func
        return func
    return decorator


@dataclass
class BindHandle:
    """Result of one bind call.

    ``native`` is None for empty arrays, which bind nothing.
    """
    name: str
    bound: BoundValue
    native: NativeBind | None
    native_type: NativeType | None = None
    var: Var | None = None


class ParameterBinder:
    """Binds host values to a native statement.

    Args:
        statement: NativeStatement receiving the binds
        options: BindOptions, defaults read from the environment
    """

    def __init__(self, statement: NativeStatement, options: BindOptions | None = None):
        self.statement = statement
        self.options = options or BindOptions()
        self.handles: list[BindHandle] = []

    @staticmethod
    def bind_name(slot: int | str) -> str:
        """
        Placeholder name for a 1-based position or a parameter name.

        >>> ParameterBinder.bind_name(2)
        ':2'
        >>> ParameterBinder.bind_name('total')
        ':total'
        """
        if isinstance(slot, int) and not isinstance(slot, bool):
            if slot < 1:
                raise ValidationError(f'bind positions are 1-based, got {slot}')
            return f':{slot}'
        name = str(slot)
        return name if name.startswith(':') else f':{name}'

    def bind(self, slot: int | str, value: Any) -> BindHandle:
        """Bind one value to a positional or named slot.

        Args:
            slot: 1-based position or parameter name
            value: host value, sequence of host values, or Var

        Returns
            BindHandle for the bind
        """
        name = self.bind_name(slot)
        try:
            bound = TypeConverter.classify(value, self.options.empty_string_is_null)
        except UnsupportedTypeError as exc:
            raise UnsupportedTypeError(exc.type_name, name) from None

        var = value if isinstance(value, Var) else None
        if bound.is_array:
            logger.debug(f'Binding {name} as {bound.kind.value}[{len(bound)}]')
            if len(bound) == 0:
                handle = BindHandle(name, bound, None, var=var)
                self.handles.append(handle)
                return handle
            if len(bound) > self.options.bind_array_size:
                raise ValidationError(f'bind({name}): {len(bound)} elements exceed'
                                      f' bind_array_size {self.options.bind_array_size}')
        else:
            logger.debug(f'Binding {name} as {bound.kind.value}')

        try:
            native, native_type = _BINDERS[bound.kind](self, name, bound)
            if bound.null:
                native.set_null()
            for position in bound.nulls:
                native.set_null_at(position)
            native.set_direction(BindDirection.IN_OUT if bound.by_ref else BindDirection.IN)
        except NativeError as exc:
            logger.error(f'Native bind failed for {name}: {exc}')
            raise BindError(name, exc) from exc

        handle = BindHandle(name, bound, native, native_type, var)
        self.handles.append(handle)
        return handle

    def bind_all(self, params: Any) -> list[BindHandle]:
        """Bind a sequence positionally (:1, :2, ...) or a mapping by name.
        """
        if not params:
            return []
        if isinstance(params, Mapping):
            return [self.bind(name, value) for name, value in params.items()]
        return [self.bind(pos, value) for pos, value in enumerate(params, 1)]

    def read_back(self, fetch_options: FetchOptions | None = None) -> list[Any]:
        """Decode the native data of every Var slot into the Var.

        Returns
            The values read, in bind order
        """
        fetcher = ColumnFetcher(fetch_options or FetchOptions(encoding=self.options.encoding))
        values = []
        for handle in self.handles:
            if handle.var is None or handle.native is None:
                continue
            values.append(fetcher.read_bind(handle.var, handle.native_type, handle.native,
                                            name=handle.name))
        return values

    def _bind(self, name: str, native_type: NativeType, data: Any,
              **kwargs) -> tuple[NativeBind, NativeType]:
        return self.statement.bind(name, native_type, data, **kwargs), native_type


def bind_execute(statement: NativeStatement, sql: str, params: Any = None,
                 options: BindOptions | None = None) -> list[BindHandle]:
    """Prepare, bind, execute and read OUT slots back.

    The statement stays open; wrap it in statement_scope to release it.

    Args:
        statement: NativeStatement to run on
        sql: statement text
        params: sequence (positional) or mapping (named) of host values
        options: BindOptions

    Returns
        BindHandles of all binds
    """
    options = options or BindOptions()
    try:
        statement.prepare(sql)
        statement.set_bind_array_size(options.bind_array_size)
    except NativeError as exc:
        logger.error(f'Failed to prepare statement: {exc}')
        raise
    binder = ParameterBinder(statement, options)
    handles = binder.bind_all(params)
    try:
        statement.execute()
    except NativeError as exc:
        logger.error(f'Failed to execute statement: {exc}')
        raise
    binder.read_back()
    return handles


# Bind functions

_INTEGER_TYPES: dict[ValueKind, tuple[NativeType, type]] = {
    ValueKind.INT16: (NativeType.SHORT, np.int16),
    ValueKind.UINT16: (NativeType.USHORT, np.uint16),
    ValueKind.INT32: (NativeType.INT, np.int32),
    ValueKind.UINT32: (NativeType.UINT, np.uint32),
    ValueKind.INT64: (NativeType.BIGINT, np.int64),
    ValueKind.UINT64: (NativeType.UBIGINT, np.uint64),
    ValueKind.NULL_INT64: (NativeType.BIGINT, np.int64),
    ValueKind.BOOL: (NativeType.INT, np.int32),
    }

_HANDLE_TYPES: dict[ValueKind, NativeType] = {
    ValueKind.LOB: NativeType.LOB,
    ValueKind.FILE: NativeType.FILE,
    ValueKind.OBJECT: NativeType.OBJECT,
    ValueKind.COLLECTION: NativeType.COLLECTION,
    ValueKind.REFERENCE: NativeType.REFERENCE,
    ValueKind.STATEMENT: NativeType.STATEMENT,
    ValueKind.LONG: NativeType.LONG,
    }


@register_binder(ValueKind.INT16, ValueKind.UINT16, ValueKind.INT32, ValueKind.UINT32,
                 ValueKind.INT64, ValueKind.UINT64, ValueKind.NULL_INT64, ValueKind.BOOL)
def _bind_integer(binder, name, bound):
    native_type, dtype = _INTEGER_TYPES[bound.kind]
    if bound.is_array:
        data = np.asarray([0 if v is None else int(v) for v in bound.value], dtype=dtype)
        return binder._bind(name, native_type, data, count=len(data))
    return binder._bind(name, native_type, int(bound.value or 0))


@register_binder(ValueKind.FLOAT32, ValueKind.FLOAT64, ValueKind.NULL_FLOAT64)
def _bind_float(binder, name, bound):
    native_type = NativeType.FLOAT if bound.kind is ValueKind.FLOAT32 else NativeType.DOUBLE
    if not bound.is_array:
        return binder._bind(name, native_type, float(bound.value or 0.0))
    if binder.options.native_float_arrays:
        dtype = np.float32 if native_type is NativeType.FLOAT else np.float64
        data = np.asarray([0.0 if v is None else v for v in bound.value], dtype=dtype)
        return binder._bind(name, native_type, data, count=len(data))
    buffer, _ = pack_numbers(bound.value)
    return binder._bind(name, NativeType.NUMBER, buffer, count=len(buffer))


@register_binder(ValueKind.NUMBER)
def _bind_number(binder, name, bound):
    if bound.is_array:
        buffer, _ = pack_numbers(bound.value)
        return binder._bind(name, NativeType.NUMBER, buffer, count=len(buffer))
    number = bound.value if bound.value is not None else PackedNumber.null()
    return binder._bind(name, NativeType.NUMBER, bytearray(bytes(number)))


def _fixed_stride(encoded: list[bytes], terminator: int, default: int) -> int:
    longest = max((len(b) for b in encoded), default=0)
    return longest + terminator if longest else default


def _stride_buffer(encoded: list[bytes], stride: int) -> np.ndarray:
    buffer = np.zeros((len(encoded), stride), dtype=np.uint8)
    for i, data in enumerate(encoded):
        buffer[i, :len(data)] = np.frombuffer(data, dtype=np.uint8)
    return buffer


def _sized_buffer(data: bytes, size: int, terminator: int) -> bytearray:
    buffer = bytearray(max(len(data), size) + terminator)
    buffer[:len(data)] = data
    return buffer


@register_binder(ValueKind.STRING)
def _bind_string(binder, name, bound):
    encoding = binder.options.encoding
    if bound.is_array:
        encoded = [b'' if v is None else v.encode(encoding) for v in bound.value]
        stride = _fixed_stride(encoded, 1, binder.options.default_stride)
        buffer = _stride_buffer(encoded, stride)
        return binder._bind(name, NativeType.STRING, buffer, count=len(encoded), stride=stride)
    data = (bound.value or '').encode(encoding)
    return binder._bind(name, NativeType.STRING, _sized_buffer(data, bound.size, 1))


@register_binder(ValueKind.BYTES)
def _bind_bytes(binder, name, bound):
    if bound.is_array:
        encoded = [b'' if v is None else bytes(v) for v in bound.value]
        stride = _fixed_stride(encoded, 0, binder.options.default_stride)
        buffer = _stride_buffer(encoded, stride)
        return binder._bind(name, NativeType.RAW, buffer, count=len(encoded), stride=stride)
    data = bytes(bound.value or b'')
    return binder._bind(name, NativeType.RAW, _sized_buffer(data, bound.size, 0))


def _as_datetime(value: datetime.date) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.combine(value, datetime.time())


def _decompose(values: list, convert: Callable) -> list:
    """Convert every element before anything is bound.
    """
    return [None if v is None else convert(v) for v in values]


@register_binder(ValueKind.DATE)
def _bind_date(binder, name, bound):
    if bound.is_array:
        data = _decompose(bound.value, date_to_native)
        return binder._bind(name, NativeType.DATE, data, count=len(data))
    data = None if bound.value is None else date_to_native(bound.value)
    return binder._bind(name, NativeType.DATE, data)


@register_binder(ValueKind.TIMESTAMP)
def _bind_timestamp(binder, name, bound):
    def convert(value):
        return datetime_to_timestamp(_as_datetime(value))
    if bound.is_array:
        data = _decompose(bound.value, convert)
        return binder._bind(name, NativeType.TIMESTAMP, data, count=len(data))
    data = None if bound.value is None else convert(bound.value)
    return binder._bind(name, NativeType.TIMESTAMP, data)


@register_binder(ValueKind.DURATION)
def _bind_duration(binder, name, bound):
    if bound.is_array:
        data = _decompose(bound.value, timedelta_to_interval)
        return binder._bind(name, NativeType.INTERVAL, data, count=len(data),
                            subtype=IntervalKind.DAY_SECOND)
    data = None if bound.value is None else timedelta_to_interval(bound.value)
    return binder._bind(name, NativeType.INTERVAL, data, subtype=IntervalKind.DAY_SECOND)


@register_binder(ValueKind.LOB, ValueKind.FILE, ValueKind.OBJECT, ValueKind.COLLECTION,
                 ValueKind.REFERENCE, ValueKind.STATEMENT, ValueKind.LONG)
def _bind_handle(binder, name, bound):
    native_type = _HANDLE_TYPES[bound.kind]
    if bound.is_array:
        first = next(v for v in bound.value if v is not None)
        data = [None if v is None else v.handle for v in bound.value]
        return binder._bind(name, native_type, data, count=len(data), type_info=first.type_info)
    if bound.value is None:
        return binder._bind(name, native_type, None)
    stride = getattr(bound.value, 'size', 0)
    return binder._bind(name, native_type, bound.value.handle, type_info=bound.value.type_info,
                        stride=stride)


@register_binder(ValueKind.NULL)
def _bind_null(binder, name, bound):
    return binder._bind(name, NativeType.STRING, bytearray(1))


_unbound = set(ValueKind) - set(_BINDERS)
if _unbound:
    raise ImportError(f'No bind function for {sorted(k.value for k in _unbound)}')
