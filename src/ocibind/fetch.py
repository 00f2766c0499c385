"""
Column fetching: native column data to host values.

ColumnFetcher.fetch_into decodes one column value. When the destination slot
has a concrete type the value is decoded straight into that type; otherwise
the column's type tag decides:

- NUMERIC: int for integral values of precision <= 19, else text (or
  int/Decimal with FetchOptions.arbitrary_precision)
- DATE: naive datetime; TIMESTAMP: aware datetime
- INTERVAL: timedelta (relativedelta with FetchOptions.exact_year_month)
- TEXT: str; RAW/LONG: bytes (text LONG as str)
- CURSOR: nested ResultCursor; LOB/FILE/OBJECT/COLLECTION/REFERENCE: handles
- anything else: str(raw)

ResultCursor iterates a native result set through a ColumnFetcher.
"""
import datetime
import decimal
import logging
from collections.abc import Iterator, Sequence
from typing import Any

import numpy as np
from dateutil.relativedelta import relativedelta

from ocibind.adapters.column_info import ColumnDescriptor, columns_from_native
from ocibind.adapters.column_info import resolve_numeric_shape
from ocibind.adapters.structure import ResultStructureAdapter
from ocibind.adapters.type_mapping import INT_PRECISION
from ocibind.exceptions import FetchError, NativeError, NumberFormatError
from ocibind.exceptions import TypeConversionError
from ocibind.native import ColumnType, NativeBind, NativeDate, NativeInterval
from ocibind.native import NativeResultset, NativeTimestamp, NativeType
from ocibind.number import PackedNumber, canonical, decode_number, format_float
from ocibind.options import FetchOptions
from ocibind.temporal import interval_to_timedelta, native_to_datetime
from ocibind.temporal import timestamp_to_datetime
from ocibind.values import NULL_WRAPPERS, Collection, File, Handle, Lob, Long
from ocibind.values import NullBool, NullFloat64, NullInt64, NullTime, Object, Ref
from ocibind.values import Var

logger = logging.getLogger(__name__)

NATIVE_COLUMN_TYPES: dict[NativeType, ColumnType] = {
    NativeType.SHORT: ColumnType.NUMERIC,
    NativeType.USHORT: ColumnType.NUMERIC,
    NativeType.INT: ColumnType.NUMERIC,
    NativeType.UINT: ColumnType.NUMERIC,
    NativeType.BIGINT: ColumnType.NUMERIC,
    NativeType.UBIGINT: ColumnType.NUMERIC,
    NativeType.FLOAT: ColumnType.NUMERIC,
    NativeType.DOUBLE: ColumnType.NUMERIC,
    NativeType.NUMBER: ColumnType.NUMERIC,
    NativeType.STRING: ColumnType.TEXT,
    NativeType.RAW: ColumnType.RAW,
    NativeType.DATE: ColumnType.DATE,
    NativeType.TIMESTAMP: ColumnType.TIMESTAMP,
    NativeType.INTERVAL: ColumnType.INTERVAL,
    NativeType.LOB: ColumnType.LOB,
    NativeType.FILE: ColumnType.FILE,
    NativeType.OBJECT: ColumnType.OBJECT,
    NativeType.COLLECTION: ColumnType.COLLECTION,
    NativeType.REFERENCE: ColumnType.REFERENCE,
    NativeType.STATEMENT: ColumnType.CURSOR,
    NativeType.LONG: ColumnType.LONG,
    }

_ZERO_VALUES: dict[type, Any] = {
    int: 0,
    float: 0.0,
    bool: False,
    str: '',
    bytes: b'',
    }

_HANDLE_CLASSES: dict[ColumnType, type[Handle]] = {
    ColumnType.LOB: Lob,
    ColumnType.FILE: File,
    ColumnType.OBJECT: Object,
    ColumnType.COLLECTION: Collection,
    ColumnType.REFERENCE: Ref,
    }

_BYTES_LIKE = (bytes, bytearray, memoryview)


def zero_value(dest: type | None) -> Any:
    """Value stored for NULL into a slot of the given type.

    >>> zero_value(int), zero_value(str), zero_value(None)
    (0, '', None)
    """
    if dest is None:
        return None
    if dest in _ZERO_VALUES:
        return _ZERO_VALUES[dest]
    if dest is PackedNumber:
        return PackedNumber.null()
    if dest in NULL_WRAPPERS:
        return dest.null()
    if isinstance(dest, type) and issubclass(dest, np.number):
        return dest(0)
    return None


def _destination(slot: Any) -> type | None:
    if slot is None:
        return None
    if isinstance(slot, Var):
        return slot.type
    if isinstance(slot, type):
        return slot
    return type(slot)


def _cut_at_nul(raw: bytes | bytearray | memoryview) -> bytes:
    data = bytes(raw)
    end = data.find(b'\x00')
    return data if end < 0 else data[:end]


def _number_text(raw: Any) -> str | None:
    """Canonical text of a packed or textual NUMBER; None for NULL.
    """
    if isinstance(raw, str):
        return canonical(raw) if raw.strip() else None
    if isinstance(raw, np.ndarray):
        raw = raw.tobytes()
    if isinstance(raw, (PackedNumber, *_BYTES_LIKE)):
        return decode_number(raw if isinstance(raw, PackedNumber) else bytes(raw))
    raise TypeConversionError(f'cannot decode NUMBER from {type(raw).__name__}')


def _native_scalar(raw: Any) -> Any:
    return raw.item() if isinstance(raw, np.generic) else raw


def _is_native_number(raw: Any) -> bool:
    return isinstance(raw, int | float | decimal.Decimal) and not isinstance(raw, bool)


class ColumnFetcher:
    """Decodes native column data into host values.

    Args:
        options: FetchOptions, defaults read from the environment
    """

    def __init__(self, options: FetchOptions | None = None):
        self.options = options or FetchOptions()

    def fetch_into(self, slot: Any, desc: ColumnDescriptor, raw: Any, is_null: bool = False) -> Any:
        """Decode one column value.

        Args:
            slot: None, a type, a prototype value, or a Var to store into
            desc: descriptor of the column
            raw: native column data, not read when ``is_null``
            is_null: NULL flag of the column

        Returns
            The host value; for NULL the zero value of the slot's type
        """
        dest = _destination(slot) or desc.override_type
        if is_null or raw is None:
            value = zero_value(dest)
            if isinstance(slot, Var):
                slot.set(value, null=True)
            return value

        try:
            if dest is None:
                value = self.decode(desc, raw)
            else:
                value = self._decode_into(dest, desc, raw)
        except (NumberFormatError, NativeError) as exc:
            logger.error(f'Failed to decode column {desc.name}: {exc}')
            raise FetchError(desc.name, exc) from exc

        if isinstance(slot, Var):
            slot.set(value)
        return value

    def fetch_row(self, columns: list[ColumnDescriptor], raws: Sequence[Any],
                  nulls: Sequence[bool] | None = None, dest: Sequence[Any] | None = None) -> list:
        """Decode a whole row, one slot per column.
        """
        if len(raws) != len(columns):
            raise ValueError(f'Row has {len(raws)} values for {len(columns)} columns')
        nulls = nulls if nulls is not None else [False] * len(columns)
        dest = dest if dest is not None else [None] * len(columns)
        return [self.fetch_into(slot, desc, raw, null)
                for slot, desc, raw, null in zip(dest, columns, raws, nulls)]

    def read_bind(self, var: Var, native_type: NativeType, native: NativeBind,
                  name: str | None = None) -> Any:
        """Read the data of an IN/OUT bind back into its Var.
        """
        desc = ColumnDescriptor(name, NATIVE_COLUMN_TYPES[native_type])
        try:
            raw = native.get_data()
            is_null = native.is_null()
        except NativeError as exc:
            logger.error(f'Failed to read bind {name}: {exc}')
            raise FetchError(name, exc) from exc
        value = self.fetch_into(var, desc, raw, is_null)
        logger.debug(f'Read back {name}: {value!r}')
        return value

    # Decoding by column type tag

    def decode(self, desc: ColumnDescriptor, raw: Any) -> Any:
        """Host value for non-null native data, chosen by the column's tag.
        """
        match desc.type:
            case ColumnType.NUMERIC:
                return self._decode_numeric(desc, raw)
            case ColumnType.DATE | ColumnType.TIMESTAMP:
                return self._decode_datetime(desc, raw)
            case ColumnType.INTERVAL:
                return self._decode_interval(desc, raw, self.options.exact_year_month)
            case ColumnType.TEXT:
                return self._decode_text(raw)
            case ColumnType.RAW:
                return bytes(raw)
            case ColumnType.LONG:
                return self._decode_long(desc, raw)
            case ColumnType.CURSOR:
                return ResultCursor(raw, ColumnFetcher(self.options))
            case (ColumnType.LOB | ColumnType.FILE | ColumnType.OBJECT |
                  ColumnType.COLLECTION | ColumnType.REFERENCE):
                return self._decode_handle(desc, raw)
        logger.debug(f'Unknown column type {desc.type!r} for {desc.name}, using str')
        return str(raw)

    def _decode_numeric(self, desc: ColumnDescriptor, raw: Any) -> Any:
        raw = _native_scalar(raw)
        if _is_native_number(raw):
            return raw
        text = _number_text(raw)
        if text is None:
            return None
        precision, scale = resolve_numeric_shape(desc, text)
        integral = scale == 0 and '.' not in text
        if integral and precision <= INT_PRECISION:
            return int(text)
        if self.options.arbitrary_precision:
            return int(text) if integral else decimal.Decimal(text)
        logger.debug(f'{desc.name}: precision {precision} returned as text')
        return text

    def _decode_datetime(self, desc: ColumnDescriptor, raw: Any) -> datetime.datetime:
        if isinstance(raw, NativeTimestamp):
            return timestamp_to_datetime(raw)
        if isinstance(raw, NativeDate):
            return native_to_datetime(raw)
        if isinstance(raw, datetime.datetime):
            return raw
        raise TypeConversionError(f'{desc.name}: cannot decode a date from {type(raw).__name__}')

    def _decode_interval(self, desc: ColumnDescriptor, raw: Any,
                         exact: bool) -> datetime.timedelta | relativedelta:
        if isinstance(raw, NativeInterval):
            return interval_to_timedelta(raw, exact)
        if isinstance(raw, datetime.timedelta | relativedelta):
            return raw
        raise TypeConversionError(f'{desc.name}: cannot decode an interval '
                                  f'from {type(raw).__name__}')

    def _decode_text(self, raw: Any) -> str:
        if isinstance(raw, str):
            return raw
        if isinstance(raw, _BYTES_LIKE):
            return _cut_at_nul(raw).decode(self.options.encoding)
        return str(raw)

    def _decode_long(self, desc: ColumnDescriptor, raw: Any) -> Any:
        if isinstance(raw, Long | str):
            return raw
        if isinstance(raw, _BYTES_LIKE):
            if (desc.type_name or '').lower().startswith('long raw'):
                return bytes(raw)
            return bytes(raw).decode(self.options.encoding)
        return Long(raw, size=desc.size)

    def _decode_handle(self, desc: ColumnDescriptor, raw: Any) -> Handle:
        if isinstance(raw, Handle):
            return raw
        handle_class = _HANDLE_CLASSES[desc.type]
        type_info = desc.type_info if desc.type_info is not None else desc.subtype
        return handle_class(raw, type_info=type_info)

    # Decoding into a destination type

    def _numeric_value(self, desc: ColumnDescriptor, raw: Any) -> int | float | decimal.Decimal | None:
        if desc.type != ColumnType.NUMERIC:
            raise TypeConversionError(f'{desc.name}: a number is needed, '
                                      f'not {_tag_name(desc)}')
        raw = _native_scalar(raw)
        if _is_native_number(raw):
            return raw
        text = _number_text(raw)
        return None if text is None else decimal.Decimal(text)

    def _decode_into(self, dest: type, desc: ColumnDescriptor, raw: Any) -> Any:
        if dest is PackedNumber:
            raw = _native_scalar(raw)
            if _is_native_number(raw):
                return PackedNumber.from_value(raw)
            if isinstance(raw, str):
                return PackedNumber.from_string(raw)
            return PackedNumber.from_bytes(raw.tobytes() if isinstance(raw, np.ndarray) else raw)

        if dest in {int, float, bool, decimal.Decimal, NullInt64, NullFloat64, NullBool} or (
                isinstance(dest, type) and issubclass(dest, np.number)):
            number = self._numeric_value(desc, raw)
            if number is None:
                return zero_value(dest)
            return _number_into(dest, number)

        if dest is str:
            if desc.type == ColumnType.NUMERIC:
                raw = _native_scalar(raw)
                if isinstance(raw, float):
                    return format_float(raw)
                return str(raw) if _is_native_number(raw) else (_number_text(raw) or '')
            if desc.type in {ColumnType.TEXT, ColumnType.LONG}:
                return self._decode_text(raw)
            return str(self.decode(desc, raw))

        if dest is bytes:
            if desc.type == ColumnType.TEXT and isinstance(raw, _BYTES_LIKE):
                return _cut_at_nul(raw)
            if desc.type == ColumnType.TEXT:
                return str(raw).encode(self.options.encoding)
            if desc.type in {ColumnType.RAW, ColumnType.LONG} and isinstance(raw, _BYTES_LIKE):
                return bytes(raw)
            raise TypeConversionError(f'{desc.name}: bytes cannot hold {_tag_name(desc)}')

        if dest in {datetime.datetime, datetime.date, NullTime}:
            if desc.type not in {ColumnType.DATE, ColumnType.TIMESTAMP}:
                raise TypeConversionError(f'{desc.name}: time needs a date column, '
                                          f'not {_tag_name(desc)}')
            value = self._decode_datetime(desc, raw)
            if dest is NullTime:
                return NullTime(value)
            return value.date() if dest is datetime.date else value

        if dest in {datetime.timedelta, relativedelta}:
            if desc.type != ColumnType.INTERVAL:
                raise TypeConversionError(f'{desc.name}: a duration needs an interval column, '
                                          f'not {_tag_name(desc)}')
            return self._decode_interval(desc, raw, dest is relativedelta)

        value = self.decode(desc, raw)
        if isinstance(dest, type) and isinstance(value, dest):
            return value
        raise TypeConversionError(f'{desc.name}: {_tag_name(desc)} column cannot be read into '
                                  f'{getattr(dest, "__name__", dest)}')


def _tag_name(desc: ColumnDescriptor) -> str:
    return desc.type.name if isinstance(desc.type, ColumnType) else repr(desc.type)


def _number_into(dest: type, number: int | float | decimal.Decimal) -> Any:
    """
    Convert a decoded number into a numeric destination type; ints truncate.

    >>> _number_into(int, decimal.Decimal('-3.7'))
    -3
    >>> _number_into(NullFloat64, decimal.Decimal('1.5'))
    NullFloat64(value=1.5, valid=True)
    """
    if dest is bool:
        return bool(number)
    if dest is int:
        return int(number)
    if dest is float:
        return float(number)
    if dest is decimal.Decimal:
        if isinstance(number, float):
            return decimal.Decimal(format_float(number))
        return decimal.Decimal(number)
    if dest is NullInt64:
        return NullInt64(int(number))
    if dest is NullFloat64:
        return NullFloat64(float(number))
    if dest is NullBool:
        return NullBool(bool(number))
    if issubclass(dest, np.integer):
        return dest(int(number))
    return dest(float(number))


class ResultCursor:
    """Iterates the rows of a native result set.

    Column descriptors are built once, on first access, and owned by the
    cursor; numeric shapes resolved while fetching are cached on them.

    Usage:
        cursor = ResultCursor(resultset)
        for row in cursor:
            ...
        fetcher = ColumnFetcher(FetchOptions(data_loader='pandas_numpy'))
        frame = ResultCursor(other, fetcher).load()
    """

    def __init__(self, resultset: NativeResultset, fetcher: ColumnFetcher | None = None,
                 table_name: str | None = None):
        self.resultset = resultset
        self.fetcher = fetcher or ColumnFetcher()
        self.table_name = table_name
        self._columns: list[ColumnDescriptor] | None = None
        self.rowcount = 0

    @property
    def columns(self) -> list[ColumnDescriptor]:
        if self._columns is None:
            self._columns = columns_from_native(self.resultset, self.table_name)
        return self._columns

    def _next_raw(self) -> tuple[list, list] | None:
        try:
            if not self.resultset.next():
                return None
        except NativeError as exc:
            logger.error(f'Failed to advance result set: {exc}')
            raise FetchError(None, exc) from exc
        raws, nulls = [], []
        for position, desc in enumerate(self.columns, 1):
            try:
                raw, is_null = self.resultset.get(position)
            except NativeError as exc:
                logger.error(f'Failed to read column {desc.name}: {exc}')
                raise FetchError(desc.name, exc) from exc
            raws.append(raw)
            nulls.append(is_null)
        return raws, nulls

    def fetchone(self, dest: Sequence[Any] | None = None) -> list | None:
        """Next row as a list of host values, None when exhausted.
        """
        raw_row = self._next_raw()
        if raw_row is None:
            return None
        self.rowcount += 1
        return self.fetcher.fetch_row(self.columns, *raw_row, dest=dest)

    def fetch_into(self, dest: Sequence[Any]) -> bool:
        """Decode the next row into ``dest`` (one slot per column).

        Returns
            False when the result set is exhausted
        """
        return self.fetchone(dest) is not None

    def __iter__(self) -> Iterator[list]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def fetchall(self) -> list[list]:
        return list(self)

    def load(self, **kwargs) -> Any:
        """Remaining rows shaped by the FetchOptions data loader.
        """
        rows = ResultStructureAdapter(self.columns, self.fetchall()).to_dict_list()
        return self.fetcher.options.data_loader(rows, self.columns, **kwargs)
