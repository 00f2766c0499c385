"""
Interfaces to the native client library.

The native library (statement preparation, execution, result-set iteration)
is an external collaborator. This module defines what the binder and the
fetcher need from it:

- NativeStatement / NativeBind: bind primitives and per-bind null flags
- NativeResultset: column descriptions and per-row raw column data
- NativeDate / NativeTimestamp / NativeInterval: calendar payloads exchanged
  with the library
- statement_scope: scoped ownership of a native statement
"""
import enum
import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class ColumnType(enum.IntEnum):
    """Column type tags, numbered as the native library numbers them.
    """
    NUMERIC = 1
    DATE = 3
    TEXT = 4
    LONG = 5
    CURSOR = 6
    LOB = 7
    FILE = 8
    TIMESTAMP = 9
    INTERVAL = 10
    RAW = 11
    OBJECT = 12
    COLLECTION = 13
    REFERENCE = 14


class NumericSubtype(enum.IntEnum):
    NUMBER = 0
    SHORT = 4 | 2
    INT = 8 | 2
    BIGINT = 16 | 2
    USHORT = 4
    UINT = 8
    BIGUINT = 16
    DOUBLE = 32
    FLOAT = 64


class IntervalKind(enum.IntEnum):
    YEAR_MONTH = 1
    DAY_SECOND = 2


class LobKind(enum.IntEnum):
    BLOB = 1
    CLOB = 2
    NCLOB = 3


class BindDirection(enum.IntFlag):
    IN = 1
    OUT = 2
    IN_OUT = IN | OUT


class NativeType(enum.Enum):
    """Native bind primitives.
    """
    SHORT = 'short'
    USHORT = 'ushort'
    INT = 'int'
    UINT = 'uint'
    BIGINT = 'bigint'
    UBIGINT = 'ubigint'
    FLOAT = 'float'
    DOUBLE = 'double'
    STRING = 'string'
    RAW = 'raw'
    NUMBER = 'number'
    DATE = 'date'
    TIMESTAMP = 'timestamp'
    INTERVAL = 'interval'
    LOB = 'lob'
    FILE = 'file'
    OBJECT = 'object'
    COLLECTION = 'collection'
    REFERENCE = 'reference'
    STATEMENT = 'statement'
    LONG = 'long'


# Calendar payloads


@dataclass(frozen=True)
class NativeDate:
    """Second-precision calendar value without a time zone.
    """
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0

    def get_date_time(self) -> tuple[int, int, int, int, int, int]:
        return self.year, self.month, self.day, self.hour, self.minute, self.second


@dataclass(frozen=True)
class NativeTimestamp:
    """Calendar value with a nanosecond fraction and a UTC offset.

    ``tz_name`` carries the region name when the database stored one.
    """
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    fraction: int = 0
    tz_hour: int = 0
    tz_minute: int = 0
    tz_name: str | None = None

    def get_date_time(self) -> tuple[int, int, int, int, int, int, int]:
        return (self.year, self.month, self.day, self.hour, self.minute,
                self.second, self.fraction)

    def get_time_zone_offset(self) -> tuple[int, int]:
        return self.tz_hour, self.tz_minute


@dataclass(frozen=True)
class NativeInterval:
    """Year-month or day-second interval; ``fraction`` is in nanoseconds.
    """
    kind: IntervalKind
    years: int = 0
    months: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    fraction: int = 0

    def get_year_month(self) -> tuple[int, int]:
        return self.years, self.months

    def get_day_second(self) -> tuple[int, int, int, int, int]:
        return self.days, self.hours, self.minutes, self.seconds, self.fraction


# Collaborator protocols


@runtime_checkable
class NativeBind(Protocol):
    """One bound parameter slot of a native statement.
    """

    def set_null(self) -> None: ...

    def set_null_at(self, position: int) -> None: ...

    def set_direction(self, direction: BindDirection) -> None: ...

    def get_data(self) -> Any: ...

    def is_null(self, position: int = 1) -> bool: ...


@runtime_checkable
class NativeStatement(Protocol):
    """A native statement handle.

    ``bind`` attaches ``data`` under ``name`` using the ``native_type``
    primitive. Array binds pass ``count`` > 0; string and raw arrays also pass
    the element ``stride``; handle arrays pass the first element's
    ``type_info``.
    """

    def bind(self, name: str, native_type: NativeType, data: Any, *,
             count: int = 0, stride: int = 0, type_info: Any = None,
             subtype: Any = None) -> NativeBind: ...

    def prepare(self, sql: str) -> None: ...

    def set_bind_array_size(self, size: int) -> None: ...

    def execute(self) -> None: ...

    def resultset(self) -> 'NativeResultset': ...

    def close(self) -> None: ...


@runtime_checkable
class NativeResultset(Protocol):
    """Rows of a result set, one raw value per column.

    ``columns`` returns column descriptions (mappings or sequences, see
    ColumnDescriptor.from_native). ``get`` returns ``(raw, is_null)`` for a
    1-based column of the current row.
    """

    def columns(self) -> Sequence[Any]: ...

    def next(self) -> bool: ...

    def get(self, position: int) -> tuple[Any, bool]: ...


@contextmanager
def statement_scope(factory: Callable[[], NativeStatement]) -> Iterator[NativeStatement]:
    """Acquire a native statement and release it on every exit path.

    Usage:
        with statement_scope(connection.new_statement) as stmt:
            bind_execute(stmt, sql, params)
    """
    statement = factory()
    try:
        yield statement
    except Exception:
        logger.error(f'Releasing native statement {statement!r} after error')
        raise
    finally:
        statement.close()
