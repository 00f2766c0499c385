"""
Host-side value types exchanged with the binder and the fetcher.

- ValueKind / BoundValue: the classified form of a bind parameter
- NullInt64, NullFloat64, NullTime, NullBool: nullable scalars with a
  ``valid`` flag
- Var: a by-reference slot, bound IN/OUT and filled after execution
- Lob, File, Object, Collection, Ref, Long, StatementHandle: opaque native
  handles
"""
import datetime
import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar, Self


class ValueKind(enum.Enum):
    """Closed set of bindable value kinds.
    """
    INT16 = 'int16'
    UINT16 = 'uint16'
    INT32 = 'int32'
    UINT32 = 'uint32'
    INT64 = 'int64'
    UINT64 = 'uint64'
    FLOAT32 = 'float32'
    FLOAT64 = 'float64'
    NULL_INT64 = 'null_int64'
    NULL_FLOAT64 = 'null_float64'
    BOOL = 'bool'
    STRING = 'string'
    BYTES = 'bytes'
    NUMBER = 'number'
    DATE = 'date'
    TIMESTAMP = 'timestamp'
    DURATION = 'duration'
    LOB = 'lob'
    FILE = 'file'
    OBJECT = 'object'
    COLLECTION = 'collection'
    REFERENCE = 'reference'
    STATEMENT = 'statement'
    LONG = 'long'
    NULL = 'null'


@dataclass
class BoundValue:
    """A classified bind parameter.

    ``value`` holds a scalar, or a list/ndarray when ``is_array`` is set.
    ``null`` is the scalar null flag; ``nulls`` lists the 1-based array
    positions to be flagged NULL.
    """
    kind: ValueKind
    value: Any = None
    is_array: bool = False
    by_ref: bool = False
    null: bool = False
    nulls: tuple[int, ...] = ()
    size: int = 0

    def __len__(self) -> int:
        return len(self.value) if self.is_array else 1


# Nullable wrappers


@dataclass
class NullInt64:
    value: int = 0
    valid: bool = True

    @classmethod
    def null(cls) -> Self:
        return cls(0, False)

    def __str__(self) -> str:
        return str(self.value) if self.valid else ''


@dataclass
class NullFloat64:
    value: float = 0.0
    valid: bool = True

    @classmethod
    def null(cls) -> Self:
        return cls(0.0, False)

    def __str__(self) -> str:
        return str(self.value) if self.valid else ''


@dataclass
class NullTime:
    value: datetime.datetime | None = None
    valid: bool = True

    @classmethod
    def null(cls) -> Self:
        return cls(None, False)

    def __post_init__(self):
        if self.value is None:
            self.valid = False

    def __str__(self) -> str:
        return self.value.isoformat() if self.valid else ''


@dataclass
class NullBool:
    value: bool = False
    valid: bool = True

    @classmethod
    def null(cls) -> Self:
        return cls(False, False)

    def __str__(self) -> str:
        return str(self.value).lower() if self.valid else ''


NULL_WRAPPERS = (NullInt64, NullFloat64, NullTime, NullBool)


class Var:
    """By-reference parameter slot.

    A Var is bound IN/OUT; after execution ``ParameterBinder.read_back``
    decodes the native data into ``type`` and stores it in ``value``.

    Args:
        type: destination type (``int``, ``str``, ``Decimal``, ``datetime``,
            ``PackedNumber``, a nullable wrapper, a numpy scalar type, ...).
            Inferred from ``value`` when omitted.
        value: initial value sent to the database.
        size: buffer size for string and raw slots.

    Usage:
        >>> out = Var(int)
        >>> out.value is None
        True
    """

    def __init__(self, type: type | None = None, value: Any = None, size: int = 0):
        if type is None and value is None:
            raise TypeError('Var needs a type or an initial value')
        self.type = type if type is not None else _infer_type(value)
        self.value = value
        self.size = size
        self.null = value is None

    def set(self, value: Any, null: bool = False) -> None:
        self.value = value
        self.null = null

    @property
    def is_null(self) -> bool:
        return self.null

    def __repr__(self) -> str:
        return f'Var({self.type.__name__}, value={self.value!r})'


def _infer_type(value: Any) -> type:
    if isinstance(value, NULL_WRAPPERS):
        return type(value)
    if isinstance(value, datetime.datetime):
        return datetime.datetime
    return type(value)


# Opaque handles


@dataclass
class Handle:
    """Base for native handles forwarded unchanged to the native library.
    """
    kind: ClassVar[ValueKind]

    handle: Any
    type_info: Any = None


@dataclass
class Lob(Handle):
    kind: ClassVar[ValueKind] = ValueKind.LOB


@dataclass
class File(Handle):
    kind: ClassVar[ValueKind] = ValueKind.FILE


@dataclass
class Object(Handle):
    kind: ClassVar[ValueKind] = ValueKind.OBJECT


@dataclass
class Collection(Handle):
    kind: ClassVar[ValueKind] = ValueKind.COLLECTION


@dataclass
class Ref(Handle):
    kind: ClassVar[ValueKind] = ValueKind.REFERENCE


@dataclass
class StatementHandle(Handle):
    kind: ClassVar[ValueKind] = ValueKind.STATEMENT


@dataclass
class Long(Handle):
    """LONG / LONG RAW buffer; ``size`` is the buffer length in bytes.
    """
    kind: ClassVar[ValueKind] = ValueKind.LONG

    size: int = field(default=0)

    def __len__(self) -> int:
        return self.size
