"""
Column information for result sets.
"""
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Self

from ocibind.adapters.type_mapping import config_override, resolve_type
from ocibind.native import ColumnType, IntervalKind, LobKind, NumericSubtype

logger = logging.getLogger(__name__)

_FIELDS = ('name', 'type', 'type_name', 'size', 'precision', 'scale', 'nullable')
_SUBTYPES = {
    ColumnType.NUMERIC: NumericSubtype,
    ColumnType.INTERVAL: IntervalKind,
    ColumnType.LOB: LobKind,
    }


class ColumnDescriptor:
    """Representation of a result column with type information and metadata

    Technical implementation details:
    - ``type`` is the ColumnType tag reported by the native library; unknown
      tags are kept as plain integers
    - ``precision``/``scale`` may both be 0 when the library cannot report
      them; resolve_numeric_shape fills them in from the first observed value
    - ``python_type`` comes from the type resolver; ``override_type`` is set
      only when a configured column override applies, and the fetcher decodes
      into it
    - ``subtype`` and ``type_info`` carry numeric/interval/LOB subtypes and
      object type descriptors
    """

    def __init__(self,
                 name: str,
                 type: ColumnType | int | None,
                 type_name: str | None = None,
                 size: int = 0,
                 precision: int = 0,
                 scale: int = 0,
                 nullable: bool = True,
                 python_type: type | None = None,
                 subtype: Any = None,
                 type_info: Any = None,
                 override_type: type | None = None):
        """
        Initialize column information

        Args:
            name: Column name
            type: Column type tag
            type_name: Database type name (e.g. 'NUMBER', 'VARCHAR2')
            size: Internal storage size (bytes)
            precision: Numeric precision, 0 when unknown
            scale: Numeric scale, 0 when unknown
            nullable: Whether the column allows NULL values
            python_type: Corresponding Python type
            subtype: Numeric, interval or LOB subtype
            type_info: Native type descriptor for object columns
            override_type: Configured destination type
        """
        self.name = name
        self.type = type
        self.type_name = type_name
        self.size = size
        self.precision = precision
        self.scale = scale
        self.nullable = nullable
        self.python_type = python_type
        self.subtype = subtype
        self.type_info = type_info
        self.override_type = override_type

    @classmethod
    def from_native(cls, description: Any, table_name: str | None = None) -> Self:
        """Create a ColumnDescriptor from a native column description.

        Args:
            description: Mapping with the keys of ``_FIELDS`` (plus optional
                ``subtype``/``type_info``), or a sequence in ``_FIELDS`` order
            table_name: Optional table name for configured overrides

        Returns
            ColumnDescriptor instance
        """
        if isinstance(description, Mapping):
            info = cls._extract_mapping_info(description)
        else:
            info = cls._extract_sequence_info(description)

        info['type'] = _as_column_type(info['type'])
        info['subtype'] = _as_subtype(info['type'], info['subtype'])
        info['python_type'] = resolve_type(
            info['type'], info['type_name'], info['name'],
            table_name=table_name, precision=info['precision'], scale=info['scale'],
            )
        info['override_type'] = config_override(info['name'], table_name)
        return cls(**info)

    @classmethod
    def _extract_mapping_info(cls, description: Mapping) -> dict:
        return {
            'name': description.get('name'),
            'type': description.get('type'),
            'type_name': description.get('type_name'),
            'size': description.get('size') or 0,
            'precision': description.get('precision') or 0,
            'scale': description.get('scale') or 0,
            'nullable': bool(description.get('nullable', True)),
            'subtype': description.get('subtype'),
            'type_info': description.get('type_info'),
            }

    @classmethod
    def _extract_sequence_info(cls, description: Sequence) -> dict:
        values = list(description[:len(_FIELDS)])
        values += [None] * (len(_FIELDS) - len(values))
        info = dict(zip(_FIELDS, values))
        info['size'] = info['size'] or 0
        info['precision'] = info['precision'] or 0
        info['scale'] = info['scale'] or 0
        info['nullable'] = True if info['nullable'] is None else bool(info['nullable'])
        info['subtype'] = None
        info['type_info'] = None
        return info

    @property
    def shape_known(self) -> bool:
        return bool(self.precision or self.scale)

    def __repr__(self) -> str:
        type_name = self.type.name if isinstance(self.type, ColumnType) else self.type
        return (f'ColumnDescriptor(name={self.name!r}, type={type_name}, '
                f'python_type={self.python_type.__name__ if self.python_type else None})')

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization.
        """
        return {
            'name': self.name,
            'type': self.type.name if isinstance(self.type, ColumnType) else self.type,
            'type_name': self.type_name,
            'python_type': self.python_type.__name__ if self.python_type else None,
            'size': self.size,
            'precision': self.precision,
            'scale': self.scale,
            'nullable': self.nullable,
            }

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        """Get column names from a list of ColumnDescriptor objects.
        """
        return [col.name for col in columns]

    @staticmethod
    def get_column_by_name(columns: list[Self], name: str) -> Self | None:
        """Find a column by name, case-insensitively.
        """
        for col in columns:
            if col.name == name:
                return col
        lowered = name.lower()
        for col in columns:
            if col.name and col.name.lower() == lowered:
                return col
        return None

    @staticmethod
    def get_column_types_dict(columns: list[Self]) -> dict[str, dict[str, Any]]:
        """Get a dictionary of column types indexed by name.
        """
        return {col.name: col.to_dict() for col in columns}


def _as_column_type(type_code: Any) -> ColumnType | int | None:
    if type_code is None or isinstance(type_code, ColumnType):
        return type_code
    if isinstance(type_code, str):
        try:
            return ColumnType[type_code.upper()]
        except KeyError:
            logger.debug(f'Unknown column type name {type_code!r}')
            return None
    try:
        return ColumnType(type_code)
    except ValueError:
        logger.debug(f'Unknown column type tag {type_code!r}')
        return type_code


def _as_subtype(type_code: Any, subtype: Any) -> Any:
    kinds = _SUBTYPES.get(type_code)
    if kinds is None or subtype is None:
        return subtype
    try:
        return kinds(subtype)
    except ValueError:
        logger.debug(f'Unknown {kinds.__name__} {subtype!r}')
        return subtype


def resolve_numeric_shape(desc: ColumnDescriptor, observed_text: str) -> tuple[int, int]:
    """Precision and scale of a numeric column, inferred from a value if needed.

    Inference only happens when both are 0, and the result is cached on the
    descriptor: precision counts the digits without sign, scale the digits
    after the point.

    >>> desc = ColumnDescriptor('x', ColumnType.NUMERIC)
    >>> resolve_numeric_shape(desc, '12.3')
    (3, 1)
    >>> resolve_numeric_shape(desc, '-4000')
    (3, 1)
    """
    if not desc.shape_known and observed_text:
        int_part, _, frac_part = observed_text.lstrip('+-').partition('.')
        desc.precision = len(int_part) + len(frac_part)
        desc.scale = len(frac_part)
        logger.debug(f'Resolved {desc.name} shape to ({desc.precision}, {desc.scale})'
                     f' from {observed_text!r}')
    return desc.precision, desc.scale


def columns_from_native(resultset: Any, table_name: str | None = None) -> list[ColumnDescriptor]:
    """Create ColumnDescriptor objects from a native result set.

    Args:
        resultset: NativeResultset with a columns() method
        table_name: Optional table name for configured overrides

    Returns
        List of ColumnDescriptor objects
    """
    return [ColumnDescriptor.from_native(d, table_name) for d in resultset.columns()]
