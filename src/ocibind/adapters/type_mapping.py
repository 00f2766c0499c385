"""
Type resolution system for result columns.

This module resolves database column types to Python types. It combines
information from several sources, in priority order:

1. Configuration-based column overrides
2. Type handler registry, matched on the database type name
3. Column type tag, refined by numeric precision/scale

The module focuses solely on type identification; values are decoded by
ocibind.fetch.
"""
import datetime
import decimal
import logging
from typing import Any

from ocibind.config.type_mapping import TypeMappingConfig
from ocibind.native import ColumnType
from ocibind.number import PackedNumber
from ocibind.values import Collection, File, Lob, Long, Object, Ref

logger = logging.getLogger(__name__)

# Largest precision whose values always fit a signed 64-bit integer
INT_PRECISION = 19


class TypeHandler:
    """Base class for database type handlers.
    """

    def __init__(self, python_type: type) -> None:
        self.python_type = python_type

    def handles_type(self, type_code: Any, type_name: str | None = None) -> bool:
        """Check if this handler can handle the given type code/name.
        """
        return False


def create_simple_handler(name: str, python_type: type,
                          type_codes: set,
                          type_names: set | None = None) -> TypeHandler:
    """Factory function for creating simple type handlers.

    Args:
        name: Handler name (used for the class name)
        python_type: Python type this handler returns
        type_codes: Set of column type tags this handler recognizes
        type_names: Optional set of lower-case type names this handler recognizes

    Returns
        A TypeHandler instance
    """
    class SimpleHandler(TypeHandler):
        def __init__(self):
            super().__init__(python_type=python_type)
            self.type_codes = type_codes
            self.type_names = type_names or set()

        def handles_type(self, type_code: Any, type_name: str | None = None) -> bool:
            if type_name and _base_name(type_name) in self.type_names:
                return True
            return type_code in self.type_codes

    SimpleHandler.__name__ = f'{name}Handler'
    return SimpleHandler()


def _base_name(type_name: str) -> str:
    """
    >>> _base_name('TIMESTAMP(6) WITH TIME ZONE')
    'timestamp with time zone'
    >>> _base_name('VARCHAR2(30)')
    'varchar2'
    """
    name = type_name.lower()
    while '(' in name:
        start, end = name.index('('), name.find(')')
        if end < start:
            break
        name = name[:start] + name[end + 1:]
    return ' '.join(name.split())


class TypeHandlerRegistry:
    """Registry of type handlers, consulted in registration order.
    """

    _instance = None

    @classmethod
    def get_instance(cls) -> 'TypeHandlerRegistry':
        """Get singleton instance.
        """
        if cls._instance is None:
            cls._instance = cls()
            _register_default_handlers(cls._instance)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    def __init__(self) -> None:
        self._handlers: list[TypeHandler] = []

    def register_handler(self, handler: TypeHandler, first: bool = False) -> None:
        """Register a new type handler; ``first`` gives it priority.
        """
        if first:
            self._handlers.insert(0, handler)
        else:
            self._handlers.append(handler)

    def get_python_type(self, type_code: Any, type_name: str | None = None) -> type | None:
        """Python type for a column type tag/name, None when no handler matches.
        """
        if isinstance(type_code, type):
            return type_code

        for handler in self._handlers:
            if handler.handles_type(type_code, type_name):
                return handler.python_type
        return None


def _register_default_handlers(registry: TypeHandlerRegistry) -> None:
    defaults = [
        ('Float', float, set(), {'binary_float', 'binary_double', 'float', 'real',
                                 'double precision'}),
        ('Text', str, {ColumnType.TEXT}, {'varchar2', 'nvarchar2', 'char', 'nchar',
                                          'varchar', 'rowid', 'urowid'}),
        ('Date', datetime.datetime, {ColumnType.DATE}, {'date'}),
        ('Timestamp', datetime.datetime, {ColumnType.TIMESTAMP},
         {'timestamp', 'timestamp with time zone', 'timestamp with local time zone'}),
        ('Interval', datetime.timedelta, {ColumnType.INTERVAL},
         {'interval day to second', 'interval year to month'}),
        ('Raw', bytes, {ColumnType.RAW}, {'raw', 'long raw'}),
        ('Long', Long, {ColumnType.LONG}, {'long'}),
        ('Lob', Lob, {ColumnType.LOB}, {'blob', 'clob', 'nclob'}),
        ('File', File, {ColumnType.FILE}, {'bfile', 'cfile'}),
        ('Object', Object, {ColumnType.OBJECT}, set()),
        ('Collection', Collection, {ColumnType.COLLECTION}, {'varray', 'table'}),
        ('Ref', Ref, {ColumnType.REFERENCE}, {'ref'}),
        ]
    for name, python_type, codes, names in defaults:
        registry.register_handler(create_simple_handler(name, python_type, codes, names))


CONFIG_TYPES: dict[str, type] = {
    'int': int,
    'integer': int,
    'bigint': int,
    'smallint': int,
    'float': float,
    'double': float,
    'real': float,
    'decimal': decimal.Decimal,
    'numeric': decimal.Decimal,
    'number': PackedNumber,
    'bool': bool,
    'boolean': bool,
    'date': datetime.date,
    'datetime': datetime.datetime,
    'timestamp': datetime.datetime,
    'interval': datetime.timedelta,
    'str': str,
    'text': str,
    'varchar': str,
    'varchar2': str,
    'bytes': bytes,
    'raw': bytes,
    'blob': bytes,
    }


def map_config_type(config_type: str) -> type | None:
    """
    Map a configuration type string to a Python type.

    >>> map_config_type('Decimal')
    <class 'decimal.Decimal'>
    >>> map_config_type('money') is None
    True
    """
    return CONFIG_TYPES.get(config_type.lower())


def numeric_python_type(precision: int | None, scale: int | None) -> type:
    """
    Python type for a NUMBER column of the given shape.

    >>> numeric_python_type(10, 0)
    <class 'int'>
    >>> numeric_python_type(38, 0)
    <class 'decimal.Decimal'>
    >>> numeric_python_type(0, 0)
    <class 'decimal.Decimal'>
    """
    if scale == 0 and precision and precision <= INT_PRECISION:
        return int
    return decimal.Decimal


def config_override(column_name: str | None, table_name: str | None = None) -> type | None:
    """Python type configured for a column, if any.
    """
    if not column_name:
        return None
    config_type = TypeMappingConfig.get_instance().get_type_for_column(table_name, column_name)
    if config_type is None:
        return None
    python_type = map_config_type(config_type)
    if python_type is None:
        logger.warning(f'Ignoring unknown configured type {config_type!r} for {column_name}')
    return python_type


def resolve_type(
    type_code: Any,
    type_name: str | None = None,
    column_name: str | None = None,
    table_name: str | None = None,
    precision: int | None = None,
    scale: int | None = None,
) -> type:
    """
    Central function for column type resolution.

    Args:
        type_code: ColumnType tag (or a Python type, returned as-is)
        type_name: Database type name, e.g. 'VARCHAR2(30)'
        column_name: Optional column name for configured overrides
        table_name: Optional table name for configured overrides
        precision: Numeric precision
        scale: Numeric scale

    Returns
        Python type (e.g., int, str, datetime.datetime); str when nothing matches
    """
    if isinstance(type_code, type):
        return type_code

    python_type = config_override(column_name, table_name)
    if python_type is not None:
        return python_type

    python_type = TypeHandlerRegistry.get_instance().get_python_type(type_code, type_name)
    if python_type is not None:
        return python_type

    if type_code == ColumnType.NUMERIC:
        return numeric_python_type(precision, scale)
    if type_code == ColumnType.CURSOR:
        from ocibind.fetch import ResultCursor
        return ResultCursor

    logger.debug(f'No type handler for {type_code!r} ({type_name}), using str')
    return str


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
