"""
Value marshaling for the database's native client library.

Binds host values into statement parameters, decodes result columns back into
host values, and implements the packed NUMBER codec.

Statements can be driven either through the module functions:
- ocibind.execute(stmt, sql, *args)
- ocibind.select(stmt, sql, *args)

or through ParameterBinder / ResultCursor directly.
"""
__version__ = '0.1.0'

from typing import Any

from ocibind.adapters.column_info import ColumnDescriptor, resolve_numeric_shape
from ocibind.adapters.structure import ResultStructureAdapter
from ocibind.bind import BindHandle, ParameterBinder, bind_execute
from ocibind.exceptions import BindError, ConversionError, DatabaseError, FetchError
from ocibind.exceptions import NativeError, NativeFailure, NumberFormatError
from ocibind.exceptions import TypeConversionError
from ocibind.exceptions import UnsupportedTypeError, ValidationError
from ocibind.fetch import ColumnFetcher, ResultCursor
from ocibind.native import BindDirection, ColumnType, NativeBind, NativeResultset
from ocibind.native import NativeStatement, NativeType, statement_scope
from ocibind.number import PackedNumber, decode_number, encode_number
from ocibind.options import BindOptions, FetchOptions
from ocibind.values import BoundValue, Collection, File, Lob, Long, NullBool
from ocibind.values import NullFloat64, NullInt64, NullTime, Object, Ref
from ocibind.values import StatementHandle, ValueKind, Var


def execute(statement: NativeStatement, sql: str, *args: Any,
            options: BindOptions | None = None, **kwargs: Any) -> list[BindHandle]:
    """Bind positional or named parameters and execute; Var slots are read back.
    """
    if args and kwargs:
        raise ValidationError('use positional or named parameters, not both')
    return bind_execute(statement, sql, kwargs or list(args), options)


def select(statement: NativeStatement, sql: str, *args: Any,
           options: BindOptions | None = None,
           fetch_options: FetchOptions | None = None, **kwargs: Any) -> Any:
    """Execute a query and return its rows shaped by the FetchOptions data loader.
    """
    execute(statement, sql, *args, options=options, **kwargs)
    cursor = ResultCursor(statement.resultset(), ColumnFetcher(fetch_options))
    return cursor.load()


def select_scalar(statement: NativeStatement, sql: str, *args: Any,
                  options: BindOptions | None = None,
                  fetch_options: FetchOptions | None = None, **kwargs: Any) -> Any:
    """Execute a query and return the first column of its single row.

    Raises ValidationError if the query returns zero or multiple rows.
    """
    execute(statement, sql, *args, options=options, **kwargs)
    cursor = ResultCursor(statement.resultset(), ColumnFetcher(fetch_options))
    rows = cursor.fetchall()
    if len(rows) != 1:
        raise ValidationError(f'Expected one row, got {len(rows)}')
    return ResultStructureAdapter(cursor.columns, rows).get_first_value()


__all__ = [
    'execute',
    'select',
    'select_scalar',
    'bind_execute',
    'statement_scope',
    'ParameterBinder',
    'BindHandle',
    'ColumnFetcher',
    'ResultCursor',
    'ColumnDescriptor',
    'resolve_numeric_shape',
    'PackedNumber',
    'encode_number',
    'decode_number',
    'BindOptions',
    'FetchOptions',
    'BoundValue',
    'ValueKind',
    'Var',
    'NullInt64',
    'NullFloat64',
    'NullTime',
    'NullBool',
    'Lob',
    'File',
    'Object',
    'Collection',
    'Ref',
    'Long',
    'StatementHandle',
    'ColumnType',
    'NativeType',
    'BindDirection',
    'NativeStatement',
    'NativeBind',
    'NativeResultset',
    'DatabaseError',
    'ValidationError',
    'TypeConversionError',
    'UnsupportedTypeError',
    'NumberFormatError',
    'NativeError',
    'BindError',
    'FetchError',
    'ConversionError',
    'NativeFailure',
]
