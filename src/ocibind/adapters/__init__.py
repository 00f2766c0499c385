"""
Adapters package.

This package provides the following components:

- column_info: ColumnDescriptor and lazy numeric shape resolution
- structure: row and result structure mapping (no type conversion)
- type_conversion: host value normalization and bind classification
- type_mapping: column type resolution and type handlers (no conversion)

Type conversion principles:
1. Database → Python: handled by ocibind.fetch.ColumnFetcher
2. Python → Database: handled by TypeConverter and ocibind.bind.ParameterBinder

ColumnDescriptor and the structure adapters do NOT perform conversions; they
only handle metadata and structure mapping.
"""

from ocibind.adapters.column_info import ColumnDescriptor, columns_from_native
from ocibind.adapters.column_info import resolve_numeric_shape
from ocibind.adapters.structure import ResultStructureAdapter, RowAdapter
from ocibind.adapters.type_conversion import TypeConverter, kind_for_type
from ocibind.adapters.type_mapping import TypeHandler, TypeHandlerRegistry
from ocibind.adapters.type_mapping import create_simple_handler, resolve_type
