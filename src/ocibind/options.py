"""
Bind and fetch options, and the data loaders that shape fetched rows.

Options are pydantic-settings models: every field can be set from an
``OCIBIND_`` environment variable (``OCIBIND_BIND_ARRAY_SIZE=500``) or a
``.env`` file, and is validated on construction.
"""
import codecs
from collections.abc import Callable
from typing import Any

import pandas as pd
import pyarrow as pa
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ocibind.adapters.column_info import ColumnDescriptor
from ocibind.exceptions import ValidationError

__all__ = [
    'BindOptions',
    'FetchOptions',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'iterdict_data_loader',
]

MAX_STRIDE = 32767


def iterdict_data_loader(data, columns, **kwargs) -> list[dict]:
    """Minimal data loader.

    Accepts additional keyword arguments for compatibility with other data
    loaders, but doesn't use them.
    """
    if not data:
        return []
    return list(data)


def _empty_dataframe(columns) -> pd.DataFrame:
    """Create empty DataFrame with column metadata."""
    df = pd.DataFrame(columns=ColumnDescriptor.get_names(columns))
    df.attrs['column_types'] = ColumnDescriptor.get_column_types_dict(columns)
    return df


def pandas_numpy_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """Standard pandas DataFrame loader using NumPy.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    Includes type information in the DataFrame.attrs attribute.
    """
    if not data:
        return _empty_dataframe(columns)

    df = pd.DataFrame.from_records(list(data), columns=ColumnDescriptor.get_names(columns))
    df.attrs['column_types'] = ColumnDescriptor.get_column_types_dict(columns)
    return df


def pandas_pyarrow_data_loader(data, columns, **kwargs) -> pd.DataFrame:
    """PyArrow-based pandas DataFrame loader.

    Always returns a DataFrame, never None, with columns preserved for empty results.
    """
    if not data:
        return _empty_dataframe(columns)

    column_names = ColumnDescriptor.get_names(columns)
    columns_data = [[row[col] for row in data] for col in column_names]
    df = pa.table(columns_data, names=column_names).to_pandas(types_mapper=pd.ArrowDtype)
    df.attrs['column_types'] = ColumnDescriptor.get_column_types_dict(columns)
    return df


DATA_LOADERS: dict[str, Callable[..., Any]] = {
    'iterdict': iterdict_data_loader,
    'pandas_numpy': pandas_numpy_data_loader,
    'pandas_pyarrow': pandas_pyarrow_data_loader,
    }


def _check_encoding(value: str) -> None:
    try:
        codecs.lookup(value)
    except LookupError as exc:
        raise ValidationError(f'unknown encoding: {value}') from exc


class BindOptions(BaseSettings):
    """Options for the ParameterBinder

    - bind_array_size: rows per array execution (default: 1000)
    - default_stride: element size for string arrays whose elements are all
      empty (default: 32767)
    - native_float_arrays: bind float arrays as native doubles instead of
      NUMBER arrays (default: False)
    - encoding: text encoding for string buffers (default: utf-8)
    - empty_string_is_null: flag empty strings and bytes as NULL (default: True)
    """
    model_config = SettingsConfigDict(
        env_prefix='OCIBIND_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        validate_assignment=True,
    )

    bind_array_size: int = 1000
    default_stride: int = MAX_STRIDE
    native_float_arrays: bool = False
    encoding: str = 'utf-8'
    empty_string_is_null: bool = True

    @model_validator(mode='after')
    def _validate(self):
        if self.bind_array_size < 1:
            raise ValidationError('bind_array_size must be positive')
        if not 1 <= self.default_stride <= MAX_STRIDE:
            raise ValidationError(f'default_stride must be between 1 and {MAX_STRIDE}')
        _check_encoding(self.encoding)
        return self


class FetchOptions(BaseSettings):
    """Options for the ColumnFetcher

    - arbitrary_precision: decode NUMBER values that do not fit the int fast
      path into int/Decimal instead of text (default: False)
    - exact_year_month: decode year-month intervals as relativedelta
      instead of 365/30-day timedeltas (default: False)
    - encoding: text encoding for character data (default: utf-8)
    - data_loader: callable or name ('iterdict', 'pandas_numpy',
      'pandas_pyarrow') shaping ResultCursor.load() (default: iterdict)
    """
    model_config = SettingsConfigDict(
        env_prefix='OCIBIND_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        validate_assignment=True,
    )

    arbitrary_precision: bool = False
    exact_year_month: bool = False
    encoding: str = 'utf-8'
    data_loader: Callable[..., Any] = iterdict_data_loader

    @field_validator('data_loader', mode='before')
    @classmethod
    def _resolve_loader(cls, value):
        if isinstance(value, str):
            if value not in DATA_LOADERS:
                raise ValidationError(f'data_loader must be one of: {list(DATA_LOADERS)}')
            return DATA_LOADERS[value]
        return value

    @model_validator(mode='after')
    def _validate(self):
        _check_encoding(self.encoding)
        return self
