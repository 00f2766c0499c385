"""
Row and result structure adapters.

These adapters handle ONLY the structure of fetched rows (mapping to
dictionaries, accessing by name or index). Values arrive already decoded by
the ColumnFetcher.
"""
from typing import Any

from ocibind.adapters.column_info import ColumnDescriptor


class RowAdapter:
    """A fetched row paired with its column descriptors"""

    def __init__(self, columns: list[ColumnDescriptor], values: list[Any]):
        if len(columns) != len(values):
            raise ValueError(f'Row has {len(values)} values for {len(columns)} columns')
        self.columns = columns
        self.values = values

    def to_dict(self) -> dict[str, Any]:
        """Convert row to a dictionary keyed by column name"""
        return dict(zip(ColumnDescriptor.get_names(self.columns), self.values))

    def get_value(self, key: str | int | None = None) -> Any:
        """Get a single value from the row

        If key is a name, returns the value for that column (case-insensitive).
        If key is an int, returns the value at that 0-based position.
        If key is None, returns the first value in the row.
        """
        if key is None:
            return self.values[0] if self.values else None
        if isinstance(key, int):
            return self.values[key]
        col = ColumnDescriptor.get_column_by_name(self.columns, key)
        if col is None:
            raise KeyError(key)
        return self.values[self.columns.index(col)]

    def __getitem__(self, key: str | int) -> Any:
        return self.get_value(key)

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return f'RowAdapter({self.to_dict()!r})'


class ResultStructureAdapter:
    """Adapter for sets of fetched rows providing consistent interface"""

    def __init__(self, columns: list[ColumnDescriptor], data: list[list[Any]]):
        self.columns = columns
        self.data = data

    def rows(self) -> list[RowAdapter]:
        return [RowAdapter(self.columns, row) for row in self.data]

    def to_dict_list(self) -> list[dict[str, Any]]:
        """Convert all rows to dictionaries"""
        return [row.to_dict() for row in self.rows()]

    def get_first_value(self) -> Any:
        """Get the first value from the first row"""
        if not self.data:
            return None
        return RowAdapter(self.columns, self.data[0]).get_value()
