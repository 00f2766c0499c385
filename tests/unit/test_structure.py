import pytest
from ocibind.adapters.column_info import ColumnDescriptor
from ocibind.adapters.structure import ResultStructureAdapter, RowAdapter
from ocibind.native import ColumnType


@pytest.fixture
def columns():
    return [ColumnDescriptor('ID', ColumnType.NUMERIC), ColumnDescriptor('Name', ColumnType.TEXT)]


def test_row_adapter(columns):
    row = RowAdapter(columns, [1, 'alice'])
    assert row.to_dict() == {'ID': 1, 'Name': 'alice'}
    assert row.get_value() == 1
    assert row['name'] == 'alice'
    assert row[1] == 'alice'
    assert len(row) == 2
    with pytest.raises(KeyError):
        row['missing']


def test_row_adapter_length_mismatch(columns):
    with pytest.raises(ValueError):
        RowAdapter(columns, [1])


def test_result_structure_adapter(columns):
    result = ResultStructureAdapter(columns, [[1, 'alice'], [2, 'bob']])
    assert result.to_dict_list() == [{'ID': 1, 'Name': 'alice'}, {'ID': 2, 'Name': 'bob'}]
    assert result.get_first_value() == 1


def test_result_structure_adapter_empty(columns):
    result = ResultStructureAdapter(columns, [])
    assert result.get_first_value() is None
    assert result.to_dict_list() == []


if __name__ == '__main__':
    __import__('pytest').main([__file__])
