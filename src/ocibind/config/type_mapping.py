"""
Configuration for result column type overrides.

The JSON file maps columns (``table.column`` or bare ``column``) and regex
name patterns to a type name understood by ``map_config_type``:

    {
        "columns": {"orders.amount": "decimal", "id": "int"},
        "patterns": {"_at$": "timestamp"}
    }
"""
import json
import logging
import pathlib
import re

logger = logging.getLogger(__name__)

DEFAULT_LOCATIONS = (
    '~/.config/ocibind/type_mapping.json',
    '/etc/ocibind/type_mapping.json',
    'type_mapping.json',
    )


class TypeMappingConfig:
    """Configuration for custom column type mappings"""

    _instance = None

    @classmethod
    def get_instance(cls):
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        cls._instance = None

    def __init__(self, config_file=None):
        self._columns: dict[str, str] = {}
        self._patterns: dict[str, str] = {}

        if config_file:
            self.load_config(config_file)
            return

        for location in DEFAULT_LOCATIONS:
            path = pathlib.Path(location).expanduser()
            if path.exists():
                self.load_config(path)
                break

    def load_config(self, config_file):
        """Load configuration from file, merging into the current mappings"""
        try:
            with pathlib.Path(config_file).open() as f:
                config = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f'Failed to load type mapping config {config_file}: {e}')
            return

        self._columns.update({k.lower(): v for k, v in config.get('columns', {}).items()})
        self._patterns.update(config.get('patterns', {}))
        logger.info(f'Loaded type mapping configuration from {config_file}')

    def get_type_for_column(self, table_name, column_name):
        """Get configured type name for a specific column"""
        if not column_name:
            return None
        name = column_name.lower()

        if table_name:
            key = f'{table_name.lower()}.{name}'
            if key in self._columns:
                return self._columns[key]

        if name in self._columns:
            return self._columns[name]

        for pattern, dtype in self._patterns.items():
            if re.search(pattern, name):
                return dtype

        return None

    def add_column_mapping(self, table_name, column_name, data_type):
        """Add a specific column mapping"""
        key = f'{table_name.lower()}.{column_name.lower()}' if table_name else column_name.lower()
        self._columns[key] = data_type
