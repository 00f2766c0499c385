import os
import pathlib
import site

import pytest
from ocibind.adapters.type_mapping import TypeHandlerRegistry
from ocibind.config.type_mapping import TypeMappingConfig

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def reset_type_mapping(monkeypatch, tmp_path):
    """Isolate tests from user type mapping files and registered handlers."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr('ocibind.config.type_mapping.DEFAULT_LOCATIONS', ())
    TypeMappingConfig.reset_instance()
    TypeHandlerRegistry.reset_instance()
    yield
    TypeMappingConfig.reset_instance()
    TypeHandlerRegistry.reset_instance()


@pytest.fixture(autouse=True)
def clear_option_env(monkeypatch):
    """Drop OCIBIND_ variables inherited from the environment."""
    for key in list(os.environ):
        if key.startswith('OCIBIND_'):
            monkeypatch.delenv(key)


pytest_plugins = [
    'tests.fixtures.native',
    'tests.fixtures.values',
]
