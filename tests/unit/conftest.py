# tests/unit/conftest.py
import pytest


@pytest.fixture(autouse=True)
def isolated_configuration(clean_config_environment):
    yield
