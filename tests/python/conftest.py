"""Pytest configuration for Python tests."""

import pytest

from crashscope.config import Config, set_config


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "scenario: end-to-end analysis scenarios")


@pytest.fixture(autouse=True)
def default_config():
    """Isolate tests from any crashscope.yaml on disk."""
    set_config(Config())
    yield
    set_config(Config())
