"""
Root conftest for all tests.

Shared fixtures only; the connection fakes live in fakes.py.
"""

import pytest
from loguru import logger


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: full server against local TCP targets"
    )


@pytest.fixture
def warnings_logged():
    """Collect loguru records at WARNING level and above."""
    records = []
    handler_id = logger.add(
        lambda message: records.append(message.record), level="WARNING"
    )
    yield records
    logger.remove(handler_id)
