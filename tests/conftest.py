"""Shared test fixtures for pressr tests."""

import pytest

from pressr.shared.logging import setup_logging


@pytest.fixture(autouse=True, scope="session")
def _quiet_logging():
    # Log output goes to stderr; stdout stays free for report assertions
    setup_logging("WARNING")
