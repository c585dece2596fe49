"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports the settings module,
so the suite never reads a developer's .env file or writes into ./data.
"""

import os
import tempfile

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("TRAFFIC_BACKEND", "memory")
os.environ.setdefault("TRAFFIC_SALT", "test-salt")
os.environ.setdefault("TRAFFIC_DIR", tempfile.mkdtemp(prefix="traffic-limiter-tests-"))
os.environ.setdefault("LOG_FORMAT", "plain")

from unittest.mock import Mock

import pytest

from traffic_limiter.adapters.rate_table import InMemoryRateTableStore


@pytest.fixture
def clock() -> Mock:
    """Deterministic clock; move it with ``clock.return_value = ...``."""
    return Mock(return_value=1_000.0)


@pytest.fixture
def memory_store() -> InMemoryRateTableStore:
    return InMemoryRateTableStore()
