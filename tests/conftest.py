"""
pytest configuration for the Nakadi client tests.

Adds src directory to Python path for imports and isolates tests from the
developer's environment.
"""

import os
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

# Environment variables read by config loading
NAKADI_ENV_VARS = ("NAKADI_URL", "NAKADI_TIMEOUT_SECONDS", "NAKADI_TOKEN_FILE")


@pytest.fixture(autouse=True)
def _clean_nakadi_env(monkeypatch):
    """Keep NAKADI_* variables from the shell out of config tests."""
    for name in NAKADI_ENV_VARS:
        if name in os.environ:
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    from config.config import reset_config

    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def _clear_log_context():
    from core.logging.context import clear_log_context

    yield
    clear_log_context()
