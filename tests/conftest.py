"""
Shared fixtures.
"""

import pytest

from chord_transposer.config import CONFIG_DIR_ENV, reset_config
from chord_transposer.core.cache import reset_default_cache


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the user's real config file and shared cache."""
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path / "config"))
    reset_config()
    reset_default_cache()
    yield
    reset_config()
    reset_default_cache()
