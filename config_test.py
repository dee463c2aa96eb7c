"""
Configuration tests
"""
from pathlib import Path

import pytest

from plateconfig import ConfigurationError, DesktopConfiguration


def test_defaults():
    config = DesktopConfiguration.from_env(env={}, dotenv=False)
    assert config.viewport_margin_x == 24
    assert config.default_page_size == 10
    assert config.store_path.name == "local_store.json"
    assert config.logging_level() == 20


def test_values_from_environment(tmp_path):
    env = {
        "PLATE_DATA_DIR": str(tmp_path),
        "PLATE_VIEWPORT_MARGIN_X": "8",
        "PLATE_VIEWPORT_MARGIN_Y": "",
        "PLATE_PAGE_SIZE": "50",
        "PLATE_LOG_LEVEL": "debug",
        "PLATE_CHANGER": "值班员",
    }
    config = DesktopConfiguration.from_env(env=env, dotenv=False)
    assert config.data_dir == Path(tmp_path)
    assert config.store_path == Path(tmp_path) / "local_store.json"
    assert config.viewport_margin_x == 8
    assert config.viewport_margin_y == 24
    assert config.default_page_size == 50
    assert config.logging_level() == 10
    assert config.default_changer == "值班员"


@pytest.mark.parametrize("env", [
    {"PLATE_PAGE_SIZE": "abc"},
    {"PLATE_PAGE_SIZE": "15"},
    {"PLATE_VIEWPORT_MARGIN_X": "-1"},
    {"PLATE_LOG_LEVEL": "LOUD"},
])
def test_invalid_values_rejected(env):
    with pytest.raises(ConfigurationError):
        DesktopConfiguration.from_env(env=env, dotenv=False)
