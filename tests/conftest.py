"""Pytest configuration and fixtures for all tests."""

from pathlib import Path

import pytest

from ccswitch.core.store import ConfigStore


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the user home and the cc-switch data directory into tmp_path.

    Every test that touches live files or the store should use this fixture
    so nothing is read from or written to the real home directory.
    """
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    monkeypatch.setenv("CCSWITCH_CONFIG_DIR", str(tmp_path / "cc-switch"))
    return home_dir


@pytest.fixture
def config_dir(home: Path, tmp_path: Path) -> Path:
    return tmp_path / "cc-switch"


@pytest.fixture
def store(home: Path) -> ConfigStore:
    return ConfigStore()

