"""Tests for loading, saving and migrating config.json."""

import json
from pathlib import Path

import pytest

from ccswitch.core import persistence as persistence_module
from ccswitch.core.config import StoreConfig
from ccswitch.core.errors import ConfigIOError, MalformedStore
from ccswitch.core.persistence import PersistenceLayer
from ccswitch.core.provider import AppType, Provider
from ccswitch.core.settings import TargetEnv


LEGACY_STORE = {
    "providers": {
        "p1": {
            "id": "p1",
            "name": "Relay",
            "settingsConfig": {"env": {"ANTHROPIC_BASE_URL": "https://relay.example"}},
        }
    },
    "current": "p1",
}


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _store_with(provider_id: str) -> StoreConfig:
    store = StoreConfig.default()
    store.registry(AppType.CLAUDE).insert_or_replace(
        Provider(id=provider_id, name=provider_id, settings_config={"env": {}})
    )
    return store


def test_missing_store_loads_defaults_without_writing(tmp_path: Path):
    layer = PersistenceLayer(tmp_path)
    store = layer.load()
    assert store.version == 2
    assert set(store.registries) == {"claude", "codex"}
    assert store.registry(AppType.CODEX).is_empty()
    assert not layer.config_path.exists()


def test_save_writes_version_two_layout(tmp_path: Path):
    layer = PersistenceLayer(tmp_path)
    layer.save(_store_with("p1"))

    data = json.loads(layer.config_path.read_text(encoding="utf-8"))
    assert data["version"] == 2
    assert data["settings"]["targetEnv"] == "local"
    assert data["claude"]["providers"]["p1"]["settingsConfig"] == {"env": {}}
    assert data["codex"] == {"providers": {}, "current": ""}


def test_save_rotates_previous_file_to_backup(tmp_path: Path):
    layer = PersistenceLayer(tmp_path)
    layer.save(_store_with("first"))
    first_bytes = layer.config_path.read_bytes()

    layer.save(_store_with("second"))

    assert layer.backup_path.read_bytes() == first_bytes
    assert "second" in json.loads(layer.config_path.read_text(encoding="utf-8"))["claude"]["providers"]


def test_round_trip(tmp_path: Path):
    layer = PersistenceLayer(tmp_path)
    original = _store_with("p1")
    original.registry(AppType.CLAUDE).set_current("p1")
    original.settings.target_env = TargetEnv.WSL
    layer.save(original)

    loaded = layer.load()
    assert loaded.registry(AppType.CLAUDE).get_current() == "p1"
    assert loaded.settings.target_env == TargetEnv.WSL
    assert loaded.to_json_dict() == original.to_json_dict()


def test_unknown_registries_are_preserved(tmp_path: Path):
    layer = PersistenceLayer(tmp_path)
    _write_json(
        layer.config_path,
        {"version": 2, "claude": {"providers": {}, "current": ""}, "gemini": {"providers": {}, "current": ""}},
    )
    store = layer.load()
    assert "gemini" in store.registries
    assert "codex" in store.registries


def test_invalid_json_is_malformed(tmp_path: Path):
    layer = PersistenceLayer(tmp_path)
    layer.config_path.parent.mkdir(parents=True, exist_ok=True)
    layer.config_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MalformedStore):
        layer.load()


def test_wrong_shape_is_malformed(tmp_path: Path):
    layer = PersistenceLayer(tmp_path)
    _write_json(layer.config_path, {"version": 2, "claude": {"providers": "nope", "current": ""}})
    with pytest.raises(MalformedStore):
        layer.load()


def test_non_object_root_is_malformed(tmp_path: Path):
    layer = PersistenceLayer(tmp_path)
    _write_json(layer.config_path, [1, 2, 3])
    with pytest.raises(MalformedStore):
        layer.load()


def test_backup_failure_does_not_block_save(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    layer = PersistenceLayer(tmp_path)
    layer.save(_store_with("first"))

    def broken_copy(source, destination):
        raise OSError("read-only backup location")

    monkeypatch.setattr(persistence_module, "copy_file", broken_copy)
    layer.save(_store_with("second"))

    data = json.loads(layer.config_path.read_text(encoding="utf-8"))
    assert "second" in data["claude"]["providers"]
    assert not layer.backup_path.exists()


def test_write_failure_raises_io_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    layer = PersistenceLayer(tmp_path)

    def broken_write(path, data, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(persistence_module, "write_bytes_atomic", broken_write)
    with pytest.raises(ConfigIOError):
        layer.save(_store_with("p1"))


class TestLegacyMigration:
    def test_v1_store_becomes_claude_registry(self, tmp_path: Path):
        layer = PersistenceLayer(tmp_path)
        _write_json(layer.config_path, LEGACY_STORE)
        original_bytes = layer.config_path.read_bytes()

        store = layer.load()

        claude = store.registry(AppType.CLAUDE)
        assert claude.get_current() == "p1"
        assert claude.get("p1").name == "Relay"
        assert store.registry(AppType.CODEX).is_empty()

        backups = list(tmp_path.glob("config.v1.backup.*.json"))
        assert len(backups) == 1
        assert backups[0].read_bytes() == original_bytes

        rewritten = json.loads(layer.config_path.read_text(encoding="utf-8"))
        assert rewritten["version"] == 2
        assert rewritten["claude"]["current"] == "p1"
        assert rewritten["codex"] == {"providers": {}, "current": ""}

    def test_backup_name_uses_clock(self, tmp_path: Path):
        layer = PersistenceLayer(tmp_path)
        layer.migrator._clock = lambda: 1700000000.5
        _write_json(layer.config_path, LEGACY_STORE)

        layer.load()

        assert (tmp_path / "config.v1.backup.1700000000.json").exists()

    def test_migrated_store_loads_as_version_two(self, tmp_path: Path):
        layer = PersistenceLayer(tmp_path)
        _write_json(layer.config_path, LEGACY_STORE)
        layer.load()

        again = PersistenceLayer(tmp_path).load()

        assert again.registry(AppType.CLAUDE).get_current() == "p1"
        assert len(list(tmp_path.glob("config.v1.backup.*.json"))) == 1

    def test_migration_backup_failure_is_not_fatal(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        from ccswitch.core import migration

        def broken_copy(source, destination):
            raise OSError("no space")

        monkeypatch.setattr(migration, "copy_file", broken_copy)
        layer = PersistenceLayer(tmp_path)
        _write_json(layer.config_path, LEGACY_STORE)

        store = layer.load()

        assert store.registry(AppType.CLAUDE).contains("p1")
        assert json.loads(layer.config_path.read_text(encoding="utf-8"))["version"] == 2
