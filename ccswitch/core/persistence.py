"""Loading and saving the provider store."""

import json
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ccswitch.core.config import StoreConfig
from ccswitch.core.errors import ConfigIOError, MalformedStore, SerializationError
from ccswitch.core.migration import ConfigMigrator
from ccswitch.core.settings import get_config_dir
from ccswitch.utils.json_utils import copy_file, dump_json, write_bytes_atomic
from ccswitch.utils.log import get_logger


logger = get_logger()

STORE_FILENAME = "config.json"
BACKUP_FILENAME = "config.json.bak"


class PersistenceLayer:
    """Reads config.json (migrating old stores) and writes it with a backup."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self.config_dir = config_dir or get_config_dir()
        self.config_path = self.config_dir / STORE_FILENAME
        self.backup_path = self.config_dir / BACKUP_FILENAME
        self.migrator = ConfigMigrator(self.config_dir)

    def load(self) -> StoreConfig:
        """Load the store; a missing file yields the default store unsaved."""
        if not self.config_path.exists():
            logger.info(
                "[persistence] Store not found; using defaults",
                extra={"path": str(self.config_path)},
            )
            return StoreConfig.default()

        try:
            content = self.config_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigIOError(f"Failed to read {self.config_path}: {exc}") from exc

        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise MalformedStore(f"Failed to parse {self.config_path}: {exc}") from exc

        migrated = self.migrator.migrate_if_legacy(self.config_path, data, self.save)
        if migrated is not None:
            return migrated

        try:
            store = StoreConfig.from_json_dict(data)
        except (ValidationError, ValueError) as exc:
            raise MalformedStore(f"Failed to parse {self.config_path}: {exc}") from exc
        logger.debug(
            "[persistence] Loaded store",
            extra={
                "path": str(self.config_path),
                "version": store.version,
                "apps": sorted(store.registries),
            },
        )
        return store

    def save(self, store: StoreConfig) -> None:
        """Write the store, first copying the previous file to config.json.bak."""
        if self.config_path.exists():
            try:
                copy_file(self.config_path, self.backup_path)
            except OSError as exc:
                logger.warning(
                    "[persistence] Failed to back up config.json: %s: %s",
                    type(exc).__name__,
                    exc,
                    extra={"backup": str(self.backup_path)},
                )

        try:
            payload = dump_json(store.to_json_dict())
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Failed to serialize the provider store: {exc}") from exc

        try:
            write_bytes_atomic(self.config_path, payload.encode("utf-8"))
        except OSError as exc:
            raise ConfigIOError(f"Failed to write {self.config_path}: {exc}") from exc
        logger.debug(
            "[persistence] Saved store",
            extra={
                "path": str(self.config_path),
                "provider_counts": {
                    key: len(registry.providers) for key, registry in store.registries.items()
                },
            },
        )
