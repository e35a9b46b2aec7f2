"""Upgrade of the legacy single-application store.

Version 1 stores held one registry (Claude Code's) directly at the top level
of config.json. Such a file becomes the ``claude`` registry of a version 2
store with an empty ``codex`` registry and default settings. The original
file is copied to ``config.v1.backup.<unix-seconds>.json`` first.
"""

import time
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from ccswitch.core.config import STORE_VERSION, StoreConfig
from ccswitch.core.provider import AppType, ProviderRegistry
from ccswitch.core.settings import AppSettings
from ccswitch.utils.json_utils import copy_file
from ccswitch.utils.log import get_logger


logger = get_logger()


def legacy_backup_name(timestamp: int) -> str:
    return f"config.v1.backup.{timestamp}.json"


def parse_legacy(data: Any) -> Optional[ProviderRegistry]:
    """Return the registry when ``data`` has the version 1 shape."""
    if not isinstance(data, dict):
        return None
    try:
        return ProviderRegistry.model_validate(data)
    except ValidationError:
        return None


class ConfigMigrator:
    """Detects version 1 stores and rewrites them as version 2."""

    def __init__(self, config_dir: Path, clock: Callable[[], float] = time.time) -> None:
        self.config_dir = config_dir
        self._clock = clock

    def migrate_if_legacy(
        self,
        config_path: Path,
        data: Any,
        save: Callable[[StoreConfig], None],
    ) -> Optional[StoreConfig]:
        """Migrate ``data`` read from ``config_path`` if it is a legacy store.

        Returns None when ``data`` is not legacy-shaped. Otherwise backs up
        the original file, persists the migrated store through ``save`` and
        returns it.
        """
        legacy = parse_legacy(data)
        if legacy is None:
            return None

        logger.info(
            "[migration] Detected version 1 store; migrating to version 2",
            extra={"path": str(config_path), "provider_count": len(legacy.providers)},
        )
        store = StoreConfig(
            version=STORE_VERSION,
            settings=AppSettings(),
            registries={
                AppType.CLAUDE.value: legacy,
                AppType.CODEX.value: ProviderRegistry.empty(),
            },
        )

        backup_path = self.config_dir / legacy_backup_name(int(self._clock()))
        try:
            copy_file(config_path, backup_path)
            logger.info(
                "[migration] Backed up version 1 store",
                extra={"source": str(config_path), "backup": str(backup_path)},
            )
        except OSError as exc:
            logger.warning(
                "[migration] Failed to back up version 1 store: %s: %s",
                type(exc).__name__,
                exc,
                extra={"backup": str(backup_path)},
            )

        save(store)
        return store
