"""Composition root for provider switching.

``ConfigStore`` owns the in-memory provider store behind one exclusive lock.
The lock only guards in-memory reads and writes: each operation collects
what it needs under a short lock, performs filesystem and subprocess work
unlocked, then re-acquires the lock to apply its mutation and take a
snapshot that is persisted afterwards. Persistence is serialized by a second
lock and never writes a snapshot older than the last one saved.
"""

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ccswitch.core.config import StoreConfig
from ccswitch.core.environment import EnvironmentResolver, list_wsl_distros, resolve_wsl_home
from ccswitch.core.errors import (
    AppKindNotFound,
    ConfigIOError,
    InvalidOperation,
    LockAcquisitionError,
    ProviderNotFound,
)
from ccswitch.core.live_config import ConfigStatus, LiveConfigWriter
from ccswitch.core.persistence import PersistenceLayer
from ccswitch.core.provider import AppType, Provider, ProviderRegistry
from ccswitch.core.settings import SETTINGS_FILENAME, AppSettings, SettingsManager
from ccswitch.utils.log import get_logger


logger = get_logger()

DEFAULT_PROVIDER_ID = "default"


def _require_app(app: Any) -> AppType:
    if not isinstance(app, AppType):
        raise AppKindNotFound(f"Unknown application kind: {app!r}", app=app)
    return app


class ConfigStore:
    """Registries for every managed application plus global settings."""

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        *,
        persistence: Optional[PersistenceLayer] = None,
        settings_manager: Optional[SettingsManager] = None,
        home_override: Optional[Path] = None,
        lock_timeout: float = -1,
    ) -> None:
        self.persistence = persistence or PersistenceLayer(config_dir)
        self.config_dir = self.persistence.config_dir
        self.settings_manager = settings_manager or SettingsManager(
            self.config_dir / SETTINGS_FILENAME
        )
        self._home_override = home_override
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self._save_lock = threading.Lock()
        self._revision = 0
        self._saved_revision = 0
        self._store = self.persistence.load()
        # settings.json is authoritative; config.json carries a copy.
        self._store.settings = self.settings_manager.load()

    # ------------------------------------------------------------------
    # Locking and persistence
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[StoreConfig]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise LockAcquisitionError("Failed to acquire the configuration lock")
        try:
            yield self._store
        finally:
            self._lock.release()

    def _take_snapshot(self) -> Tuple[int, StoreConfig]:
        # Caller holds self._lock.
        self._revision += 1
        return self._revision, self._store.model_copy(deep=True)

    def _persist(self, revision: int, snapshot: StoreConfig) -> None:
        with self._save_lock:
            if revision <= self._saved_revision:
                logger.debug(
                    "[store] Skipping stale snapshot",
                    extra={"revision": revision, "saved_revision": self._saved_revision},
                )
                return
            self.persistence.save(snapshot)
            self._saved_revision = revision

    def _resolver(self) -> EnvironmentResolver:
        return EnvironmentResolver(self.settings_manager.load(), home_override=self._home_override)

    def _writer(self) -> LiveConfigWriter:
        return LiveConfigWriter(self._resolver())

    def snapshot(self) -> StoreConfig:
        """Deep copy of the whole in-memory store."""
        with self._locked() as store:
            return store.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Provider operations
    # ------------------------------------------------------------------

    def list_providers(self, app: AppType) -> Dict[str, Provider]:
        app = _require_app(app)
        with self._locked() as store:
            return store.registry(app).list()

    def get_current(self, app: AppType) -> str:
        app = _require_app(app)
        with self._locked() as store:
            return store.registry(app).get_current()

    def add_provider(self, app: AppType, provider: Provider) -> None:
        """Insert or replace ``provider``.

        When it is the active provider its payload is written live first;
        the registry only changes if that write succeeds.
        """
        app = _require_app(app)
        with self._locked() as store:
            is_current = store.registry(app).get_current() == provider.id
        self._upsert(app, provider, is_current)
        logger.info(
            "[store] Added provider",
            extra={"app": app.value, "provider_id": provider.id, "live": is_current},
        )

    def update_provider(self, app: AppType, provider: Provider) -> None:
        """Replace an existing provider; same live-first ordering as add."""
        app = _require_app(app)
        with self._locked() as store:
            registry = store.registry(app)
            if not registry.contains(provider.id):
                raise ProviderNotFound(
                    f"Provider not found: {provider.id}", provider_id=provider.id
                )
            is_current = registry.get_current() == provider.id
        self._upsert(app, provider, is_current)
        logger.info(
            "[store] Updated provider",
            extra={"app": app.value, "provider_id": provider.id, "live": is_current},
        )

    def _upsert(self, app: AppType, provider: Provider, is_current: bool) -> None:
        incoming = provider.model_copy(deep=True)
        if is_current:
            self._writer().commit(app, incoming.settings_config)
        with self._locked() as store:
            store.registry(app).insert_or_replace(incoming)
            revision, snapshot = self._take_snapshot()
        self._persist(revision, snapshot)

    def delete_provider(self, app: AppType, provider_id: str) -> None:
        """Remove a provider that is not active, plus its legacy copy files."""
        app = _require_app(app)
        with self._locked() as store:
            registry = store.registry(app)
            if registry.get_current() == provider_id:
                raise InvalidOperation(
                    f"Cannot delete the provider currently in use: {provider_id}"
                )
            name = registry.get(provider_id).name

        for path in self._resolver().legacy_provider_paths(app, provider_id, name):
            if not path.exists():
                continue
            try:
                path.unlink()
            except OSError as exc:
                raise ConfigIOError(f"Failed to delete {path}: {exc}") from exc
            logger.debug("[store] Removed legacy provider file", extra={"path": str(path)})

        with self._locked() as store:
            store.registry(app).remove(provider_id)
            revision, snapshot = self._take_snapshot()
        self._persist(revision, snapshot)
        logger.info("[store] Deleted provider", extra={"app": app.value, "provider_id": provider_id})

    def switch_provider(self, app: AppType, provider_id: str) -> None:
        """Make ``provider_id`` the live configuration of ``app``.

        The outgoing provider first absorbs whatever is currently live, so
        edits made directly to the live files survive the switch. The
        registry and the store file change only after the live write
        succeeds.
        """
        app = _require_app(app)
        with self._locked() as store:
            registry = store.registry(app)
            target = registry.get(provider_id).model_copy(deep=True)
            outgoing = registry.get_current()

        writer = self._writer()
        backfilled = writer.backfill(app) if outgoing else None
        payload = target.settings_config
        if outgoing == provider_id and backfilled is not None:
            payload = backfilled
        writer.commit(app, payload)

        with self._locked() as store:
            registry = store.registry(app)
            if not registry.contains(provider_id):
                raise ProviderNotFound(
                    f"Provider was removed during the switch: {provider_id}",
                    provider_id=provider_id,
                )
            if backfilled is not None:
                # Another switch may have run since the live files were read.
                if registry.get_current() == outgoing and registry.contains(outgoing):
                    registry.get(outgoing).settings_config = backfilled
                else:
                    logger.warning(
                        "[store] Skipping backfill; active provider changed during the switch",
                        extra={
                            "app": app.value,
                            "outgoing": outgoing,
                            "current": registry.get_current(),
                        },
                    )
                    backfilled = None
            registry.set_current(provider_id)
            revision, snapshot = self._take_snapshot()
        self._persist(revision, snapshot)
        logger.info(
            "[store] Switched provider",
            extra={
                "app": app.value,
                "from": outgoing,
                "to": provider_id,
                "provider_name": target.name,
                "backfilled": backfilled is not None,
            },
        )

    def import_default(self, app: AppType) -> bool:
        """Seed an empty registry from the live configuration.

        Returns False without touching anything when the registry already
        has providers, True when a ``default`` provider was created.
        """
        app = _require_app(app)
        with self._locked() as store:
            if not store.registry(app).is_empty():
                return False

        settings_config = self._writer().read_for_import(app)
        provider = Provider(
            id=DEFAULT_PROVIDER_ID,
            name=DEFAULT_PROVIDER_ID,
            settings_config=settings_config,
        )

        with self._locked() as store:
            registry = store.registry(app)
            if not registry.is_empty():
                return False
            registry.insert_or_replace(provider)
            registry.set_current(provider.id)
            revision, snapshot = self._take_snapshot()
        self._persist(revision, snapshot)
        logger.info("[store] Imported live configuration", extra={"app": app.value})
        return True

    # ------------------------------------------------------------------
    # Environment and settings
    # ------------------------------------------------------------------

    def get_config_status(self, app: AppType) -> ConfigStatus:
        app = _require_app(app)
        return self._writer().status(app)

    def get_live_config_dir(self, app: AppType) -> Path:
        app = _require_app(app)
        return self._resolver().config_dir(app)

    def get_app_config_path(self) -> Path:
        return self.persistence.config_path

    def list_remote_distros(self) -> List[str]:
        return list_wsl_distros()

    def resolve_remote_home(self, distro: str) -> str:
        return resolve_wsl_home(distro)

    def get_settings(self) -> AppSettings:
        return self.settings_manager.load()

    def save_settings(self, patch: Dict[str, Any]) -> AppSettings:
        """Merge ``patch`` into settings.json and mirror it into config.json."""
        settings = self.settings_manager.update(patch)
        with self._locked() as store:
            store.settings = settings.model_copy()
            revision, snapshot = self._take_snapshot()
        self._persist(revision, snapshot)
        return settings

    def registry_snapshot(self, app: AppType) -> ProviderRegistry:
        app = _require_app(app)
        with self._locked() as store:
            return store.registry(app).model_copy(deep=True)
