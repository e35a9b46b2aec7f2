"""Reading and writing the live configuration of the managed applications.

Claude Code reads one JSON settings file. Codex reads two files that must
change together: ``auth.json`` and the TOML text in ``config.toml``. The
writer validates a payload completely before touching disk, and a failed
Codex commit restores the first file so the pair never ends up half-written.
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ccswitch.core.environment import CODEX_AUTH_FILENAME, EnvironmentResolver
from ccswitch.core.errors import ConfigIOError, InvalidLiveConfig, LiveConfigMissing, MissingField
from ccswitch.core.provider import AppType
from ccswitch.utils.json_utils import dump_json, read_json_file, write_bytes_atomic
from ccswitch.utils.log import get_logger


logger = get_logger()

CODEX_AUTH_KEY = "auth"
CODEX_CONFIG_KEY = "config"


@dataclass(frozen=True)
class ClaudeLiveConfig:
    """Contents of Claude Code's ``settings.json``."""

    settings: Dict[str, Any]

    def to_settings_config(self) -> Any:
        return self.settings


@dataclass(frozen=True)
class CodexLiveConfig:
    """Contents of Codex's ``auth.json`` and ``config.toml``."""

    auth: Any
    config: str

    def to_settings_config(self) -> Any:
        return {CODEX_AUTH_KEY: self.auth, CODEX_CONFIG_KEY: self.config}


LiveConfig = Union[ClaudeLiveConfig, CodexLiveConfig]


@dataclass
class ConfigStatus:
    exists: bool
    path: str


def validate_config_text(text: str) -> None:
    """Raise InvalidLiveConfig unless ``text`` is empty or valid TOML."""
    if not text.strip():
        return
    try:
        tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise InvalidLiveConfig(f"config.toml is not valid TOML: {exc}") from exc


def parse_payload(app: AppType, settings_config: Any) -> LiveConfig:
    """Type a provider's stored payload for ``app``.

    Raises MissingField when a Codex payload lacks ``auth`` or ``config``,
    and InvalidLiveConfig when the content cannot be written as-is.
    """
    if app is AppType.CLAUDE:
        if not isinstance(settings_config, dict):
            raise InvalidLiveConfig("Claude Code settings must be a JSON object")
        return ClaudeLiveConfig(settings=settings_config)

    if not isinstance(settings_config, dict) or CODEX_AUTH_KEY not in settings_config:
        raise MissingField("Target provider is missing the 'auth' configuration", field="auth")
    if CODEX_CONFIG_KEY not in settings_config:
        raise MissingField("Target provider is missing the 'config' text", field="config")
    config_text = settings_config[CODEX_CONFIG_KEY]
    if not isinstance(config_text, str):
        raise MissingField("Target provider 'config' must be TOML text", field="config")
    validate_config_text(config_text)
    return CodexLiveConfig(auth=settings_config[CODEX_AUTH_KEY], config=config_text)


def _read_snapshot(path: Path) -> Optional[bytes]:
    if not path.exists():
        return None
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ConfigIOError(f"Failed to read {path}: {exc}") from exc


def _read_config_text(path: Path) -> str:
    if not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigIOError(f"Failed to read {path}: {exc}") from exc


def _read_json(path: Path) -> Any:
    try:
        return read_json_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigIOError(f"Failed to read {path}: {exc}") from exc
    except ValueError as exc:
        raise InvalidLiveConfig(f"{path} is not valid JSON: {exc}") from exc


class LiveConfigWriter:
    """Executes reads and make-live writes against resolved live paths."""

    def __init__(self, resolver: EnvironmentResolver) -> None:
        self.resolver = resolver

    def _write_file(self, path: Path, data: bytes) -> None:
        write_bytes_atomic(path, data)

    def read_live(self, app: AppType) -> Optional[Any]:
        """Current live content as a ``settings_config`` value, or None if absent."""
        paths = self.resolver.live_paths(app)
        if app is AppType.CLAUDE:
            settings_path = paths[0]
            if not settings_path.exists():
                return None
            return _read_json(settings_path)

        auth_path, config_path = paths
        if not auth_path.exists():
            return None
        auth = _read_json(auth_path)
        return CodexLiveConfig(auth=auth, config=_read_config_text(config_path)).to_settings_config()

    def backfill(self, app: AppType) -> Optional[Any]:
        """Capture live content for the outgoing provider.

        Unparseable Claude settings are skipped rather than failing the
        switch; unreadable Codex files abort it.
        """
        if app is AppType.CLAUDE:
            try:
                return self.read_live(app)
            except InvalidLiveConfig as exc:
                logger.warning(
                    "[live_config] Skipping backfill of unparseable settings: %s",
                    exc,
                    extra={"app": app.value},
                )
                return None
        return self.read_live(app)

    def read_for_import(self, app: AppType) -> Any:
        """Strict read used to seed the first provider from live files."""
        live = self.read_live(app)
        if live is None:
            raise LiveConfigMissing(f"{app.display_name} configuration file does not exist")
        if app is AppType.CODEX:
            validate_config_text(live[CODEX_CONFIG_KEY])
        return live

    def commit(self, app: AppType, settings_config: Any) -> None:
        """Make ``settings_config`` the live configuration of ``app``.

        The payload is validated before any file is touched. For Codex, a
        failure writing ``config.toml`` restores ``auth.json`` to its
        previous bytes before the error propagates.
        """
        live = parse_payload(app, settings_config)
        if isinstance(live, ClaudeLiveConfig):
            self._commit_claude(live)
        else:
            self._commit_codex(live)

    def _commit_claude(self, live: ClaudeLiveConfig) -> None:
        settings_path = self.resolver.claude_settings_path()
        try:
            settings_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigIOError(f"Failed to create directory {settings_path.parent}: {exc}") from exc
        try:
            data = dump_json(live.settings).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise InvalidLiveConfig(f"Claude Code settings cannot be serialized: {exc}") from exc
        try:
            self._write_file(settings_path, data)
        except OSError as exc:
            raise ConfigIOError(f"Failed to write {settings_path}: {exc}") from exc
        logger.debug("[live_config] Wrote Claude Code settings", extra={"path": str(settings_path)})

    def _commit_codex(self, live: CodexLiveConfig) -> None:
        auth_path, config_path = self.resolver.live_paths(AppType.CODEX)
        try:
            auth_data = dump_json(live.auth).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise InvalidLiveConfig(f"Codex auth cannot be serialized: {exc}") from exc
        config_data = live.config.encode("utf-8")

        auth_before = _read_snapshot(auth_path)
        try:
            self._write_file(auth_path, auth_data)
        except OSError as exc:
            raise ConfigIOError(f"Failed to write {auth_path}: {exc}") from exc

        try:
            self._write_file(config_path, config_data)
        except OSError as exc:
            reason = f"Failed to write {config_path}: {exc}"
            self._restore(auth_path, auth_before, reason)
            raise ConfigIOError(reason) from exc

        logger.debug(
            "[live_config] Wrote Codex auth and config",
            extra={"auth_path": str(auth_path), "config_path": str(config_path)},
        )

    def _restore(self, path: Path, snapshot: Optional[bytes], reason: str) -> None:
        try:
            if snapshot is None:
                path.unlink(missing_ok=True)
            else:
                self._write_file(path, snapshot)
        except OSError as exc:
            logger.error(
                "[live_config] Failed to roll back %s: %s",
                path,
                exc,
                extra={"path": str(path)},
            )
            raise ConfigIOError(f"{reason}; rolling back {path} also failed: {exc}") from exc
        logger.info("[live_config] Rolled back partial write", extra={"path": str(path)})

    def status(self, app: AppType) -> ConfigStatus:
        if app is AppType.CLAUDE:
            settings_path = self.resolver.claude_settings_path()
            return ConfigStatus(exists=settings_path.exists(), path=str(settings_path))
        directory = self.resolver.codex_dir()
        auth_path = directory / CODEX_AUTH_FILENAME
        return ConfigStatus(exists=auth_path.exists(), path=str(directory))
