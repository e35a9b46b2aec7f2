"""Runtime settings for cc-switch.

Settings live in their own small JSON file (``settings.json`` inside the
cc-switch config directory) with a lifecycle independent from the provider
store. A missing, unreadable or partially invalid file never fails a load:
every field that cannot be used falls back to its default.
"""

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ccswitch.core.errors import ConfigIOError, SerializationError
from ccswitch.utils.json_utils import dump_json, write_bytes_atomic
from ccswitch.utils.log import get_logger


logger = get_logger()

CONFIG_DIR_ENV = "CCSWITCH_CONFIG_DIR"
SETTINGS_FILENAME = "settings.json"


def get_config_dir() -> Path:
    """Directory holding the store, backups and settings (``~/.cc-switch``)."""
    override = os.getenv(CONFIG_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".cc-switch"


class TargetEnv(str, Enum):
    """Where the managed applications read their live configuration."""

    LOCAL = "local"
    WSL = "wsl"

    @classmethod
    def _legacy_aliases(cls) -> Dict[str, "TargetEnv"]:
        """Earlier releases named the host environment after the OS."""
        return {
            "windows": cls.LOCAL,
            "win": cls.LOCAL,
            "native": cls.LOCAL,
        }

    @classmethod
    def _missing_(cls, value: object) -> Optional["TargetEnv"]:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in (cls.LOCAL.value, cls.WSL.value):
                return cls(normalized)
            return cls._legacy_aliases().get(normalized)
        return None


class AppSettings(BaseModel):
    """Settings stored in ~/.cc-switch/settings.json"""

    model_config = {"populate_by_name": True}

    show_in_tray: bool = Field(default=True, alias="showInTray")
    minimize_to_tray_on_close: bool = Field(default=True, alias="minimizeToTrayOnClose")
    target_env: TargetEnv = Field(default=TargetEnv.LOCAL, alias="targetEnv")
    wsl_distro: Optional[str] = Field(default=None, alias="wslDistro")

    @field_validator("*", mode="wrap")
    @classmethod
    def _default_invalid_fields(cls, value: Any, handler: Any, info: Any) -> Any:
        """Replace any field that fails validation with its default."""
        try:
            return handler(value)
        except ValidationError:
            field = cls.model_fields[info.field_name]
            logger.debug(
                "[settings] Invalid value replaced by default",
                extra={"field": info.field_name},
            )
            return field.get_default(call_default_factory=True)

    @field_validator("wsl_distro")
    @classmethod
    def _blank_distro_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SettingsManager:
    """Loads and saves :class:`AppSettings`."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or get_config_dir() / SETTINGS_FILENAME

    def load(self) -> AppSettings:
        """Load settings, falling back to defaults for anything unusable."""
        if not self.path.exists():
            return AppSettings()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError, ValueError) as e:
            logger.warning(
                "Error loading settings: %s: %s",
                type(e).__name__,
                e,
                extra={"path": str(self.path)},
            )
            return AppSettings()
        if not isinstance(data, dict):
            return AppSettings()
        return AppSettings.model_validate(data)

    def save(self, settings: AppSettings) -> None:
        """Persist settings, creating the config directory when needed."""
        try:
            payload = dump_json(settings.to_json_dict())
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Failed to serialize settings: {exc}") from exc
        try:
            write_bytes_atomic(self.path, payload.encode("utf-8"))
        except OSError as exc:
            raise ConfigIOError(f"Failed to write settings to {self.path}: {exc}") from exc
        logger.debug(
            "[settings] Saved settings",
            extra={
                "path": str(self.path),
                "target_env": settings.target_env.value,
                "wsl_distro": settings.wsl_distro,
            },
        )

    def update(self, patch: Dict[str, Any]) -> AppSettings:
        """Merge boundary keys from ``patch`` into the stored settings.

        Only the keys present in ``patch`` change; ``targetEnv`` accepts
        ``"wsl"`` and treats every other string as the local environment.
        """
        settings = self.load()
        show_in_tray = patch.get("showInTray")
        if isinstance(show_in_tray, bool):
            settings.show_in_tray = show_in_tray
        minimize = patch.get("minimizeToTrayOnClose")
        if isinstance(minimize, bool):
            settings.minimize_to_tray_on_close = minimize
        target_env = patch.get("targetEnv")
        if isinstance(target_env, str):
            settings.target_env = (
                TargetEnv.WSL if target_env.strip().lower() == "wsl" else TargetEnv.LOCAL
            )
        wsl_distro = patch.get("wslDistro")
        if isinstance(wsl_distro, str):
            settings.wsl_distro = wsl_distro.strip() or None
        self.save(settings)
        return settings
