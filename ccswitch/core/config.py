"""The on-disk provider store shared by every managed application.

Stored in ~/.cc-switch/config.json as::

    {
      "version": 2,
      "settings": {...},
      "claude": {"providers": {...}, "current": "..."},
      "codex": {"providers": {...}, "current": "..."}
    }

Registries sit at the top level next to ``version`` and ``settings``, one
object per application kind.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field

from ccswitch.core.provider import AppType, ProviderRegistry
from ccswitch.core.settings import AppSettings


STORE_VERSION = 2

_RESERVED_KEYS = ("version", "settings")


class StoreConfig(BaseModel):
    """Version, global settings and one provider registry per application."""

    version: int = STORE_VERSION
    settings: AppSettings = Field(default_factory=AppSettings)
    registries: Dict[str, ProviderRegistry] = Field(default_factory=dict)

    @classmethod
    def default(cls) -> "StoreConfig":
        store = cls()
        for app in AppType:
            store.ensure_app(app)
        return store

    @classmethod
    def from_json_dict(cls, data: Any) -> "StoreConfig":
        """Parse the current schema; raises pydantic.ValidationError or ValueError."""
        if not isinstance(data, dict):
            raise ValueError("store root must be a JSON object")
        registries = {key: value for key, value in data.items() if key not in _RESERVED_KEYS}
        store = cls.model_validate(
            {
                "version": data.get("version", STORE_VERSION),
                "settings": data.get("settings") or {},
                "registries": registries,
            }
        )
        for app in AppType:
            store.ensure_app(app)
        return store

    def ensure_app(self, app: AppType) -> ProviderRegistry:
        registry = self.registries.get(app.value)
        if registry is None:
            registry = ProviderRegistry.empty()
            self.registries[app.value] = registry
        return registry

    def registry(self, app: AppType) -> ProviderRegistry:
        return self.ensure_app(app)

    def to_json_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "version": self.version,
            "settings": self.settings.to_json_dict(),
        }
        for key, registry in self.registries.items():
            data[key] = registry.to_json_dict()
        return data
