"""Provider profiles and the per-application provider registry."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_serializer

from ccswitch.core.errors import AppKindNotFound, InvalidOperation, ProviderNotFound


class AppType(str, Enum):
    """Managed applications, each with its own live-file shape."""

    CLAUDE = "claude"
    CODEX = "codex"

    @classmethod
    def _missing_(cls, value: object) -> Optional["AppType"]:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @classmethod
    def parse(cls, value: "str | AppType") -> "AppType":
        """Parse a boundary value into an ``AppType``.

        Raises AppKindNotFound for anything but ``claude`` or ``codex``.
        """
        try:
            return cls(value)
        except ValueError as exc:
            raise AppKindNotFound(f"Unknown application kind: {value!r}", app=value) from exc

    @property
    def display_name(self) -> str:
        return "Claude Code" if self is AppType.CLAUDE else "Codex"


_OPTIONAL_PROVIDER_KEYS = ("websiteUrl", "category", "createdAt")


class Provider(BaseModel):
    """One named configuration profile for a managed application.

    ``settings_config`` is stored opaquely; its shape is only checked when
    the provider is made live.
    """

    model_config = {"populate_by_name": True}

    id: str
    name: str
    settings_config: Any = Field(alias="settingsConfig")
    website_url: Optional[str] = Field(default=None, alias="websiteUrl")
    category: Optional[str] = None
    created_at: Optional[int] = Field(default=None, alias="createdAt")

    @model_serializer(mode="wrap")
    def _omit_unset_optionals(self, handler: Any) -> Dict[str, Any]:
        data = handler(self)
        for key in _OPTIONAL_PROVIDER_KEYS + ("website_url", "created_at"):
            if key in data and data[key] is None:
                del data[key]
        return data

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProviderRegistry(BaseModel):
    """Providers of one application plus the active provider pointer.

    ``current`` is either empty or the id of a provider in ``providers``.
    """

    providers: Dict[str, Provider]
    current: str

    @classmethod
    def empty(cls) -> "ProviderRegistry":
        return cls(providers={}, current="")

    def list(self) -> Dict[str, Provider]:
        """Snapshot of every provider, keyed by id."""
        return {key: provider.model_copy(deep=True) for key, provider in self.providers.items()}

    def get(self, provider_id: str) -> Provider:
        provider = self.providers.get(provider_id)
        if provider is None:
            raise ProviderNotFound(f"Provider not found: {provider_id}", provider_id=provider_id)
        return provider

    def contains(self, provider_id: str) -> bool:
        return provider_id in self.providers

    def is_empty(self) -> bool:
        return not self.providers

    def insert_or_replace(self, provider: Provider) -> None:
        self.providers[provider.id] = provider

    def remove(self, provider_id: str) -> Provider:
        if provider_id == self.current:
            raise InvalidOperation(f"Cannot delete the provider currently in use: {provider_id}")
        if provider_id not in self.providers:
            raise ProviderNotFound(f"Provider not found: {provider_id}", provider_id=provider_id)
        return self.providers.pop(provider_id)

    def get_current(self) -> str:
        return self.current

    def set_current(self, provider_id: str) -> None:
        # Callers verify the id exists; this is the last step of a switch.
        self.current = provider_id

    def check_invariant(self) -> bool:
        """True when ``current`` is empty or names an existing provider."""
        return self.current == "" or self.current in self.providers

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "providers": {key: p.to_json_dict() for key, p in self.providers.items()},
            "current": self.current,
        }
