"""Error types for the cc-switch engine.

Every failure the engine reports derives from :class:`CCSwitchError` and
carries a human-readable message that the command layer shows verbatim.
"""


class CCSwitchError(Exception):
    """Base exception for all cc-switch errors."""

    def __str__(self) -> str:
        return self.args[0] if self.args else "An error occurred in cc-switch"


class LockAcquisitionError(CCSwitchError):
    """Raised when the store lock cannot be acquired."""


class AppKindNotFound(CCSwitchError):
    """Raised when an application kind is not one of the managed apps."""

    def __init__(self, message: str, app: object = None):
        super().__init__(message)
        self.app = app


class ProviderNotFound(CCSwitchError):
    """Raised when a provider id is absent from a registry."""

    def __init__(self, message: str, provider_id: str = ""):
        super().__init__(message)
        self.provider_id = provider_id


class InvalidOperation(CCSwitchError):
    """Raised when an operation would break a registry invariant."""


class MissingField(CCSwitchError):
    """Raised when a provider payload lacks a field required to go live."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.field = field


class InvalidLiveConfig(CCSwitchError):
    """Raised when live configuration content cannot be parsed."""


class LiveConfigMissing(CCSwitchError):
    """Raised when the live configuration to import does not exist."""


class MissingDistroConfig(CCSwitchError):
    """Raised when the WSL target is selected without a distribution name."""


class ExternalToolError(CCSwitchError):
    """Raised when the WSL tooling fails or is unavailable on this host."""

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigIOError(CCSwitchError):
    """Raised when a directory or file cannot be created, read or written."""


class MalformedStore(CCSwitchError):
    """Raised when the store file parses under neither schema."""


class SerializationError(CCSwitchError):
    """Raised when in-memory state cannot be serialized."""


__all__ = [
    "CCSwitchError",
    "LockAcquisitionError",
    "AppKindNotFound",
    "ProviderNotFound",
    "InvalidOperation",
    "MissingField",
    "InvalidLiveConfig",
    "LiveConfigMissing",
    "MissingDistroConfig",
    "ExternalToolError",
    "ConfigIOError",
    "MalformedStore",
    "SerializationError",
]
