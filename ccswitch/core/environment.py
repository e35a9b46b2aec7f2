"""Resolve where the managed applications keep their live configuration.

The home directory is either the local user's home or, when the WSL target is
selected, the home of a WSL distribution addressed from the Windows host
through its ``\\\\wsl$\\<distro>`` UNC share.
"""

import re
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from ccswitch.core.errors import ConfigIOError, ExternalToolError, MissingDistroConfig
from ccswitch.core.provider import AppType
from ccswitch.core.settings import AppSettings, TargetEnv
from ccswitch.utils.log import get_logger
from ccswitch.utils.platform import supports_wsl


logger = get_logger()

WSL_EXECUTABLE = "wsl.exe"

CLAUDE_DIRNAME = ".claude"
CLAUDE_SETTINGS_FILENAME = "settings.json"
CLAUDE_LEGACY_SETTINGS_FILENAME = "claude.json"
CODEX_DIRNAME = ".codex"
CODEX_AUTH_FILENAME = "auth.json"
CODEX_CONFIG_FILENAME = "config.toml"

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def _decode_wsl_output(raw: bytes) -> str:
    # wsl.exe writes UTF-16LE when listing distributions.
    if b"\x00" in raw:
        return raw.decode("utf-16-le", errors="replace").lstrip("\ufeff")
    return raw.decode("utf-8", errors="replace")


def _run_wsl(args: Sequence[str]) -> str:
    """Run ``wsl.exe`` with ``args`` and return its decoded stdout."""
    command = [WSL_EXECUTABLE, *args]
    try:
        result = subprocess.run(command, capture_output=True, check=False)
    except (OSError, subprocess.SubprocessError) as exc:
        raise ExternalToolError(f"Failed to run {WSL_EXECUTABLE}: {exc}") from exc
    if result.returncode != 0:
        stderr = _decode_wsl_output(result.stderr or b"").strip()
        logger.warning(
            "[environment] wsl.exe exited with non-zero status",
            extra={"wsl_args": list(args), "exit_code": result.returncode, "stderr": stderr},
        )
        raise ExternalToolError(
            f"{WSL_EXECUTABLE} exited with status {result.returncode}"
            + (f": {stderr}" if stderr else ""),
            exit_code=result.returncode,
        )
    return _decode_wsl_output(result.stdout or b"")


def list_wsl_distros() -> List[str]:
    """Installed WSL distributions; empty on hosts without WSL."""
    if not supports_wsl():
        return []
    output = _run_wsl(["-l", "-q"])
    return [line.strip() for line in output.splitlines() if line.strip()]


def resolve_wsl_home(distro: str) -> str:
    """Return the Linux ``$HOME`` of ``distro``."""
    if not supports_wsl():
        raise ExternalToolError("WSL is not supported on this platform")
    output = _run_wsl(["-d", distro, "sh", "-lc", 'printf %s "$HOME"'])
    home = output.strip()
    if not home:
        raise ExternalToolError(f"WSL distribution {distro!r} reported an empty home directory")
    return home


def to_unc_path(distro: str, linux_path: str) -> str:
    r"""Translate ``/home/user`` into ``\\wsl$\<distro>\home\user``."""
    trimmed = linux_path.lstrip("/")
    return "\\\\wsl$\\" + distro + "\\" + trimmed.replace("/", "\\")


def sanitize_provider_name(name: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("-", name).lower()


class EnvironmentResolver:
    """Maps settings onto concrete paths for each managed application.

    Nothing is cached: every path is recomputed from the current state of the
    filesystem so fallbacks such as the legacy ``claude.json`` name are
    decided at read time.
    """

    def __init__(self, settings: AppSettings, home_override: Optional[Path] = None) -> None:
        self.settings = settings
        self._home_override = home_override

    def home_dir(self) -> Path:
        if self._home_override is not None:
            return self._home_override
        if self.settings.target_env == TargetEnv.WSL:
            distro = self.settings.wsl_distro
            if not distro:
                raise MissingDistroConfig("WSL target selected but no distribution is configured")
            linux_home = resolve_wsl_home(distro)
            unc = to_unc_path(distro, linux_home)
            logger.debug(
                "[environment] Resolved WSL home",
                extra={"distro": distro, "linux_home": linux_home, "path": unc},
            )
            return Path(unc)
        try:
            return Path.home()
        except RuntimeError as exc:
            raise ConfigIOError(f"Unable to determine the user home directory: {exc}") from exc

    def claude_dir(self) -> Path:
        return self.home_dir() / CLAUDE_DIRNAME

    def claude_settings_path(self) -> Path:
        directory = self.claude_dir()
        settings_path = directory / CLAUDE_SETTINGS_FILENAME
        if settings_path.exists():
            return settings_path
        legacy = directory / CLAUDE_LEGACY_SETTINGS_FILENAME
        if legacy.exists():
            return legacy
        return settings_path

    def codex_dir(self) -> Path:
        return self.home_dir() / CODEX_DIRNAME

    def codex_auth_path(self) -> Path:
        return self.codex_dir() / CODEX_AUTH_FILENAME

    def codex_config_path(self) -> Path:
        return self.codex_dir() / CODEX_CONFIG_FILENAME

    def config_dir(self, app: AppType) -> Path:
        if app is AppType.CLAUDE:
            return self.claude_dir()
        return self.codex_dir()

    def live_paths(self, app: AppType) -> List[Path]:
        """Live files of ``app``; for codex the auth file comes first."""
        if app is AppType.CLAUDE:
            return [self.claude_settings_path()]
        directory = self.codex_dir()
        return [directory / CODEX_AUTH_FILENAME, directory / CODEX_CONFIG_FILENAME]

    def legacy_provider_paths(self, app: AppType, provider_id: str, name: str) -> List[Path]:
        """Per-provider copies written by releases before the single live file."""
        bases: List[str] = []
        for base in (sanitize_provider_name(name), provider_id):
            if base and base not in bases:
                bases.append(base)
        directory = self.config_dir(app)
        paths: List[Path] = []
        for base in bases:
            if app is AppType.CLAUDE:
                paths.append(directory / f"settings-{base}.json")
            else:
                paths.append(directory / f"auth-{base}.json")
                paths.append(directory / f"config-{base}.toml")
        return paths
