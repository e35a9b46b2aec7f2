"""Host detection for the WSL helpers.

``wsl.exe`` only exists on Windows hosts, so the environment layer asks this
module instead of checking ``sys.platform`` directly.
"""

import sys
from typing import Final


WINDOWS_PLATFORM: Final = "win32"


def is_windows() -> bool:
    """Check if running on Windows."""
    return sys.platform == WINDOWS_PLATFORM


def supports_wsl() -> bool:
    """Check whether the host can run WSL distributions."""
    return is_windows()
