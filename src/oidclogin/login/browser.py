"""Open a URL in the user's default browser.

The command is picked from a small table keyed by :class:`Platform`. WSL is
treated like Windows so the browser opens on the Windows host rather than
inside the Linux VM; it is recognised by ``microsoft`` appearing in
``/proc/version``.
"""

from __future__ import annotations

import enum
import logging
import platform
import subprocess
from pathlib import Path

from oidclogin.exceptions import BrowserLaunchError

logger = logging.getLogger(__name__)

PROC_VERSION = Path("/proc/version")


class Platform(str, enum.Enum):
    """Host platforms with distinct "open URL" commands."""

    WINDOWS = "windows"
    WSL = "wsl"
    DARWIN = "darwin"
    UNIX = "unix"


def _windows_command(url: str) -> list[str]:
    # cmd.exe treats a bare & as a command separator
    return ["cmd.exe", "/c", "start", url.replace("&", "^&")]


_COMMANDS = {
    Platform.WINDOWS: _windows_command,
    Platform.WSL: _windows_command,
    Platform.DARWIN: lambda url: ["open", url],
    Platform.UNIX: lambda url: ["xdg-open", url],
}


def is_wsl(proc_version: Path = PROC_VERSION) -> bool:
    """Return True when running under Windows Subsystem for Linux."""
    try:
        data = proc_version.read_text(encoding="utf-8", errors="replace")
    except OSError:
        logger.debug("Unable to read %s", proc_version)
        return False
    return "microsoft" in data.lower()


def detect_platform() -> Platform:
    """Work out which :class:`Platform` the process is running on."""
    system = platform.system()
    if system == "Windows":
        return Platform.WINDOWS
    if system == "Darwin":
        return Platform.DARWIN
    if is_wsl():
        return Platform.WSL
    return Platform.UNIX


def browser_command(url: str, host: Platform) -> list[str]:
    """Return the argv that opens *url* on *host*."""
    return _COMMANDS[host](url)


def open_url(url: str) -> None:
    """Launch the default browser on *url* without waiting for it.

    Raises:
        BrowserLaunchError: If the launcher command could not be started.
    """
    argv = browser_command(url, detect_platform())
    logger.debug("Launching browser: %s", argv[0])
    try:
        subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise BrowserLaunchError(f"could not run {argv[0]}: {exc}") from exc
