from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, Iterable, Optional

import psutil

from .config import DAEMON_PACKAGE
from .system import PackageInstaller
from .types import SetupError

LOGGER = logging.getLogger("PsdSetup.Preflight")

WhichFunc = Callable[[str], Optional[str]]


class PreconditionError(SetupError):
    """Raised when a required external tool is missing."""


def check_preconditions(
    tools: Iterable[tuple[str, str]], *, which: WhichFunc = shutil.which
) -> None:
    """Fail before any mutation when a required command is not on PATH.

    ``tools`` pairs each command with the hint shown when it is missing.
    """

    for command, hint in tools:
        if which(command) is None:
            raise PreconditionError(f"'{command}' not found. {hint}")


def tmp_is_tmpfs(mountpoint: Path = Path("/tmp")) -> bool:
    target = str(mountpoint)
    for partition in psutil.disk_partitions(all=True):
        if partition.mountpoint == target:
            return partition.fstype == "tmpfs"
    return False


def warn_if_tmp_not_tmpfs(mountpoint: Path = Path("/tmp")) -> bool:
    if tmp_is_tmpfs(mountpoint):
        return True
    LOGGER.warning(
        "%s is not tmpfs; psd may not work optimally (it needs a RAM disk).",
        mountpoint,
    )
    return False


def install_daemon(installer: PackageInstaller, package: str = DAEMON_PACKAGE) -> None:
    LOGGER.info("Installing %s with %s (if not already installed).", package, installer.name)
    installer.install(package)
