from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Callable, Optional

from .types import BrowserEntry

LOGGER = logging.getLogger("PsdSetup.Launcher")

LaunchBrowserFunc = Callable[[BrowserEntry], Optional[subprocess.Popen]]


def launch_browser(entry: BrowserEntry) -> subprocess.Popen | None:
    """Start the browser detached so it can create its profile directory.

    Returns ``None`` when the browser command is not installed.
    """

    executable = shutil.which(entry.process_name)
    if executable is None:
        LOGGER.error(
            "Command '%s' not found; install '%s' first?",
            entry.process_name,
            entry.identifier,
        )
        return None

    process = subprocess.Popen(
        [executable],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
    LOGGER.info(
        "Launched '%s' (PID=%s); close it once the profile has been created.",
        entry.identifier,
        process.pid,
    )
    return process
