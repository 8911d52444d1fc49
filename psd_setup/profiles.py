from __future__ import annotations

"""
Profile directory precheck.

psd refuses to manage a browser whose profile directory does not exist yet.
Before the daemon starts, every selected browser's directory under the user's
configuration home is checked. For missing ones the user may launch the
browser so it creates a fresh profile; the check then polls for the directory
with a bounded deadline instead of sleeping blindly.
"""

import logging
import time
from pathlib import Path
from typing import Callable

from .config import LAUNCH_GRACE_SECONDS, SetupPaths
from .launcher import LaunchBrowserFunc, launch_browser
from .prompts import Prompter
from .types import Selection

LOGGER = logging.getLogger("PsdSetup.Profiles")


def wait_for_directory(
    path: Path,
    timeout: float = LAUNCH_GRACE_SECONDS,
    *,
    interval: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll until ``path`` is a directory or ``timeout`` elapses."""

    deadline = clock() + max(timeout, 0.0)
    while True:
        if path.is_dir():
            return True
        if clock() >= deadline:
            return False
        sleep(interval)


class ProfilePrecheck:
    """Offers to create missing browser profiles before psd takes them over."""

    def __init__(
        self,
        paths: SetupPaths,
        prompter: Prompter,
        *,
        launch_fn: LaunchBrowserFunc = launch_browser,
        wait_fn: Callable[[Path, float], bool] = wait_for_directory,
        grace_seconds: float = LAUNCH_GRACE_SECONDS,
    ) -> None:
        self._paths = paths
        self._prompter = prompter
        self._launch = launch_fn
        self._wait = wait_fn
        self._grace_seconds = grace_seconds

    def missing(self, selection: Selection) -> dict[str, Path]:
        result: dict[str, Path] = {}
        for identifier, entry in selection.items():
            profile_dir = self._paths.profile_dir(entry.profile_subpath)
            if not profile_dir.is_dir():
                result[identifier] = profile_dir
        return result

    def run(self, selection: Selection, interactive: bool = True) -> dict[str, bool]:
        """Return identifier -> whether its profile directory exists afterwards."""

        present = {identifier: True for identifier in selection}
        for identifier, profile_dir in self.missing(selection).items():
            LOGGER.warning("Profile for '%s' not found at %s.", identifier, profile_dir)
            present[identifier] = False
            if not interactive or not self._prompter.confirm(
                f"Launch '{identifier}' now to create its profile?"
            ):
                continue

            if self._launch(selection[identifier]) is None:
                continue
            if self._wait(profile_dir, self._grace_seconds):
                LOGGER.info("Profile for '%s' created at %s.", identifier, profile_dir)
                present[identifier] = True
            else:
                LOGGER.warning(
                    "Profile for '%s' did not appear within %.0fs; psd may skip it.",
                    identifier,
                    self._grace_seconds,
                )
        return present
