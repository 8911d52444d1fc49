from __future__ import annotations

import logging
import shlex
from pathlib import Path

from .config import DETECTION_DIR, SetupPaths
from .system import FileSink
from .types import BrowserEntry, EnsureOutcome, Selection

LOGGER = logging.getLogger("PsdSetup.Detection")

DETECTION_FILE_MODE = 0o644


def render_detection_record(entry: BrowserEntry, paths: SetupPaths) -> str:
    profile_dir = paths.profile_dir(entry.profile_subpath)
    # psd sources this file as bash.
    return (
        f"DIRArr[0]={shlex.quote(str(profile_dir))}\n"
        f"PSNAME={shlex.quote(entry.process_name)}\n"
    )


class DetectionSynthesizer:
    """Creates psd detection files for browsers psd does not ship support for."""

    def __init__(
        self,
        sink: FileSink,
        paths: SetupPaths,
        *,
        detection_dir: Path = DETECTION_DIR,
    ) -> None:
        self._sink = sink
        self._paths = paths
        self._detection_dir = detection_dir

    def record_path(self, entry: BrowserEntry) -> Path:
        return self._detection_dir / entry.identifier

    def ensure(self, entry: BrowserEntry) -> EnsureOutcome:
        path = self.record_path(entry)
        if self._sink.exists(path):
            LOGGER.info(
                "Detection for '%s' already exists at %s; skipping creation.",
                entry.identifier,
                path,
            )
            return EnsureOutcome.ALREADY_PRESENT

        LOGGER.info(
            "Creating detection file for '%s' -> %s (PSNAME=%s).",
            entry.identifier,
            self._paths.profile_dir(entry.profile_subpath),
            entry.process_name,
        )
        self._sink.write(
            path, render_detection_record(entry, self._paths), DETECTION_FILE_MODE
        )
        return EnsureOutcome.CREATED

    def ensure_all(self, selection: Selection) -> dict[str, EnsureOutcome]:
        return {
            identifier: self.ensure(entry) for identifier, entry in selection.items()
        }
