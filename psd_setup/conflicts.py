from __future__ import annotations

import logging

from .config import KILL_GRACE_SECONDS
from .prompts import Prompter
from .system import ProcessTable
from .types import ResolvedSet, Selection

LOGGER = logging.getLogger("PsdSetup.Conflicts")


class ConflictResolver:
    """Finds running browsers that would hold locks on their profiles."""

    def __init__(
        self,
        processes: ProcessTable,
        prompter: Prompter,
        *,
        grace_seconds: float = KILL_GRACE_SECONDS,
    ) -> None:
        self._processes = processes
        self._prompter = prompter
        self._grace_seconds = grace_seconds

    def running(self, selection: Selection) -> tuple[str, ...]:
        """Distinct process names currently running, in selection order."""

        names: list[str] = []
        for identifier, entry in selection.items():
            if entry.process_name in names:
                continue
            if self._processes.is_running(entry.process_name):
                LOGGER.warning(
                    "'%s' (%s) is running.", identifier, entry.process_name
                )
                names.append(entry.process_name)
        return tuple(names)

    def resolve(self, selection: Selection, interactive: bool = True) -> ResolvedSet:
        running = self.running(selection)
        if not running:
            return ResolvedSet()

        if not interactive or not self._prompter.confirm(
            "Kill running browser process(es) for clean setup? (recommended)"
        ):
            LOGGER.warning(
                "Proceeding without killing %s; profile locks may make psd fail. "
                "Close the browser(s) manually if errors occur.",
                ", ".join(running),
            )
            return ResolvedSet(running=running, terminated=False)

        for name in running:
            survivors = self._processes.terminate(name, self._grace_seconds)
            if survivors:
                LOGGER.warning(
                    "%s '%s' process(es) still running after %.1fs.",
                    survivors,
                    name,
                    self._grace_seconds,
                )
            else:
                LOGGER.info("Terminated '%s' processes.", name)
        return ResolvedSet(running=running, terminated=True)
