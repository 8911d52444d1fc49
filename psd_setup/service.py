from __future__ import annotations

import logging
from pathlib import Path

from .config import DAEMON_SERVICE, JOURNAL_LINES, RESYNC_TIMER
from .system import CommandError, FileSink, ServiceManager
from .types import ServiceDiagnostics, ServiceState, SetupError

LOGGER = logging.getLogger("PsdSetup.Service")

TIMER_OVERRIDE_MODE = 0o644


class ServiceActivationError(SetupError):
    """Raised when the daemon unit is not active after start/restart."""

    def __init__(self, unit: str, state: ServiceState, diagnostics: ServiceDiagnostics):
        super().__init__(f"{unit} failed to start (state: {state.value}).")
        self.unit = unit
        self.state = state
        self.diagnostics = diagnostics


class ServiceLifecycle:
    """Brings the psd user unit to the active state exactly once per run."""

    def __init__(
        self,
        manager: ServiceManager,
        *,
        unit: str = DAEMON_SERVICE,
        journal_lines: int = JOURNAL_LINES,
    ) -> None:
        self._manager = manager
        self._unit = unit
        self._journal_lines = journal_lines

    def ensure_active(self) -> ServiceState:
        self._manager.daemon_reload()
        before = self._manager.state(self._unit)
        try:
            if before is ServiceState.ACTIVE:
                LOGGER.info("%s is active; restarting.", self._unit)
                self._manager.restart(self._unit)
            else:
                LOGGER.info("%s is %s; enabling and starting.", self._unit, before.value)
                self._manager.enable_now(self._unit)
        except CommandError as exc:
            # systemctl exits non-zero when the job fails; the state check below reports it.
            LOGGER.warning("Starting %s failed: %s", self._unit, exc)

        after = self._manager.state(self._unit)
        if after is not ServiceState.ACTIVE:
            raise ServiceActivationError(self._unit, after, self.diagnostics())
        LOGGER.info("%s is active.", self._unit)
        return after

    def diagnostics(self) -> ServiceDiagnostics:
        return ServiceDiagnostics(
            status=self._manager.status(self._unit),
            journal=self._manager.journal(self._unit, self._journal_lines),
        )


def render_timer_override(interval_minutes: int) -> str:
    # The empty assignment clears the unit's default before setting ours.
    return f"[Timer]\nOnUnitActiveSec=\nOnUnitActiveSec={interval_minutes}min\n"


class TimerOverride:
    """Replaces the psd resync timer cadence with a drop-in fragment."""

    def __init__(
        self,
        manager: ServiceManager,
        sink: FileSink,
        path: Path,
        *,
        timer: str = RESYNC_TIMER,
    ) -> None:
        self._manager = manager
        self._sink = sink
        self._path = path
        self._timer = timer

    def apply(self, interval_minutes: int | None) -> None:
        if interval_minutes is None:
            if self._sink.exists(self._path):
                LOGGER.info(
                    "No sync interval requested; leaving existing override %s in place.",
                    self._path,
                )
            return

        self._sink.write(
            self._path, render_timer_override(interval_minutes), TIMER_OVERRIDE_MODE
        )
        self._manager.daemon_reload()
        self._manager.restart(self._timer)
        LOGGER.info(
            "Resync timer %s now fires every %s minutes (override: %s).",
            self._timer,
            interval_minutes,
            self._path,
        )
