from __future__ import annotations

import logging
from pathlib import Path

from .config import OVERLAY_HELPER, OVERLAY_MODULE, SUDOERS_FILE
from .system import CommandError, FileSink, KernelModules, PrivilegeTool
from .types import EnableResult, EnsureOutcome

LOGGER = logging.getLogger("PsdSetup.Privilege")

SUDOERS_FILE_MODE = 0o440


def render_sudoers_rule(user: str, helper: Path = OVERLAY_HELPER) -> str:
    return f"{user} ALL=(ALL) NOPASSWD: {helper}\n"


class FeatureEnabler:
    """Prepares overlay mode: a passwordless helper rule and the overlay module."""

    def __init__(
        self,
        *,
        user: str,
        privilege: PrivilegeTool,
        sink: FileSink,
        modules: KernelModules,
        sudoers_file: Path = SUDOERS_FILE,
        helper: Path = OVERLAY_HELPER,
        module: str = OVERLAY_MODULE,
    ) -> None:
        self._user = user
        self._privilege = privilege
        self._sink = sink
        self._modules = modules
        self._sudoers_file = sudoers_file
        self._helper = helper
        self._module = module

    def enable(self, use_overlay: bool) -> EnableResult:
        if not use_overlay:
            LOGGER.info("Overlayfs disabled; skipping sudo rule and kernel module.")
            return EnableResult()

        reasons: list[str] = []
        self.ensure_rule()
        if not self.smoke_test():
            reasons.append(
                f"'{self._privilege.tool} {self._helper}' still prompts or fails; "
                "log out and back in so the sudoers rule applies."
            )
        if not self.ensure_module():
            reasons.append(
                f"Kernel module '{self._module}' is not loaded; overlayfs mode may not work."
            )
        return EnableResult(reasons=reasons)

    def ensure_rule(self) -> EnsureOutcome:
        if self._sink.exists(self._sudoers_file):
            LOGGER.info("Sudoers file %s already exists; skipping.", self._sudoers_file)
            return EnsureOutcome.ALREADY_PRESENT

        rule = render_sudoers_rule(self._user, self._helper)
        try:
            self._privilege.run(["visudo", "-c", "-q", "-f", "-"], input=rule)
        except CommandError as exc:
            raise CommandError(
                exc.cmd,
                f"visudo rejected the generated rule for {self._sudoers_file}: {exc}",
                returncode=exc.returncode,
            ) from exc

        LOGGER.info("Creating sudoers entry %s for user '%s'.", self._sudoers_file, self._user)
        self._sink.write(self._sudoers_file, rule, SUDOERS_FILE_MODE)
        return EnsureOutcome.CREATED

    def smoke_test(self) -> bool:
        result = self._privilege.run(
            [str(self._helper), "--help"], check=False, non_interactive=True
        )
        if result.returncode != 0:
            LOGGER.warning(
                "%s test of %s failed; a logout/reboot may be needed for the sudoers rule.",
                self._privilege.tool,
                self._helper,
            )
            return False
        return True

    def ensure_module(self) -> bool:
        if self._modules.is_loaded(self._module):
            LOGGER.debug("Kernel module '%s' already loaded.", self._module)
            return True
        LOGGER.info("Loading kernel module '%s'.", self._module)
        if self._modules.load(self._module):
            return True
        LOGGER.warning(
            "Failed to load kernel module '%s'; overlayfs may not function "
            "(check kernel parameters).",
            self._module,
        )
        return False
