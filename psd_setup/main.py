from __future__ import annotations

import argparse
import getpass
import logging
import os
import shutil
import sys
from dataclasses import dataclass
from typing import Sequence

from .conflicts import ConflictResolver
from .config import (
    DAEMON_SERVICE,
    DEFAULT_AUR_HELPER,
    DEFAULT_PRIVILEGE_TOOL,
    SetupCLIArgs,
    SetupPaths,
)
from .detection import DetectionSynthesizer
from .materializer import ConfigMaterializer, RuntimeConfig
from .preflight import (
    WhichFunc,
    check_preconditions,
    install_daemon,
    warn_if_tmp_not_tmpfs,
)
from .privilege import FeatureEnabler
from .profiles import ProfilePrecheck
from .prompts import AssumeYesPrompter, ConsolePrompter, Prompter
from .registry import KNOWN_BROWSERS, BrowserRegistry, normalize_selection
from .service import ServiceActivationError, ServiceLifecycle, TimerOverride
from .system import (
    AurHelperInstaller,
    CommandRunner,
    DirectFileSink,
    FileSink,
    KernelModules,
    PackageInstaller,
    PrivilegedFileSink,
    PrivilegeTool,
    ProcessTable,
    PsutilProcessTable,
    ServiceManager,
    SysfsKernelModules,
    SystemdUserManager,
)
from .types import Selection, SetupError

LOGGER = logging.getLogger("PsdSetup")

NATIVE_BROWSERS = (
    "chromium, google-chrome, firefox, firefox-developer-edition, firefox-esr, "
    "vivaldi, opera, midori, epiphany"
)
FINAL_TIPS = """Setup complete.
Final verification:
  psd preview        # lists synced browsers and their tmpfs paths
  psd status         # current status and sizes
  ls -l ~/.config/*  # profile dirs should link into /run/user/<uid>/psd/
Monitor: journalctl --user -u psd.service -f
Tips:
  - Relaunch browsers now; the first start copies data to RAM once.
  - After an unclean shutdown psd recovers from ~/.config/psd/backup-*.
  - Edit ~/.config/psd/psd.conf to tweak, then restart psd.service.
  - Uninstall: systemctl --user disable --now psd; psd clean; rm -rf ~/.config/psd"""
REMEDIATION = (
    "Common fixes: close browsers, check detection files, make sure profile "
    f"directories exist, relogin for sudoers. Retry: systemctl --user restart {DAEMON_SERVICE}"
)


def parse_args(argv: Sequence[str] | None = None) -> SetupCLIArgs:
    parser = argparse.ArgumentParser(
        prog="psd-setup",
        description=(
            "Install and configure profile-sync-daemon so the chosen browser "
            "profiles live in tmpfs."
        ),
        allow_abbrev=False,
    )
    parser.add_argument(
        "--no-overlay",
        action="store_true",
        help="Disable overlayfs (use classic copy mode).",
    )
    parser.add_argument(
        "--no-backups",
        action="store_true",
        help="Disable crash-recovery backups (less safe, saves space).",
    )
    parser.add_argument(
        "--fast-sync",
        action="store_true",
        help="Resync every 10 minutes instead of the hourly default.",
    )
    parser.add_argument(
        "--aur-helper",
        default=os.environ.get("AUR_HELPER", DEFAULT_AUR_HELPER),
        metavar="TOOL",
        help="AUR helper used to install psd. Defaults to AUR_HELPER or 'yay'.",
    )
    parser.add_argument(
        "--privilege-tool",
        default=DEFAULT_PRIVILEGE_TOOL,
        metavar="TOOL",
        help="Command used for privileged steps (default: sudo).",
    )
    parser.add_argument(
        "--browsers",
        default=None,
        metavar="LIST",
        help="Browsers to sync, comma or space separated. Prompts when omitted.",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Answer yes to every confirmation prompt.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log external commands and other debug details.",
    )

    args = parser.parse_args(argv)
    return SetupCLIArgs(
        aur_helper=args.aur_helper,
        privilege_tool=args.privilege_tool,
        use_overlay=not args.no_overlay,
        use_backups=not args.no_backups,
        fast_sync=args.fast_sync,
        browsers=args.browsers,
        assume_yes=args.yes,
        verbose=args.verbose,
    )


@dataclass
class SetupContext:
    """External capabilities a setup run drives."""

    user: str
    prompter: Prompter
    privilege: PrivilegeTool
    root_sink: FileSink
    user_sink: FileSink
    services: ServiceManager
    modules: KernelModules
    processes: ProcessTable
    installer: PackageInstaller
    which: WhichFunc = shutil.which

    @classmethod
    def from_args(cls, args: SetupCLIArgs) -> "SetupContext":
        runner = CommandRunner()
        privilege = PrivilegeTool(runner, args.privilege_tool)
        prompter: Prompter = ConsolePrompter()
        if args.assume_yes:
            prompter = AssumeYesPrompter(prompter)
        return cls(
            user=getpass.getuser(),
            prompter=prompter,
            privilege=privilege,
            root_sink=PrivilegedFileSink(privilege),
            user_sink=DirectFileSink(),
            services=SystemdUserManager(runner),
            modules=SysfsKernelModules(privilege),
            processes=PsutilProcessTable(),
            installer=AurHelperInstaller(runner, args.aur_helper),
        )


def select_browsers(
    args: SetupCLIArgs, prompter: Prompter, registry: BrowserRegistry
) -> Selection:
    raw = args.browsers
    if raw is None:
        LOGGER.info("Browsers psd supports natively: %s", NATIVE_BROWSERS)
        LOGGER.info(
            "Browsers with built-in detection data: %s",
            ", ".join(sorted(KNOWN_BROWSERS)),
        )
        raw = prompter.ask(
            "Enter browser name(s) to sync (space or comma separated, e.g. brave firefox): "
        )
    selection = registry.select(normalize_selection(raw))
    LOGGER.info("Browsers selected: %s", " ".join(selection))
    return selection


def run_setup(
    args: SetupCLIArgs,
    paths: SetupPaths,
    context: SetupContext,
    *,
    registry: BrowserRegistry | None = None,
) -> RuntimeConfig:
    """Run every setup stage in order; raises ``SetupError`` on fatal failure."""

    registry = registry or BrowserRegistry()
    selection = select_browsers(args, context.prompter, registry)
    LOGGER.info(
        "Config: overlayfs=%s backups=%s sync_interval=%s",
        "yes" if args.use_overlay else "no",
        "yes" if args.use_backups else "no",
        args.sync_interval_minutes or "default (60 min)",
    )

    check_preconditions(
        [
            (
                context.installer.name,
                "Install it first or pass --aur-helper=paru (or another helper).",
            ),
            ("systemctl", "psd-setup requires systemd user services."),
            (context.privilege.tool, "Pass --privilege-tool to use another tool."),
        ],
        which=context.which,
    )
    warn_if_tmp_not_tmpfs()
    install_daemon(context.installer)

    DetectionSynthesizer(context.root_sink, paths).ensure_all(selection)
    config = ConfigMaterializer(paths.psd_conf).write(
        selection,
        use_overlay=args.use_overlay,
        use_backups=args.use_backups,
        sync_interval_minutes=args.sync_interval_minutes,
    )

    enabled = FeatureEnabler(
        user=context.user,
        privilege=context.privilege,
        sink=context.root_sink,
        modules=context.modules,
    ).enable(args.use_overlay)
    for reason in enabled.reasons:
        LOGGER.warning("Overlay mode degraded: %s", reason)

    ProfilePrecheck(paths, context.prompter).run(selection)
    ConflictResolver(context.processes, context.prompter).resolve(selection)
    ServiceLifecycle(context.services).ensure_active()
    TimerOverride(
        context.services, context.user_sink, paths.timer_override
    ).apply(args.sync_interval_minutes)

    LOGGER.info(FINAL_TIPS)
    return config


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    paths = SetupPaths.from_env()
    context = SetupContext.from_args(args)

    try:
        run_setup(args, paths, context)
    except ServiceActivationError as exc:
        LOGGER.error("%s Diagnostics follow.", exc)
        LOGGER.error("systemctl status:\n%s", exc.diagnostics.status)
        LOGGER.error("journal:\n%s", exc.diagnostics.journal)
        LOGGER.error(REMEDIATION)
        return 1
    except SetupError as exc:
        LOGGER.error(str(exc))
        return 1
    except KeyboardInterrupt:
        LOGGER.info("Setup interrupted by user.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
