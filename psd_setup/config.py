from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

DEFAULT_AUR_HELPER = "yay"
DEFAULT_PRIVILEGE_TOOL = "sudo"
DAEMON_PACKAGE = "profile-sync-daemon"
DAEMON_SERVICE = "psd.service"
RESYNC_TIMER = "psd-resync.timer"

DETECTION_DIR = Path("/usr/share/psd/browsers")
SUDOERS_FILE = Path("/etc/sudoers.d/90-psd-overlay")
OVERLAY_HELPER = Path("/usr/bin/psd-overlay-helper")
OVERLAY_MODULE = "overlay"
KERNEL_MODULE_ROOT = Path("/sys/module")

BACKUP_LIMIT = 5
FAST_SYNC_MINUTES = 10
KILL_GRACE_SECONDS = 3.0
LAUNCH_GRACE_SECONDS = 5.0
JOURNAL_LINES = 50


@dataclass(frozen=True)
class SetupCLIArgs:
    """Typed representation of CLI arguments used to drive a setup run."""

    aur_helper: str = DEFAULT_AUR_HELPER
    privilege_tool: str = DEFAULT_PRIVILEGE_TOOL
    use_overlay: bool = True
    use_backups: bool = True
    fast_sync: bool = False
    browsers: str | None = None
    assume_yes: bool = False
    verbose: bool = False

    @property
    def sync_interval_minutes(self) -> int | None:
        return FAST_SYNC_MINUTES if self.fast_sync else None


@dataclass(frozen=True)
class SetupPaths:
    """Filesystem locations owned by the invoking user."""

    home: Path
    config_home: Path

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "SetupPaths":
        env = os.environ if env is None else env
        home = Path(env.get("HOME") or Path.home()).expanduser()
        xdg = env.get("XDG_CONFIG_HOME")
        # Relative XDG values are invalid per the basedir spec; ignore them.
        if xdg and Path(xdg).is_absolute():
            config_home = Path(xdg)
        else:
            config_home = home / ".config"
        return cls(home=home, config_home=config_home)

    @property
    def psd_conf(self) -> Path:
        return self.config_home / "psd" / "psd.conf"

    @property
    def timer_override(self) -> Path:
        return (
            self.config_home
            / "systemd"
            / "user"
            / f"{RESYNC_TIMER}.d"
            / "faster.conf"
        )

    def profile_dir(self, profile_subpath: str) -> Path:
        return self.config_home / profile_subpath
