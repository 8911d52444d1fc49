from __future__ import annotations

"""
Capability wrappers around the external tools a setup run drives.

Every stage receives these objects instead of calling ``subprocess`` or
``psutil`` directly, so ordering logic can be exercised with fakes. Each
capability has a ``Protocol`` describing the narrow surface the stages use and
one concrete implementation backed by the real system:

    CommandRunner        subprocess.run with uniform error wrapping
    PrivilegeTool        sudo (or a compatible tool) in front of a command
    FileSink             plain or privileged file creation
    ServiceManager       systemctl/journalctl --user
    KernelModules        /sys/module probing plus modprobe
    ProcessTable         psutil process lookup and SIGTERM
    PackageInstaller     AUR helper invocation
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Mapping, Protocol, Sequence, runtime_checkable

import psutil

from .config import DEFAULT_PRIVILEGE_TOOL, KERNEL_MODULE_ROOT
from .types import ServiceState, SetupError

LOGGER = logging.getLogger("PsdSetup.System")


class CommandError(SetupError):
    """Raised when an external command cannot be run or exits non-zero."""

    def __init__(self, cmd: Sequence[str], message: str, *, returncode: int | None = None):
        super().__init__(message)
        self.cmd = list(cmd)
        self.returncode = returncode


class CommandRunner:
    """Run external commands, raising ``CommandError`` on failure when asked."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = dict(env) if env is not None else None

    def run(
        self,
        cmd: Sequence[str],
        *,
        check: bool = True,
        input: str | None = None,
        capture: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        pretty = " ".join(str(part) for part in cmd)
        LOGGER.debug("Running: %s", pretty)
        try:
            result = subprocess.run(
                [str(part) for part in cmd],
                input=input,
                capture_output=capture,
                text=True,
                env=self._env,
            )
        except FileNotFoundError as exc:
            raise CommandError(cmd, f"Command not found: {cmd[0]}") from exc

        if result.returncode != 0:
            detail = (result.stderr or "").strip() if capture else ""
            if check:
                suffix = f": {detail}" if detail else ""
                raise CommandError(
                    cmd,
                    f"'{pretty}' exited with code {result.returncode}{suffix}",
                    returncode=result.returncode,
                )
            LOGGER.debug("'%s' exited with code %s.", pretty, result.returncode)
        return result


class PrivilegeTool:
    """Prefix commands with a privilege-escalation tool such as sudo."""

    def __init__(self, runner: CommandRunner, tool: str = DEFAULT_PRIVILEGE_TOOL) -> None:
        self._runner = runner
        self.tool = tool

    def run(
        self,
        cmd: Sequence[str],
        *,
        check: bool = True,
        input: str | None = None,
        non_interactive: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        prefix = [self.tool, "-n"] if non_interactive else [self.tool]
        return self._runner.run([*prefix, *cmd], check=check, input=input)


@runtime_checkable
class FileSink(Protocol):
    """Creates small configuration files at fixed locations."""

    def exists(self, path: Path) -> bool: ...

    def write(self, path: Path, content: str, mode: int) -> None: ...


class DirectFileSink:
    """Writes files the invoking user owns."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def write(self, path: Path, content: str, mode: int) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        path.chmod(mode)


class PrivilegedFileSink:
    """Writes root-owned files through the privilege tool."""

    def __init__(self, privilege: PrivilegeTool) -> None:
        self._privilege = privilege

    def exists(self, path: Path) -> bool:
        # Directories such as /etc/sudoers.d are not searchable by the user.
        result = self._privilege.run(["test", "-e", str(path)], check=False)
        return result.returncode == 0

    def write(self, path: Path, content: str, mode: int) -> None:
        self._privilege.run(["mkdir", "-p", str(path.parent)])
        # install creates the file with its final mode; no window at the umask default.
        self._privilege.run(
            ["install", "-m", format(mode, "o"), "/dev/stdin", str(path)], input=content
        )


@runtime_checkable
class ServiceManager(Protocol):
    def daemon_reload(self) -> None: ...

    def state(self, unit: str) -> ServiceState: ...

    def restart(self, unit: str) -> None: ...

    def enable_now(self, unit: str) -> None: ...

    def status(self, unit: str) -> str: ...

    def journal(self, unit: str, lines: int) -> str: ...


class SystemdUserManager:
    """``systemctl --user`` wrapper for the invoking user's service manager."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def daemon_reload(self) -> None:
        self._runner.run(["systemctl", "--user", "daemon-reload"])

    def state(self, unit: str) -> ServiceState:
        result = self._runner.run(
            ["systemctl", "--user", "is-active", unit], check=False
        )
        return ServiceState.parse(result.stdout or "")

    def restart(self, unit: str) -> None:
        self._runner.run(["systemctl", "--user", "restart", unit])

    def enable_now(self, unit: str) -> None:
        self._runner.run(["systemctl", "--user", "enable", "--now", unit])

    def status(self, unit: str) -> str:
        result = self._runner.run(
            ["systemctl", "--user", "status", "--no-pager", unit], check=False
        )
        return (result.stdout or "") + (result.stderr or "")

    def journal(self, unit: str, lines: int) -> str:
        result = self._runner.run(
            ["journalctl", "--user", "-u", unit, "-n", str(lines), "--no-pager"],
            check=False,
        )
        return (result.stdout or "") + (result.stderr or "")


@runtime_checkable
class KernelModules(Protocol):
    def is_loaded(self, name: str) -> bool: ...

    def load(self, name: str) -> bool: ...


class SysfsKernelModules:
    """Checks ``/sys/module`` (covers built-in modules) and loads via modprobe."""

    def __init__(self, privilege: PrivilegeTool, root: Path = KERNEL_MODULE_ROOT) -> None:
        self._privilege = privilege
        self._root = root

    def is_loaded(self, name: str) -> bool:
        return (self._root / name).is_dir()

    def load(self, name: str) -> bool:
        result = self._privilege.run(["modprobe", name], check=False)
        return result.returncode == 0


@runtime_checkable
class ProcessTable(Protocol):
    def is_running(self, name: str) -> bool: ...

    def terminate(self, name: str, timeout: float) -> int: ...


class PsutilProcessTable:
    """Exact-name process lookup and termination backed by psutil."""

    def find(self, name: str) -> List[psutil.Process]:
        matches: List[psutil.Process] = []
        for proc in psutil.process_iter(["name"]):
            try:
                if proc.info["name"] == name:
                    matches.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return matches

    def is_running(self, name: str) -> bool:
        return bool(self.find(name))

    def terminate(self, name: str, timeout: float) -> int:
        """Send SIGTERM to every process named ``name`` and wait for exit.

        Processes that disappear before they are signalled count as
        terminated. Returns the number of processes still alive afterwards.
        """

        signalled: List[psutil.Process] = []
        for proc in self.find(name):
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                LOGGER.warning(
                    "Permission denied terminating '%s' (pid=%s).", name, proc.pid
                )
                continue
            signalled.append(proc)

        if not signalled:
            return 0
        _, alive = psutil.wait_procs(signalled, timeout=timeout)
        return len(alive)


@runtime_checkable
class PackageInstaller(Protocol):
    name: str

    def install(self, package: str) -> None: ...


class AurHelperInstaller:
    """Installs packages with an AUR helper such as yay or paru."""

    def __init__(self, runner: CommandRunner, helper: str) -> None:
        self._runner = runner
        self.name = helper

    def install(self, package: str) -> None:
        # Output goes straight to the terminal; helpers may prompt for sudo.
        self._runner.run(
            [self.name, "-S", "--needed", "--noconfirm", package], capture=False
        )
