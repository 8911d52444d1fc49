from __future__ import annotations

from collections import namedtuple
from pathlib import Path

import pytest

from psd_setup import preflight
from psd_setup.preflight import (
    PreconditionError,
    check_preconditions,
    install_daemon,
    tmp_is_tmpfs,
)

Partition = namedtuple("Partition", "device mountpoint fstype opts")


def test_check_preconditions_passes_when_tools_exist() -> None:
    check_preconditions(
        [("yay", "hint"), ("systemctl", "hint")], which=lambda cmd: f"/usr/bin/{cmd}"
    )


def test_check_preconditions_names_missing_tool() -> None:
    with pytest.raises(PreconditionError, match="'paru' not found. Install it first"):
        check_preconditions(
            [("systemctl", "unused"), ("paru", "Install it first.")],
            which=lambda cmd: None if cmd == "paru" else f"/usr/bin/{cmd}",
        )


@pytest.mark.parametrize(
    ("partitions", "expected"),
    [
        ([Partition("tmpfs", "/tmp", "tmpfs", "rw")], True),
        ([Partition("/dev/sda1", "/", "ext4", "rw")], False),
        ([Partition("/dev/sda2", "/tmp", "ext4", "rw")], False),
    ],
)
def test_tmp_is_tmpfs_reads_mount_table(
    monkeypatch: pytest.MonkeyPatch, partitions: list, expected: bool
) -> None:
    monkeypatch.setattr(preflight.psutil, "disk_partitions", lambda all: partitions)

    assert tmp_is_tmpfs(Path("/tmp")) is expected


def test_install_daemon_requests_psd_package() -> None:
    class FakeInstaller:
        name = "yay"

        def __init__(self) -> None:
            self.packages: list[str] = []

        def install(self, package: str) -> None:
            self.packages.append(package)

    installer = FakeInstaller()

    install_daemon(installer)

    assert installer.packages == ["profile-sync-daemon"]
