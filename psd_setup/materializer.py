from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import BACKUP_LIMIT
from .types import Selection

LOGGER = logging.getLogger("PsdSetup.Config")

_ASSIGNMENT_RE = re.compile(r"^(?P<key>[A-Z_]+)=(?P<value>.*)$")
_HEADER = "# Managed by psd-setup; rewritten on every run.\n"


class RuntimeConfig(BaseModel):
    """The psd.conf settings produced by one setup run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    browsers: list[str] = Field(min_length=1)
    use_overlay: bool = True
    use_backups: bool = True
    backup_limit: int = Field(default=BACKUP_LIMIT, ge=1)
    sync_interval_minutes: int | None = Field(default=None, gt=0)

    @field_validator("browsers")
    @classmethod
    def _unique_browsers(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError("browsers must not contain duplicates")
        return value


def _flag(value: bool) -> str:
    return "yes" if value else "no"


def render_runtime_config(config: RuntimeConfig) -> str:
    browsers = " ".join(shlex.quote(name) for name in config.browsers)
    lines = [
        _HEADER,
        "# Managed browsers",
        f"BROWSERS=({browsers})",
        "",
        "# yes = overlayfs (faster, less RAM; needs the overlay module and sudo helper)",
        f'USE_OVERLAYFS="{_flag(config.use_overlay)}"',
        "# yes = keep crash-recovery snapshots",
        f'USE_BACKUPS="{_flag(config.use_backups)}"',
        f"BACKUP_LIMIT={config.backup_limit}",
    ]
    if config.sync_interval_minutes is not None:
        lines.extend(
            [
                "",
                "# Resync interval in minutes",
                f"SYNC_INTERVAL={config.sync_interval_minutes}",
            ]
        )
    return "\n".join(lines) + "\n"


def parse_runtime_config(text: str) -> RuntimeConfig:
    """Read back a psd.conf produced by ``render_runtime_config``."""

    values: dict[str, object] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        match = _ASSIGNMENT_RE.match(line)
        if not match:
            continue
        key, value = match.group("key"), match.group("value")
        if key == "BROWSERS":
            values["browsers"] = shlex.split(value.strip().lstrip("(").rstrip(")"))
            continue
        tokens = shlex.split(value, comments=True)
        scalar = tokens[0] if tokens else ""
        if key == "USE_OVERLAYFS":
            values["use_overlay"] = scalar == "yes"
        elif key == "USE_BACKUPS":
            values["use_backups"] = scalar == "yes"
        elif key == "BACKUP_LIMIT":
            values["backup_limit"] = int(scalar)
        elif key == "SYNC_INTERVAL" and scalar:
            values["sync_interval_minutes"] = int(scalar)
    return RuntimeConfig.model_validate(values)


class ConfigMaterializer:
    """Writes the user's psd.conf, replacing whatever was there before."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def write(
        self,
        selection: Selection,
        *,
        use_overlay: bool,
        use_backups: bool,
        sync_interval_minutes: int | None = None,
    ) -> RuntimeConfig:
        config = RuntimeConfig(
            browsers=list(selection),
            use_overlay=use_overlay,
            use_backups=use_backups,
            backup_limit=BACKUP_LIMIT,
            sync_interval_minutes=sync_interval_minutes,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(render_runtime_config(config), encoding="utf-8")
        LOGGER.info(
            "Wrote %s: browsers=%s overlayfs=%s backups=%s sync_interval=%s",
            self.path,
            config.browsers,
            _flag(config.use_overlay),
            _flag(config.use_backups),
            config.sync_interval_minutes or "default (60 min)",
        )
        return config
