from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple


class SetupError(RuntimeError):
    """Base class for failures that abort a setup run."""


@dataclass(frozen=True)
class BrowserEntry:
    """Filesystem and process metadata psd needs for one browser."""

    identifier: str
    profile_subpath: str
    process_name: str


# Ordered identifier -> entry mapping carried through every stage.
Selection = Dict[str, BrowserEntry]


class EnsureOutcome(str, Enum):
    CREATED = "created"
    ALREADY_PRESENT = "already-present"


class ServiceState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    FAILED = "failed"

    @classmethod
    def parse(cls, value: str) -> "ServiceState":
        token = value.strip().splitlines()[0] if value.strip() else ""
        if token == cls.ACTIVE.value:
            return cls.ACTIVE
        if token == cls.FAILED.value:
            return cls.FAILED
        return cls.INACTIVE


@dataclass(frozen=True)
class EnableResult:
    """Outcome of preparing overlay mode."""

    reasons: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.reasons


@dataclass(frozen=True)
class ResolvedSet:
    """Running browser processes found before the daemon starts."""

    running: Tuple[str, ...] = ()
    terminated: bool = False

    @property
    def conflicts(self) -> bool:
        return bool(self.running)


@dataclass(frozen=True)
class ServiceDiagnostics:
    """Verbatim status and journal output captured after a failed start."""

    status: str
    journal: str
