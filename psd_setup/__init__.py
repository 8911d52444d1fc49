"""
Setup orchestration for profile-sync-daemon (psd).

This package maps browser names to psd detection data, writes the user's
psd.conf, prepares overlayfs mode, and brings the psd user service up with
verification and diagnostics at each step.
"""

from __future__ import annotations

__all__ = [
    "config",
    "conflicts",
    "detection",
    "launcher",
    "main",
    "materializer",
    "preflight",
    "privilege",
    "profiles",
    "prompts",
    "registry",
    "service",
    "system",
    "types",
]
