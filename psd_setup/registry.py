from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Iterable, Mapping

from .types import BrowserEntry, Selection, SetupError

LOGGER = logging.getLogger("PsdSetup.Registry")

_SPLIT_RE = re.compile(r"[,\s]+")
_IDENTIFIER_RE = re.compile(r"^[a-z0-9][a-z0-9._+-]*$")


class SelectionError(SetupError):
    """Raised when the requested browser list is empty or malformed."""


def _entry(identifier: str, profile_subpath: str, process_name: str) -> BrowserEntry:
    return BrowserEntry(
        identifier=identifier,
        profile_subpath=profile_subpath,
        process_name=process_name,
    )


KNOWN_BROWSERS: Mapping[str, BrowserEntry] = MappingProxyType(
    {
        entry.identifier: entry
        for entry in (
            _entry("brave", "BraveSoftware/Brave-Browser", "brave"),
            _entry("librewolf", "librewolf", "librewolf"),
            _entry("mullvad-browser", "mullvad-browser", "mullvad-browser"),
            # Tor Browser is Firefox ESR underneath.
            _entry("tor-browser", "tor-browser/Browser", "firefox"),
            _entry("ungoogled-chromium", "ungoogled-chromium", "ungoogled-chromium"),
            _entry("floorp", "floorp", "floorp"),
            _entry("zen-browser", "zen", "zen"),
            _entry("zen", "zen", "zen"),
            _entry("waterfox", "waterfox", "waterfox"),
            _entry("palemoon", "moonchild productions/pale moon", "palemoon"),
            _entry("seamonkey", "mozilla/seamonkey", "seamonkey"),
            # Shipped with psd already; listed for profile and process checks.
            _entry("chromium", "chromium", "chromium"),
            _entry("firefox", "mozilla/firefox", "firefox"),
            _entry("vivaldi", "vivaldi", "vivaldi"),
            _entry("opera", "opera", "opera"),
        )
    }
)


def normalize_selection(raw: str | Iterable[str]) -> list[str]:
    """Split, lowercase and de-duplicate a free-text browser list.

    Commas and any whitespace separate names. The first occurrence of a name
    fixes its position. Raises ``SelectionError`` for an empty result or for a
    token outside lowercase letters, digits and ``._+-`` (or starting with
    punctuation), since names become file names and shell words.
    """

    if isinstance(raw, str):
        tokens = _SPLIT_RE.split(raw)
    else:
        tokens = [part for item in raw for part in _SPLIT_RE.split(item)]

    identifiers: list[str] = []
    for token in tokens:
        identifier = token.strip().lower()
        if not identifier or identifier in identifiers:
            continue
        if not _IDENTIFIER_RE.match(identifier):
            raise SelectionError(f"Invalid browser name '{token.strip()}'.")
        identifiers.append(identifier)

    if not identifiers:
        raise SelectionError("No browsers specified.")
    return identifiers


class BrowserRegistry:
    """Maps browser identifiers to profile subpaths and process names."""

    def __init__(self, entries: Mapping[str, BrowserEntry] = KNOWN_BROWSERS) -> None:
        self._entries = dict(entries)

    def lookup(self, identifier: str) -> BrowserEntry:
        key = identifier.strip().lower()
        entry = self._entries.get(key)
        if entry is not None:
            return entry

        LOGGER.warning(
            "Using generic detection for '%s'; verify the profile lives at ~/.config/%s "
            "and the process is named '%s'.",
            key,
            key,
            key,
        )
        return _entry(key, key, key)

    def select(self, identifiers: Iterable[str]) -> Selection:
        selection: Selection = {}
        for identifier in identifiers:
            entry = self.lookup(identifier)
            selection.setdefault(entry.identifier, entry)
        return selection
