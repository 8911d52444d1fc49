from __future__ import annotations

import logging

import pytest

from psd_setup.registry import (
    KNOWN_BROWSERS,
    BrowserRegistry,
    SelectionError,
    normalize_selection,
)
from psd_setup.types import BrowserEntry


def test_lookup_known_browser_returns_explicit_entry() -> None:
    registry = BrowserRegistry()

    entry = registry.lookup("Brave ")

    assert entry == BrowserEntry(
        identifier="brave",
        profile_subpath="BraveSoftware/Brave-Browser",
        process_name="brave",
    )


def test_lookup_tor_browser_uses_firefox_process() -> None:
    entry = BrowserRegistry().lookup("tor-browser")

    assert entry.profile_subpath == "tor-browser/Browser"
    assert entry.process_name == "firefox"


def test_lookup_unknown_browser_falls_back_with_warning(
    caplog: pytest.LogCaptureFixture,
) -> None:
    registry = BrowserRegistry()

    with caplog.at_level(logging.WARNING, logger="PsdSetup.Registry"):
        entry = registry.lookup("Thorium")

    assert entry == BrowserEntry("thorium", "thorium", "thorium")
    assert "generic detection for 'thorium'" in caplog.text


def test_lookup_known_browser_emits_no_advisory(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="PsdSetup.Registry"):
        BrowserRegistry().lookup("firefox")

    assert caplog.records == []


def test_fallback_never_replaces_explicit_entries() -> None:
    registry = BrowserRegistry()

    # Names that textually overlap explicit entries still get their own entry.
    for name in ("bravesoftware", "brave-browser", "mozilla", "firefox-esr"):
        fallback = registry.lookup(name)
        assert fallback.profile_subpath == name
        assert fallback.process_name == name
        assert name not in KNOWN_BROWSERS

    assert registry.lookup("brave") == KNOWN_BROWSERS["brave"]
    assert registry.lookup("firefox") == KNOWN_BROWSERS["firefox"]


def test_normalize_selection_deduplicates_case_and_separators() -> None:
    assert normalize_selection("Brave, brave BRAVE") == ["brave"]


def test_normalize_selection_keeps_first_seen_order() -> None:
    assert normalize_selection("firefox,\tbrave  chromium, FIREFOX") == [
        "firefox",
        "brave",
        "chromium",
    ]


@pytest.mark.parametrize("raw", ["", "   ", " , ,, "])
def test_normalize_selection_rejects_empty_input(raw: str) -> None:
    with pytest.raises(SelectionError):
        normalize_selection(raw)


@pytest.mark.parametrize("raw", ["../etc", "brave/../../x", ".hidden", "a\\b"])
def test_normalize_selection_rejects_path_like_tokens(raw: str) -> None:
    with pytest.raises(SelectionError):
        normalize_selection(raw)


def test_select_builds_identifier_keyed_mapping() -> None:
    registry = BrowserRegistry()

    selection = registry.select(["tor-browser", "firefox", "zen", "zen-browser"])

    assert list(selection) == ["tor-browser", "firefox", "zen", "zen-browser"]
    assert selection["tor-browser"].profile_subpath == "tor-browser/Browser"
    assert selection["firefox"].profile_subpath == "mozilla/firefox"
    assert selection["zen-browser"].process_name == "zen"


@pytest.mark.parametrize(
    "raw",
    ['evil"$(id)"', "brave;reboot", "x`id`", "brave$HOME", "a'b", "a*"],
)
def test_normalize_selection_rejects_shell_metacharacters(raw: str) -> None:
    with pytest.raises(SelectionError):
        normalize_selection(raw)


def test_normalize_selection_accepts_plain_package_style_names() -> None:
    assert normalize_selection("google-chrome, firefox-developer-edition chromium.beta") == [
        "google-chrome",
        "firefox-developer-edition",
        "chromium.beta",
    ]
