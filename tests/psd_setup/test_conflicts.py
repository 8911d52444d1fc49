from __future__ import annotations

import logging

import pytest

from psd_setup.conflicts import ConflictResolver
from psd_setup.registry import BrowserRegistry


class FakeProcessTable:
    def __init__(self, running: set[str]) -> None:
        self.running = set(running)
        self.terminated: list[str] = []
        self.probes: list[str] = []

    def is_running(self, name: str) -> bool:
        self.probes.append(name)
        return name in self.running

    def terminate(self, name: str, timeout: float) -> int:
        self.terminated.append(name)
        # A process that exited between the check and the kill is not an error.
        self.running.discard(name)
        return 0


class StubPrompter:
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.questions: list[str] = []

    def ask(self, question: str) -> str:  # pragma: no cover - unused
        return ""

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        return self.answer


def test_shared_process_name_collapses_to_one_target() -> None:
    selection = BrowserRegistry().select(["tor-browser", "firefox", "brave"])
    processes = FakeProcessTable({"firefox", "brave"})
    prompter = StubPrompter(True)

    result = ConflictResolver(processes, prompter, grace_seconds=0).resolve(selection)

    assert result.running == ("firefox", "brave")
    assert result.terminated
    assert processes.terminated == ["firefox", "brave"]
    assert processes.probes == ["firefox", "brave"]
    assert len(prompter.questions) == 1


def test_no_conflicts_skips_prompt() -> None:
    selection = BrowserRegistry().select(["brave"])
    prompter = StubPrompter(True)

    result = ConflictResolver(FakeProcessTable(set()), prompter).resolve(selection)

    assert not result.conflicts
    assert prompter.questions == []


def test_declined_kill_continues_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    selection = BrowserRegistry().select(["vivaldi"])
    processes = FakeProcessTable({"vivaldi"})

    with caplog.at_level(logging.WARNING, logger="PsdSetup.Conflicts"):
        result = ConflictResolver(processes, StubPrompter(False)).resolve(selection)

    assert result.running == ("vivaldi",)
    assert not result.terminated
    assert processes.terminated == []
    assert "Proceeding without killing vivaldi" in caplog.text


def test_non_interactive_never_prompts_or_kills() -> None:
    selection = BrowserRegistry().select(["opera"])
    processes = FakeProcessTable({"opera"})
    prompter = StubPrompter(True)

    result = ConflictResolver(processes, prompter).resolve(selection, interactive=False)

    assert result.running == ("opera",)
    assert not result.terminated
    assert prompter.questions == []
    assert processes.terminated == []
