from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

_YES = {"y", "yes"}


@runtime_checkable
class Prompter(Protocol):
    def ask(self, question: str) -> str: ...

    def confirm(self, question: str) -> bool: ...


class ConsolePrompter:
    """Reads answers from the terminal; anything but y/yes means no."""

    def __init__(self, input_fn: Callable[[str], str] = input) -> None:
        self._input = input_fn

    def ask(self, question: str) -> str:
        try:
            return self._input(question)
        except EOFError:
            return ""

    def confirm(self, question: str) -> bool:
        return self.ask(f"{question} [y/N]: ").strip().lower() in _YES


class AssumeYesPrompter:
    """Answers every confirmation with yes; free-text questions still go to the console."""

    def __init__(self, fallback: Prompter) -> None:
        self._fallback = fallback

    def ask(self, question: str) -> str:
        return self._fallback.ask(question)

    def confirm(self, question: str) -> bool:
        return True
