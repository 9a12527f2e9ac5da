"""Presentation interface consumed by the orchestrator, hotspot manager and menu."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class Prompter(Protocol):
    def confirm(self, message: str) -> bool:
        """Ask a yes/no question; dismissal counts as "no"."""

    def ask_secret(self, ssid: str, attempt: int, max_attempts: int) -> str | None:
        """Read a secret without echoing it. None when dismissed."""

    def ask_text(self, prompt: str) -> str | None: ...

    def choose(
        self,
        rows: Sequence[str],
        prompt: str,
        *,
        message: str | None = None,
        selected: int | None = None,
        lines: int | None = None,
    ) -> str | None: ...

    def show_text(self, title: str, body: str) -> None: ...
