"""rofi-based prompts."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence

from wifimenu.core.config import RofiSettings
from wifimenu.core.errors import WifiMenuError

YES = "Yes"
NO = "No"


class RofiPrompter:
    def __init__(self, settings: RofiSettings | None = None) -> None:
        self.settings = settings or RofiSettings()

    def _dmenu(self, rows: Sequence[str], prompt: str, extra: Sequence[str] = ()) -> str | None:
        args = [
            "rofi",
            "-dmenu",
            "-i",
            "-p",
            prompt,
            "-font",
            self.settings.font,
            "-location",
            str(self.settings.location),
            "-xoffset",
            str(self.settings.x_offset),
            "-yoffset",
            str(self.settings.y_offset),
            *extra,
        ]
        try:
            result = subprocess.run(
                args,
                input="\n".join(rows),
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise WifiMenuError("The menu requires 'rofi'. Install it and retry.") from exc
        # rofi exits non-zero when dismissed with Escape.
        if result.returncode != 0:
            return None
        choice = result.stdout.strip()
        return choice or None

    def choose(
        self,
        rows: Sequence[str],
        prompt: str,
        *,
        message: str | None = None,
        selected: int | None = None,
        lines: int | None = None,
    ) -> str | None:
        extra: list[str] = ["-l", str(lines or min(len(rows), self.settings.max_lines) or 1)]
        if message:
            extra.extend(["-mesg", message])
        if selected is not None:
            extra.extend(["-selected-row", str(selected)])
        return self._dmenu(rows, prompt, extra)

    def confirm(self, message: str) -> bool:
        return self._dmenu([YES, NO], "Confirm", ["-mesg", message, "-l", "2"]) == YES

    def ask_secret(self, ssid: str, attempt: int, max_attempts: int) -> str | None:
        hint = f" ({attempt}/{max_attempts})" if max_attempts > 1 else ""
        return self._dmenu([], f"Password for {ssid}{hint}", ["-password", "-l", "0"])

    def ask_text(self, prompt: str) -> str | None:
        return self._dmenu([], prompt, ["-l", "0"])

    def show_text(self, title: str, body: str) -> None:
        self._dmenu([], title, ["-mesg", body, "-l", "0"])
