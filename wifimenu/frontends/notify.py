"""Desktop notifications with a logging fallback."""

from __future__ import annotations

import logging
import subprocess

LOGGER = logging.getLogger(__name__)
_LEVELS = {"low": logging.INFO, "normal": logging.INFO, "critical": logging.ERROR}


class Notifier:
    def send(self, urgency: str, title: str, body: str = "") -> None:
        try:
            result = subprocess.run(
                ["notify-send", "-u", urgency, f"Wi-Fi: {title}", body],
                check=False,
                capture_output=True,
                text=True,
            )
            delivered = result.returncode == 0
        except FileNotFoundError:
            delivered = False
        if not delivered:
            LOGGER.log(_LEVELS.get(urgency, logging.INFO), "Wi-Fi: %s%s", title, f": {body}" if body else "")

    def low(self, title: str, body: str = "") -> None:
        self.send("low", title, body)

    def normal(self, title: str, body: str = "") -> None:
        self.send("normal", title, body)

    def critical(self, title: str, body: str = "") -> None:
        self.send("critical", title, body)
