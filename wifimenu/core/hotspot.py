"""Local access point control: a two-state ``OFF <-> ON`` machine."""

from __future__ import annotations

import logging

from wifimenu.adapters.base import NetworkAdapter
from wifimenu.core.errors import HotspotConfigError
from wifimenu.core.model import HotspotState
from wifimenu.frontends.base import Prompter

MIN_PASSPHRASE = 8
MAX_PASSPHRASE = 63
MAX_SSID_BYTES = 32
LOGGER = logging.getLogger(__name__)


def validate_access_point(ssid: str, passphrase: str | None) -> None:
    if not ssid or len(ssid.encode("utf-8")) > MAX_SSID_BYTES:
        raise HotspotConfigError(f"Hotspot SSID must be 1-{MAX_SSID_BYTES} bytes")
    if passphrase is None or not MIN_PASSPHRASE <= len(passphrase) <= MAX_PASSPHRASE:
        raise HotspotConfigError(
            f"Hotspot passphrase must be {MIN_PASSPHRASE}-{MAX_PASSPHRASE} characters"
        )


class HotspotManager:
    """Adapter errors pass through unchanged; nothing here is retried."""

    def __init__(self, adapter: NetworkAdapter) -> None:
        self.adapter = adapter

    def state(self) -> HotspotState:
        return HotspotState.ON if self.adapter.active_access_point() else HotspotState.OFF

    def enable(self, ssid: str | None = None, passphrase: str | None = None) -> HotspotState:
        if ssid is not None:
            validate_access_point(ssid, passphrase)
            LOGGER.info("Creating hotspot '%s'", ssid)
            self.adapter.set_access_point(True, ssid, passphrase)
            return HotspotState.ON

        stored = self.adapter.stored_access_point()
        if stored is None:
            raise HotspotConfigError("No stored hotspot configuration; supply an SSID and passphrase")
        LOGGER.info("Activating stored hotspot '%s'", stored)
        self.adapter.set_access_point(True)
        return HotspotState.ON

    def disable(self) -> HotspotState:
        if self.state() is HotspotState.OFF:
            return HotspotState.OFF
        self.adapter.set_access_point(False)
        return HotspotState.OFF

    def toggle(self, prompter: Prompter) -> HotspotState | None:
        """Interactive flow; returns the new state, or None when dismissed."""
        if self.state() is HotspotState.ON:
            if not prompter.confirm("Turn the hotspot off?"):
                return None
            return self.disable()

        if self.adapter.stored_access_point() is not None:
            return self.enable()

        ssid = prompter.ask_text("Hotspot name")
        if not ssid:
            return None
        passphrase = prompter.ask_secret(ssid, 1, 1)
        if not passphrase:
            return None
        return self.enable(ssid, passphrase)
