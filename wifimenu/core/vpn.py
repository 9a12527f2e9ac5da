"""Post-connect VPN activation driven by the configured ssid -> profile bindings."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType

from wifimenu.adapters.base import NetworkAdapter
from wifimenu.core.errors import AdapterError
from wifimenu.core.model import VpnOutcome

LOGGER = logging.getLogger(__name__)


class VpnTrigger:
    def __init__(self, bindings: Mapping[str, str], adapter: NetworkAdapter) -> None:
        self.bindings = MappingProxyType(dict(bindings))
        self.adapter = adapter

    def profile_for(self, ssid: str) -> str | None:
        return self.bindings.get(ssid)

    def activate(self, ssid: str) -> VpnOutcome | None:
        """Start the VPN bound to ``ssid``.

        A failed or interrupted VPN start is reported in the outcome only; the
        Wi-Fi link it follows is left untouched.
        """
        profile = self.profile_for(ssid)
        if profile is None:
            return None

        LOGGER.info("Starting VPN profile '%s' for network '%s'", profile, ssid)
        try:
            self.adapter.start_vpn(profile)
        except AdapterError as exc:
            LOGGER.warning("VPN profile '%s' failed to start: %s", profile, exc)
            return VpnOutcome(profile=profile, ok=False, error=str(exc))
        except KeyboardInterrupt:
            LOGGER.warning("VPN profile '%s' start interrupted", profile)
            return VpnOutcome(profile=profile, ok=False, error="VPN start cancelled")
        return VpnOutcome(profile=profile, ok=True)
