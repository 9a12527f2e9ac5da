"""Network toolkit adapter interface."""

from __future__ import annotations

from typing import Protocol

from wifimenu.core.model import ConnectionDetails, NetworkRecord


class NetworkAdapter(Protocol):
    def scan(self) -> list[NetworkRecord]:
        """Rescan and return the visible networks, strongest first."""

    def connect(self, ssid: str, secret: str | None = None) -> None:
        """Connect to a network, creating a profile.

        Raises AuthFailureError, ConnectTimeoutError or AdapterError.
        """

    def activate(self, ssid: str) -> None:
        """Bring up an existing saved profile."""

    def disconnect(self, ssid: str) -> None: ...

    def forget(self, ssid: str) -> None: ...

    def start_vpn(self, profile: str) -> None: ...

    def set_access_point(
        self,
        on: bool,
        ssid: str | None = None,
        passphrase: str | None = None,
    ) -> None: ...

    def active_access_point(self) -> str | None: ...

    def stored_access_point(self) -> str | None: ...

    def connection_details(self, ssid: str) -> ConnectionDetails: ...

    def saved_profiles(self) -> list[str]: ...

    def current_ssid(self) -> str | None: ...

    def radio_enabled(self) -> bool: ...

    def set_radio(self, enabled: bool) -> None: ...

    def saved_secret(self, ssid: str) -> str | None: ...
