"""Stable public API for building tooling on top of wifimenu.

This module is the supported integration surface for third-party callers
(status bar widgets, scripts, alternative menus). Avoid importing from internal
modules unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from wifimenu.adapters.base import NetworkAdapter
from wifimenu.core.cache import StateCache
from wifimenu.core.config import Config
from wifimenu.core.errors import (
    AdapterError,
    AuthFailureError,
    ConfigError,
    ConnectTimeoutError,
    DaemonAlreadyRunningError,
    DaemonError,
    DaemonNotRunningError,
    HotspotConfigError,
    UserCancelledError,
    WifiMenuError,
)
from wifimenu.core.model import (
    EMPTY,
    CacheSnapshot,
    ConnectionDetails,
    ConnectionResult,
    ConnectionState,
    ConnectRequest,
    EmptySnapshot,
    FailureKind,
    HotspotState,
    NetworkRecord,
    Security,
    VpnOutcome,
)
from wifimenu.core.service import WifiService
from wifimenu.frontends.base import Prompter

__all__ = [
    "WifiMenuError",
    "ConfigError",
    "AdapterError",
    "AuthFailureError",
    "ConnectTimeoutError",
    "UserCancelledError",
    "DaemonError",
    "DaemonAlreadyRunningError",
    "DaemonNotRunningError",
    "HotspotConfigError",
    "EMPTY",
    "CacheSnapshot",
    "ConnectionDetails",
    "ConnectionResult",
    "ConnectionState",
    "ConnectRequest",
    "EmptySnapshot",
    "FailureKind",
    "HotspotState",
    "NetworkRecord",
    "Security",
    "VpnOutcome",
    "Config",
    "NetworkAdapter",
    "Prompter",
    "CacheStatus",
    "Client",
]


@dataclass(frozen=True)
class CacheStatus:
    """Cached networks plus freshness, for rendering without a live scan."""

    snapshot: CacheSnapshot | EmptySnapshot
    stale: bool

    @property
    def networks(self) -> tuple[NetworkRecord, ...]:
        return self.snapshot.records


class Client:
    """Public client wrapping the cache, daemon control, and connection flow."""

    def __init__(
        self,
        *,
        config: Config | None = None,
        adapter: NetworkAdapter | None = None,
        cache: StateCache | None = None,
    ) -> None:
        self._service = WifiService(config=config, adapter=adapter, cache=cache)

    @property
    def config(self) -> Config:
        return self._service.config

    @property
    def runtime_warnings(self) -> tuple[str, ...]:
        return self._service.runtime_warnings

    def status(self) -> CacheStatus:
        snapshot = self._service.snapshot()
        return CacheStatus(snapshot=snapshot, stale=self._service.is_stale(snapshot))

    def refresh(self, *, wait: bool = True, timeout_s: float | None = None) -> CacheSnapshot | None:
        return self._service.request_scan(wait=wait, timeout_s=timeout_s)

    def connect(
        self,
        ssid: str,
        prompter: Prompter,
        *,
        secret: str | None = None,
        open_confirmed: bool = False,
    ) -> ConnectionResult:
        request = self._service.request_for(ssid, secret=secret)
        if open_confirmed:
            request = replace(request, open_confirmed=True)
        return self._service.connect(request, prompter)

    def disconnect(self, ssid: str) -> None:
        self._service.disconnect(ssid)

    def forget(self, ssid: str) -> None:
        self._service.forget(ssid)

    def details(self, ssid: str) -> ConnectionDetails:
        return self._service.details(ssid)

    def hotspot_state(self) -> HotspotState:
        return self._service.hotspot().state()

    def enable_hotspot(self, ssid: str | None = None, passphrase: str | None = None) -> HotspotState:
        return self._service.hotspot().enable(ssid, passphrase)

    def disable_hotspot(self) -> HotspotState:
        return self._service.hotspot().disable()
