"""Service layer used by the CLI, the menu and the public API."""

from __future__ import annotations

import logging
import shutil

from wifimenu.adapters.base import NetworkAdapter
from wifimenu.adapters.nmcli import NmcliAdapter
from wifimenu.core.cache import StateCache
from wifimenu.core.config import Config, load_config
from wifimenu.core.daemon import RefreshDaemon, request_refresh, stop_daemon, wait_for_generation
from wifimenu.core.errors import DaemonNotRunningError
from wifimenu.core.hotspot import HotspotManager
from wifimenu.core.lock import DaemonLock
from wifimenu.core.model import (
    CacheSnapshot,
    ConnectionDetails,
    ConnectionResult,
    ConnectRequest,
    EmptySnapshot,
    Security,
)
from wifimenu.core.orchestrator import ConnectionOrchestrator
from wifimenu.core.share import wifi_share_payload
from wifimenu.core.vpn import VpnTrigger
from wifimenu.frontends.base import Prompter

LOGGER = logging.getLogger(__name__)


class WifiService:
    def __init__(
        self,
        *,
        config: Config | None = None,
        adapter: NetworkAdapter | None = None,
        cache: StateCache | None = None,
    ) -> None:
        self.config = config or load_config()
        self.adapter = adapter or NmcliAdapter(
            connect_timeout_s=self.config.connect_timeout_s,
            ping_host=self.config.ping_host,
            ping_count=self.config.ping_count,
        )
        self.cache = cache or StateCache(self.config.cache_path)
        self.runtime_warnings = _runtime_warnings() if adapter is None else ()

    # ------------------------------- cache ---------------------------------
    def snapshot(self) -> CacheSnapshot | EmptySnapshot:
        return self.cache.read()

    def is_stale(self, snapshot: CacheSnapshot | EmptySnapshot) -> bool:
        if not isinstance(snapshot, CacheSnapshot):
            return True
        return snapshot.is_stale(self.config.refresh_interval_s, self.config.stale_after_intervals)

    def request_scan(self, *, wait: bool = True, timeout_s: float | None = None) -> CacheSnapshot | None:
        """Ask the daemon for an immediate refresh.

        Returns the new snapshot, or None when not waiting or when the daemon
        did not publish one before the timeout. Raises DaemonNotRunningError
        without touching the cache when no daemon is alive.
        """
        before = self.cache.generation()
        request_refresh(self.config.lock_path)
        if not wait:
            return None
        return wait_for_generation(
            self.cache,
            before,
            timeout_s=self.config.scan_wait_timeout_s if timeout_s is None else timeout_s,
        )

    def _nudge_daemon(self) -> None:
        try:
            request_refresh(self.config.lock_path)
        except DaemonNotRunningError:
            LOGGER.debug("No daemon to refresh the cache after a state change")

    # ------------------------------- daemon --------------------------------
    def build_daemon(self) -> RefreshDaemon:
        return RefreshDaemon(
            self.adapter,
            self.cache,
            DaemonLock(self.config.lock_path),
            interval_s=self.config.refresh_interval_s,
        )

    def stop_daemon(self, *, timeout_s: float = 5.0) -> int:
        return stop_daemon(self.config.lock_path, timeout_s=timeout_s)

    # ----------------------------- connections -----------------------------
    def orchestrator(self, prompter: Prompter) -> ConnectionOrchestrator:
        return ConnectionOrchestrator(
            self.adapter,
            prompter,
            max_attempts=self.config.max_retry,
            vpn=VpnTrigger(self.config.vpn_bindings, self.adapter),
        )

    def connect(self, request: ConnectRequest, prompter: Prompter) -> ConnectionResult:
        result = self.orchestrator(prompter).connect(request)
        if result.connected:
            self._nudge_daemon()
        return result

    def request_for(self, ssid: str, *, secret: str | None = None) -> ConnectRequest:
        """Build a connect request from the cached record; unseen SSIDs are assumed open unless a secret is given."""
        record = self.snapshot().find(ssid)
        if record is not None:
            return ConnectRequest.for_record(record, secret=secret)
        security = Security.WPA2 if secret else Security.OPEN
        return ConnectRequest(ssid=ssid, security=security, secret=secret)

    def disconnect(self, ssid: str) -> None:
        self.adapter.disconnect(ssid)
        self._nudge_daemon()

    def forget(self, ssid: str) -> None:
        self.adapter.forget(ssid)
        self._nudge_daemon()

    def saved_profiles(self) -> list[str]:
        return self.adapter.saved_profiles()

    def current_ssid(self) -> str | None:
        return self.adapter.current_ssid()

    def details(self, ssid: str) -> ConnectionDetails:
        return self.adapter.connection_details(ssid)

    def share_payload(self, ssid: str) -> str:
        record = self.snapshot().find(ssid)
        security = record.security if record is not None else Security.WPA2
        secret = self.adapter.saved_secret(ssid) if security.needs_secret else None
        return wifi_share_payload(ssid, secret, security)

    # --------------------------- radio / hotspot ---------------------------
    def toggle_radio(self) -> bool:
        enable = not self.adapter.radio_enabled()
        self.adapter.set_radio(enable)
        self._nudge_daemon()
        return enable

    def hotspot(self) -> HotspotManager:
        return HotspotManager(self.adapter)


def _runtime_warnings() -> tuple[str, ...]:
    warnings: list[str] = []
    if shutil.which("nmcli") is None:
        warnings.append("'nmcli' was not found on PATH; network commands will fail.")
    return tuple(warnings)
