"""Interactive main menu: renders the cached snapshot and dispatches actions."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from wifimenu.core.errors import DaemonNotRunningError, WifiMenuError
from wifimenu.core.model import (
    CacheSnapshot,
    ConnectionResult,
    ConnectRequest,
    EmptySnapshot,
    NetworkRecord,
    Security,
)
from wifimenu.core.service import WifiService
from wifimenu.core.share import render_qr
from wifimenu.frontends.base import Prompter
from wifimenu.frontends.notify import Notifier

LOGGER = logging.getLogger(__name__)


class Action(str, Enum):
    TOGGLE_RADIO = "toggle_radio"
    REFRESH = "refresh"
    MANUAL = "manual"
    DISCONNECT = "disconnect"
    FORGET = "forget"
    HOTSPOT = "hotspot"
    DETAILS = "details"
    SHARE = "share"
    CONNECT = "connect"


class Nav(Enum):
    BACK = "back"
    REFRESH = "refresh"
    QUIT = "quit"


@dataclass(frozen=True)
class MenuEntry:
    label: str
    action: Action
    record: NetworkRecord | None = None


def _lock_glyph(security: Security) -> str:
    if security is Security.OPEN:
        return "  "
    if security is Security.WEP:
        return "🔓"
    return "🔒"


def network_row(record: NetworkRecord) -> str:
    active = "●" if record.in_use else " "
    return f"{active} {_lock_glyph(record.security)} {record.ssid:<24} {record.bars:<4} {record.signal:>3}%"


def refresh_label(snapshot: CacheSnapshot | EmptySnapshot, now: float | None = None) -> str:
    if not isinstance(snapshot, CacheSnapshot):
        return "🔄 refresh  (no data yet)"
    return f"🔄 refresh  (updated {int(snapshot.age(now))}s ago)"


def build_entries(
    snapshot: CacheSnapshot | EmptySnapshot,
    *,
    radio_on: bool,
    connected: bool,
    now: float | None = None,
) -> list[MenuEntry]:
    entries = [
        MenuEntry("⚡ toggle off" if radio_on else "⚡ toggle on", Action.TOGGLE_RADIO),
        MenuEntry(refresh_label(snapshot, now), Action.REFRESH),
        MenuEntry("✏️ manual", Action.MANUAL),
        MenuEntry("❌ disconnect", Action.DISCONNECT),
        MenuEntry("🗑️ forget", Action.FORGET),
        MenuEntry("📡 hotspot", Action.HOTSPOT),
    ]
    if connected:
        entries.append(MenuEntry("📊 details", Action.DETAILS))
        entries.append(MenuEntry("📷 share", Action.SHARE))
    if radio_on:
        entries.extend(MenuEntry(network_row(r), Action.CONNECT, r) for r in snapshot.records)
    return entries


def menu_message(
    snapshot: CacheSnapshot | EmptySnapshot,
    *,
    stale: bool,
    warn_open: bool,
    daemon_running: bool = True,
    now: float | None = None,
) -> str | None:
    lines: list[str] = []
    if not isinstance(snapshot, CacheSnapshot):
        if daemon_running:
            lines.append("No data yet, scanning…")
        else:
            lines.append("No data yet: the wifimenu daemon is not running (start it with 'wifimenu daemon')")
    elif stale:
        lines.append(f"⚠ Network list is stale (last scan {int(snapshot.age(now))}s ago); is the daemon running?")
    if warn_open and any(r.security is Security.OPEN for r in snapshot.records):
        lines.append("⚠ Open (unencrypted) networks in range; connect with care")
    return "\n".join(lines) or None


def match_entry(choice: str, entries: list[MenuEntry]) -> MenuEntry | None:
    wanted = choice.strip()
    for entry in entries:
        if entry.label.strip() == wanted:
            return entry
    return None


def split_manual_input(text: str) -> tuple[str, str | None]:
    ssid, sep, secret = text.partition(",")
    ssid, secret = ssid.strip(), secret.strip()
    return ssid, (secret if sep and secret else None)


class Menu:
    def __init__(self, service: WifiService, prompter: Prompter, notifier: Notifier | None = None) -> None:
        self.service = service
        self.prompter = prompter
        self.notifier = notifier or Notifier()

    def run(self) -> None:
        while True:
            nav = self.show()
            if nav is Nav.QUIT:
                return
            if nav is Nav.REFRESH:
                self._refresh()

    def show(self) -> Nav:
        snapshot = self.service.snapshot()
        daemon_running = self._nudge() if not snapshot else True
        radio_on = self.service.adapter.radio_enabled()
        current = self.service.current_ssid()
        now = time.time()
        entries = build_entries(snapshot, radio_on=radio_on, connected=current is not None, now=now)
        selected = next(
            (i for i, e in enumerate(entries) if e.record is not None and e.record.ssid == current),
            None,
        )
        message = menu_message(
            snapshot,
            stale=self.service.is_stale(snapshot),
            warn_open=self.service.config.warn_open_networks,
            daemon_running=daemon_running,
            now=now,
        )
        lines = 1 if not radio_on else min(len(entries), self.service.config.rofi.max_lines)
        choice = self.prompter.choose(
            [e.label for e in entries],
            "📶 Wi-Fi",
            message=message,
            selected=selected,
            lines=lines,
        )
        if choice is None:
            return Nav.QUIT
        entry = match_entry(choice, entries)
        if entry is None:
            return Nav.BACK
        try:
            return self.handle(entry, current)
        except WifiMenuError as exc:
            self.notifier.critical("Error", str(exc))
            return Nav.BACK

    def handle(self, entry: MenuEntry, current: str | None) -> Nav:
        action = entry.action
        if action is Action.TOGGLE_RADIO:
            enabled = self.service.toggle_radio()
            self.notifier.normal("Wi-Fi", "enabled" if enabled else "disabled")
            return Nav.REFRESH
        if action is Action.REFRESH:
            return Nav.REFRESH
        if action is Action.MANUAL:
            return self._manual()
        if action is Action.DISCONNECT:
            return self._disconnect(current)
        if action is Action.FORGET:
            return self._forget()
        if action is Action.HOTSPOT:
            return self._hotspot()
        if action is Action.DETAILS:
            return self._details(current)
        if action is Action.SHARE:
            return self._share(current)
        if entry.record is None:
            return Nav.BACK
        return self._connect(self.service.request_for(entry.record.ssid))

    def _nudge(self) -> bool:
        try:
            self.service.request_scan(wait=False)
        except DaemonNotRunningError:
            LOGGER.debug("Cache empty and no daemon running")
            return False
        return True

    def _refresh(self) -> None:
        try:
            if self.service.request_scan() is None:
                self.notifier.low("Scanning", "Scan still in progress; showing cached networks")
        except DaemonNotRunningError as exc:
            self.notifier.critical("Scan unavailable", str(exc))

    def _manual(self) -> Nav:
        text = self.prompter.ask_text("SSID or SSID,password")
        if not text:
            return Nav.BACK
        ssid, secret = split_manual_input(text)
        if not ssid:
            self.notifier.critical("Error", "SSID must not be empty")
            return Nav.BACK
        return self._connect(self.service.request_for(ssid, secret=secret))

    def _connect(self, request: ConnectRequest) -> Nav:
        self.notifier.normal("Connecting…", request.ssid)
        result = self.service.connect(request, self.prompter)
        self._report(result)
        return Nav.BACK

    def _report(self, result: ConnectionResult) -> None:
        if result.connected:
            self.notifier.normal("Connected ✓", result.ssid)
        else:
            self.notifier.critical("Connection failed", result.reason or result.ssid)
        if result.vpn is not None:
            if result.vpn.ok:
                self.notifier.normal("VPN connected", result.vpn.profile)
            else:
                self.notifier.critical("VPN failed", f"{result.vpn.profile}: {result.vpn.error}")

    def _disconnect(self, current: str | None) -> Nav:
        if current is None:
            self.notifier.low("Not connected", "No active Wi-Fi connection")
            return Nav.BACK
        if self.prompter.confirm(f"Disconnect from {current}?"):
            self.service.disconnect(current)
            self.notifier.normal("Disconnected", current)
        return Nav.BACK

    def _forget(self) -> Nav:
        saved = self.service.saved_profiles()
        if not saved:
            self.notifier.low("Nothing to forget", "No saved Wi-Fi profiles")
            return Nav.BACK
        name = self.prompter.choose(saved, "🗑 Forget which network?", lines=min(len(saved), 6))
        if name is None:
            return Nav.BACK
        if self.prompter.confirm(f"Permanently delete the profile for {name}?"):
            self.service.forget(name)
            self.notifier.normal("Forgotten", name)
        return Nav.BACK

    def _hotspot(self) -> Nav:
        state = self.service.hotspot().toggle(self.prompter)
        if state is not None:
            self.notifier.normal("Hotspot", f"turned {state.value}")
        return Nav.BACK

    def _details(self, current: str | None) -> Nav:
        if current is None:
            self.notifier.low("Not connected", "No active Wi-Fi connection")
            return Nav.BACK
        details = self.service.details(current)
        latency = f"{details.latency_ms:.1f} ms" if details.latency_ms is not None else "timeout"
        body = "\n".join(
            [
                f"SSID     : {details.ssid}",
                f"IP       : {details.ip}",
                f"Gateway  : {details.gateway}",
                f"DNS      : {details.dns}",
                f"Security : {details.security}",
                f"Signal   : {details.signal}%",
                f"Latency  : {latency}",
            ]
        )
        self.prompter.show_text(f"📊 {details.ssid}", body)
        return Nav.BACK

    def _share(self, current: str | None) -> Nav:
        if current is None:
            self.notifier.low("Not connected", "No active Wi-Fi connection")
            return Nav.BACK
        qr = render_qr(self.service.share_payload(current))
        self.prompter.show_text(f"📷 {current}", f"{qr}\nScan to join {current}")
        return Nav.BACK
