"""NetworkManager adapter built on the ``nmcli`` command line tool."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Sequence

from wifimenu.core.errors import AdapterError, AuthFailureError, ConnectTimeoutError
from wifimenu.core.model import ConnectionDetails, NetworkRecord, Security

HOTSPOT_PROFILE = "Hotspot"
WIRELESS_TYPE = "802-11-wireless"
LOGGER = logging.getLogger(__name__)

_AUTH_MARKERS = ("secrets were required", "802-11-wireless-security", "authentication", "password")
_TIMEOUT_MARKERS = ("timeout", "timed out")
_FRIENDLY_ERRORS = {
    "no network with ssid": "Network not found or out of range",
    "base network connection was interrupted": "Network interference detected",
    "ip configuration could not be reserved": "DHCP timeout, network busy",
    "unknown connection": "No saved profile with that name",
    "not authorized": "Not authorized to control NetworkManager",
    "failed to activate": "Unable to activate connection",
}
_RTT_RE = re.compile(r"=\s*[\d.]+/([\d.]+)/")


def classify_failure(output: str) -> AdapterError:
    """Map nmcli error text onto the adapter error taxonomy."""
    lowered = output.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return AuthFailureError("Authentication failed: wrong password")
    if any(marker in lowered for marker in _TIMEOUT_MARKERS):
        return ConnectTimeoutError("Connection timed out; check signal strength")
    for pattern, message in _FRIENDLY_ERRORS.items():
        if pattern in lowered:
            return AdapterError(message)
    LOGGER.debug("Unrecognised nmcli failure: %s", output.strip() or "<no output>")
    return AdapterError("NetworkManager could not complete the request")


def split_terse(line: str) -> list[str]:
    """Split one line of ``nmcli -t`` output, honouring ``\\:`` escapes."""
    fields: list[str] = []
    current: list[str] = []
    chars = iter(line)
    for char in chars:
        if char == "\\":
            current.append(next(chars, ""))
        elif char == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


def parse_wifi_list(output: str, saved: set[str]) -> list[NetworkRecord]:
    """Parse ``IN-USE,SSID,SECURITY,SIGNAL,BARS`` rows, one record per SSID."""
    best: dict[str, NetworkRecord] = {}
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = split_terse(line)
        if len(parts) < 5:
            continue
        in_use_raw, ssid_raw, security_raw, signal_raw, bars = parts[:5]
        ssid = ssid_raw.strip()
        if not ssid or ssid == "--":
            continue
        try:
            signal = int(signal_raw.strip())
        except ValueError:
            signal = 0
        record = NetworkRecord(
            ssid=ssid,
            security=Security.from_nmcli(security_raw),
            signal=signal,
            saved=ssid in saved,
            in_use=in_use_raw.strip() == "*",
            bars=bars.strip(),
        )
        current = best.get(ssid)
        if current is None or (record.in_use, record.signal) > (current.in_use, current.signal):
            best[ssid] = record
    return sorted(best.values(), key=lambda r: (not r.in_use, -r.signal, r.ssid))


def parse_ping_latency(output: str) -> float | None:
    for line in output.splitlines():
        if "rtt" in line or "round-trip" in line:
            match = _RTT_RE.search(line)
            if match:
                return float(match.group(1))
    return None


class NmcliAdapter:
    def __init__(
        self,
        *,
        connect_timeout_s: int = 15,
        command_timeout_s: float = 30.0,
        ping_host: str = "1.1.1.1",
        ping_count: int = 2,
    ) -> None:
        self.connect_timeout_s = connect_timeout_s
        self.command_timeout_s = command_timeout_s
        self.ping_host = ping_host
        self.ping_count = ping_count

    # ------------------------------- helpers -------------------------------
    def _run(
        self,
        args: Sequence[str],
        *,
        timeout_s: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        cmd = list(args)
        try:
            return subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout_s or self.command_timeout_s,
                env={**os.environ, "LC_ALL": "C"},
            )
        except FileNotFoundError as exc:
            raise AdapterError(f"'{cmd[0]}' is not installed or not on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise ConnectTimeoutError(f"'{' '.join(cmd[:4])}' timed out") from exc

    def _nmcli(self, *args: str, timeout_s: float | None = None) -> str:
        result = self._run(["nmcli", *args], timeout_s=timeout_s)
        if result.returncode != 0:
            raise classify_failure(f"{result.stderr or ''}\n{result.stdout or ''}")
        return result.stdout

    def _activation_args(self) -> list[str]:
        return ["--wait", str(self.connect_timeout_s)]

    def _activation_timeout(self) -> float:
        return self.connect_timeout_s + 10.0

    def _wifi_device(self) -> str | None:
        output = self._nmcli("-t", "-f", "DEVICE,TYPE,STATE", "device")
        fallback: str | None = None
        for line in output.splitlines():
            parts = split_terse(line)
            if len(parts) < 3 or parts[1] != "wifi":
                continue
            if parts[2] == "connected":
                return parts[0]
            fallback = fallback or parts[0]
        return fallback

    def _profiles(self, *, active: bool = False) -> list[tuple[str, str]]:
        args = ["-t", "-f", "NAME,TYPE", "connection", "show"]
        if active:
            args.append("--active")
        rows: list[tuple[str, str]] = []
        for line in self._nmcli(*args).splitlines():
            parts = split_terse(line)
            if len(parts) >= 2 and parts[0]:
                rows.append((parts[0], parts[1]))
        return rows

    @staticmethod
    def _hotspot_name(rows: list[tuple[str, str]]) -> str | None:
        for name, conn_type in rows:
            if conn_type == WIRELESS_TYPE and "hotspot" in name.lower():
                return name
        return None

    # ---------------------------- interface impl ---------------------------
    def scan(self) -> list[NetworkRecord]:
        rescan = self._run(["nmcli", "device", "wifi", "rescan"])
        if rescan.returncode != 0:
            # Drivers refuse to rescan while scanning or in AP mode; list what is known.
            LOGGER.debug("nmcli rescan refused: %s", (rescan.stderr or "").strip())
        output = self._nmcli(
            "-t", "-f", "IN-USE,SSID,SECURITY,SIGNAL,BARS", "device", "wifi", "list", "--rescan", "no"
        )
        saved = set(self.saved_profiles())
        try:
            return parse_wifi_list(output, saved)
        except (ValueError, IndexError) as exc:
            LOGGER.debug("Unparseable nmcli wifi list: %r", output)
            raise AdapterError("NetworkManager returned an unreadable network list") from exc

    def connect(self, ssid: str, secret: str | None = None) -> None:
        args = [*self._activation_args(), "device", "wifi", "connect", ssid]
        if secret:
            args.extend(["password", secret])
        self._nmcli(*args, timeout_s=self._activation_timeout())

    def activate(self, ssid: str) -> None:
        self._nmcli(*self._activation_args(), "connection", "up", "id", ssid, timeout_s=self._activation_timeout())

    def disconnect(self, ssid: str) -> None:
        self._nmcli("connection", "down", "id", ssid)

    def forget(self, ssid: str) -> None:
        result = self._run(["nmcli", "connection", "delete", "id", ssid])
        if result.returncode == 0:
            return
        combined = f"{result.stderr or ''}\n{result.stdout or ''}"
        if "unknown connection" in combined.lower() or "cannot delete unknown" in combined.lower():
            return
        raise classify_failure(combined)

    def start_vpn(self, profile: str) -> None:
        self._nmcli(*self._activation_args(), "connection", "up", "id", profile, timeout_s=self._activation_timeout())

    def set_access_point(
        self,
        on: bool,
        ssid: str | None = None,
        passphrase: str | None = None,
    ) -> None:
        if not on:
            active = self.active_access_point()
            if active:
                self._nmcli("connection", "down", "id", active)
            return

        if ssid is None:
            stored = self.stored_access_point()
            if stored is None:
                raise AdapterError("No stored hotspot profile to activate")
            self._nmcli("connection", "up", "id", stored, timeout_s=self._activation_timeout())
            return

        if self.stored_access_point() == HOTSPOT_PROFILE:
            self._nmcli("connection", "delete", "id", HOTSPOT_PROFILE)
        self._nmcli(
            "connection", "add",
            "type", "wifi",
            "ifname", "*",
            "con-name", HOTSPOT_PROFILE,
            "autoconnect", "no",
            "ssid", ssid,
            "802-11-wireless.mode", "ap",
            "802-11-wireless-security.key-mgmt", "wpa-psk",
            "802-11-wireless-security.psk", passphrase or "",
            "ipv4.method", "shared",
        )
        self._nmcli("connection", "up", "id", HOTSPOT_PROFILE, timeout_s=self._activation_timeout())

    def active_access_point(self) -> str | None:
        return self._hotspot_name(self._profiles(active=True))

    def stored_access_point(self) -> str | None:
        return self._hotspot_name(self._profiles())

    def connection_details(self, ssid: str) -> ConnectionDetails:
        device = self._wifi_device()
        args = ["-t", "-f", "IP4.ADDRESS,IP4.GATEWAY,IP4.DNS", "device", "show"]
        if device:
            args.append(device)
        ip = gateway = "N/A"
        dns: list[str] = []
        for line in self._nmcli(*args).splitlines():
            key, _, value = line.partition(":")
            if key.startswith("IP4.ADDRESS") and ip == "N/A":
                ip = value
            elif key == "IP4.GATEWAY" and value:
                gateway = value
            elif key.startswith("IP4.DNS"):
                dns.append(value)

        signal = security = "--"
        output = self._nmcli("-t", "-f", "IN-USE,SIGNAL,SECURITY", "device", "wifi", "list", "--rescan", "no")
        for line in output.splitlines():
            parts = split_terse(line)
            if len(parts) >= 3 and parts[0] == "*":
                signal, security = parts[1], parts[2] or "--"
                break

        return ConnectionDetails(
            ssid=ssid,
            ip=ip,
            gateway=gateway,
            dns=", ".join(dns) if dns else "N/A",
            security=security,
            signal=signal,
            latency_ms=self.ping(),
        )

    def ping(self) -> float | None:
        try:
            result = self._run(["ping", "-c", str(self.ping_count), "-W", "2", self.ping_host])
        except AdapterError:
            return None
        if result.returncode != 0:
            return None
        return parse_ping_latency(result.stdout)

    def saved_profiles(self) -> list[str]:
        return [name for name, conn_type in self._profiles() if conn_type == WIRELESS_TYPE]

    def current_ssid(self) -> str | None:
        for line in self._nmcli("-t", "-f", "ACTIVE,SSID", "device", "wifi", "list", "--rescan", "no").splitlines():
            parts = split_terse(line)
            if len(parts) >= 2 and parts[0] == "yes" and parts[1]:
                return parts[1]
        return None

    def radio_enabled(self) -> bool:
        return self._nmcli("-t", "-f", "WIFI", "general").strip() == "enabled"

    def set_radio(self, enabled: bool) -> None:
        self._nmcli("radio", "wifi", "on" if enabled else "off")

    def saved_secret(self, ssid: str) -> str | None:
        result = self._run(["nmcli", "-s", "-g", "802-11-wireless-security.psk", "connection", "show", "id", ssid])
        if result.returncode != 0:
            return None
        secret = result.stdout.strip()
        return secret or None
