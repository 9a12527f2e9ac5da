from __future__ import annotations

from pathlib import Path

import pytest

from wifimenu.core.cache import StateCache
from wifimenu.core.config import Config
from wifimenu.core.model import ConnectionDetails, NetworkRecord, Security


class FakeAdapter:
    """In-memory stand-in for NetworkManager that records every call."""

    def __init__(self) -> None:
        self.records: list[NetworkRecord] = []
        self.scan_error: Exception | None = None
        self.connect_outcomes: list[Exception | None] = []
        self.activate_error: Exception | None = None
        self.vpn_error: Exception | None = None
        self.ap_error: Exception | None = None
        self.profiles: set[str] = set()
        self.profile_present_at_connect: list[bool] = []
        self.secrets: dict[str, str] = {}
        self.ap_active: str | None = None
        self.ap_stored: str | None = None
        self.radio = True
        self.current: str | None = None
        self.calls: list[tuple] = []

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def scan(self) -> list[NetworkRecord]:
        self.calls.append(("scan",))
        if self.scan_error is not None:
            raise self.scan_error
        return list(self.records)

    def connect(self, ssid: str, secret: str | None = None) -> None:
        self.calls.append(("connect", ssid, secret))
        self.profile_present_at_connect.append(ssid in self.profiles)
        # NetworkManager persists the profile before it knows whether the secret works.
        self.profiles.add(ssid)
        outcome = self.connect_outcomes.pop(0) if self.connect_outcomes else None
        if outcome is not None:
            raise outcome
        self.current = ssid

    def activate(self, ssid: str) -> None:
        self.calls.append(("activate", ssid))
        if self.activate_error is not None:
            raise self.activate_error
        self.current = ssid

    def disconnect(self, ssid: str) -> None:
        self.calls.append(("disconnect", ssid))
        self.current = None

    def forget(self, ssid: str) -> None:
        self.calls.append(("forget", ssid))
        self.profiles.discard(ssid)

    def start_vpn(self, profile: str) -> None:
        self.calls.append(("start_vpn", profile))
        if self.vpn_error is not None:
            raise self.vpn_error

    def set_access_point(self, on: bool, ssid: str | None = None, passphrase: str | None = None) -> None:
        self.calls.append(("set_access_point", on, ssid, passphrase))
        if self.ap_error is not None:
            raise self.ap_error
        if not on:
            self.ap_active = None
            return
        if ssid is not None:
            self.ap_stored = "Hotspot"
        self.ap_active = self.ap_stored

    def active_access_point(self) -> str | None:
        return self.ap_active

    def stored_access_point(self) -> str | None:
        return self.ap_stored

    def connection_details(self, ssid: str) -> ConnectionDetails:
        self.calls.append(("connection_details", ssid))
        return ConnectionDetails(
            ssid=ssid,
            ip="192.168.1.20/24",
            gateway="192.168.1.1",
            dns="192.168.1.1",
            security="WPA2",
            signal="70",
            latency_ms=12.5,
        )

    def saved_profiles(self) -> list[str]:
        return sorted(self.profiles)

    def current_ssid(self) -> str | None:
        return self.current

    def radio_enabled(self) -> bool:
        return self.radio

    def set_radio(self, enabled: bool) -> None:
        self.calls.append(("set_radio", enabled))
        self.radio = enabled

    def saved_secret(self, ssid: str) -> str | None:
        return self.secrets.get(ssid)


class FakePrompter:
    def __init__(
        self,
        *,
        secrets: list[str | None] | None = None,
        confirm: bool = True,
        texts: list[str | None] | None = None,
        choices: list[str | None] | None = None,
    ) -> None:
        self.secrets = list(secrets or [])
        self.confirm_answer = confirm
        self.texts = list(texts or [])
        self.choices = list(choices or [])
        self.confirmations: list[str] = []
        self.secret_requests: list[tuple[str, int, int]] = []
        self.menus: list[tuple[list[str], dict]] = []
        self.shown: list[tuple[str, str]] = []

    def confirm(self, message: str) -> bool:
        self.confirmations.append(message)
        return self.confirm_answer

    def ask_secret(self, ssid: str, attempt: int, max_attempts: int) -> str | None:
        self.secret_requests.append((ssid, attempt, max_attempts))
        return self.secrets.pop(0) if self.secrets else None

    def ask_text(self, prompt: str) -> str | None:
        return self.texts.pop(0) if self.texts else None

    def choose(self, rows, prompt, **kwargs) -> str | None:
        self.menus.append((list(rows), kwargs))
        return self.choices.pop(0) if self.choices else None

    def show_text(self, title: str, body: str) -> None:
        self.shown.append((title, body))


def make_record(ssid: str, security: Security = Security.WPA2, signal: int = 60, **kwargs) -> NetworkRecord:
    return NetworkRecord(ssid=ssid, security=security, signal=signal, **kwargs)


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def prompter_factory():
    return FakePrompter


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def runtime_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    path = tmp_path / "run"
    path.mkdir()
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(path))
    return path


@pytest.fixture
def config(runtime_dir: Path) -> Config:
    return Config(vpn_bindings={"HomeNet": "work-vpn"}, scan_wait_timeout_s=0.5)


@pytest.fixture
def cache(config: Config) -> StateCache:
    return StateCache(config.cache_path)
