"""Core data models used across cache, daemon, orchestrator, and CLI."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum


class Security(str, Enum):
    OPEN = "open"
    WEP = "wep"
    WPA = "wpa"
    WPA2 = "wpa2"
    WPA3 = "wpa3"
    ENTERPRISE = "enterprise"
    UNKNOWN = "unknown"

    @classmethod
    def from_nmcli(cls, value: str) -> Security:
        upper = value.strip().upper()
        if not upper or upper == "--":
            return cls.OPEN
        if "802.1X" in upper:
            return cls.ENTERPRISE
        if "WPA3" in upper:
            return cls.WPA3
        if "WPA2" in upper:
            return cls.WPA2
        if "WPA" in upper:
            return cls.WPA
        if "WEP" in upper:
            return cls.WEP
        return cls.UNKNOWN

    @property
    def needs_secret(self) -> bool:
        return self is not Security.OPEN

    @property
    def label(self) -> str:
        return "Open" if self is Security.OPEN else self.value.upper()


@dataclass(frozen=True)
class NetworkRecord:
    ssid: str
    security: Security
    signal: int
    saved: bool = False
    last_seen: float = 0.0
    in_use: bool = False
    bars: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "signal", max(0, min(100, int(self.signal))))


@dataclass(frozen=True)
class CacheSnapshot:
    """Immutable view of all known networks at one scan moment."""

    records: tuple[NetworkRecord, ...]
    scanned_at: float
    generation: int

    @classmethod
    def build(
        cls,
        records: list[NetworkRecord] | tuple[NetworkRecord, ...],
        *,
        generation: int,
        scanned_at: float | None = None,
    ) -> CacheSnapshot:
        stamp = time.time() if scanned_at is None else scanned_at
        stamped = tuple(replace(record, last_seen=stamp) for record in records)
        return cls(records=stamped, scanned_at=stamp, generation=generation)

    def __bool__(self) -> bool:
        return True

    def is_consistent(self) -> bool:
        return all(record.last_seen == self.scanned_at for record in self.records)

    def age(self, now: float | None = None) -> float:
        current = time.time() if now is None else now
        return max(0.0, current - self.scanned_at)

    def is_stale(self, interval_s: float, max_intervals: int, now: float | None = None) -> bool:
        return self.age(now) > interval_s * max_intervals

    def find(self, ssid: str) -> NetworkRecord | None:
        for record in self.records:
            if record.ssid == ssid:
                return record
        return None


@dataclass(frozen=True)
class EmptySnapshot:
    """Sentinel for "no data yet": absent or unreadable cache."""

    records: tuple[NetworkRecord, ...] = ()
    generation: int = 0

    def __bool__(self) -> bool:
        return False

    def find(self, ssid: str) -> NetworkRecord | None:
        return None


EMPTY = EmptySnapshot()


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    PASSWORD_REQUIRED = "password_required"
    RETRYING = "retrying"
    CONNECTED = "connected"
    FAILED = "failed"


class FailureKind(str, Enum):
    AUTH_FAILURE = "auth_failure"
    TIMEOUT = "timeout"
    ADAPTER_ERROR = "adapter_error"
    USER_CANCELLED = "user_cancelled"


@dataclass
class ConnectionAttempt:
    """Transient bookkeeping for one orchestrator run; never persisted."""

    ssid: str
    attempts: int = 0
    last_error: FailureKind | None = None
    started_at: float = field(default_factory=time.monotonic)
    ended_at: float | None = None


@dataclass(frozen=True)
class ConnectRequest:
    ssid: str
    security: Security
    saved: bool = False
    secret: str | None = field(default=None, repr=False)
    open_confirmed: bool = False

    @classmethod
    def for_record(
        cls,
        record: NetworkRecord,
        *,
        secret: str | None = None,
        open_confirmed: bool = False,
    ) -> ConnectRequest:
        return cls(
            ssid=record.ssid,
            security=record.security,
            saved=record.saved,
            secret=secret,
            open_confirmed=open_confirmed,
        )


@dataclass(frozen=True)
class VpnOutcome:
    profile: str
    ok: bool
    error: str | None = None


@dataclass(frozen=True)
class ConnectionResult:
    ssid: str
    state: ConnectionState
    attempts: int
    failure: FailureKind | None = None
    reason: str | None = None
    transitions: tuple[ConnectionState, ...] = ()
    vpn: VpnOutcome | None = None

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED


@dataclass(frozen=True)
class ConnectionDetails:
    ssid: str
    ip: str
    gateway: str
    dns: str
    security: str
    signal: str
    latency_ms: float | None


class HotspotState(str, Enum):
    OFF = "off"
    ON = "on"
