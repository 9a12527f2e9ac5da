"""Connection state machine.

``IDLE -> CONNECTING -> {CONNECTED | PASSWORD_REQUIRED | RETRYING | FAILED}``

Only credential rejections are retried, up to ``max_attempts`` connect calls.
Every failed or cancelled attempt on a new network deletes the profile the
toolkit may have persisted for it, so bad-credential profiles never pile up.
A saved profile is never deleted here.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import replace

from wifimenu.adapters.base import NetworkAdapter
from wifimenu.core.errors import AdapterError, AuthFailureError, ConnectTimeoutError, UserCancelledError
from wifimenu.core.model import (
    ConnectionAttempt,
    ConnectionResult,
    ConnectionState,
    ConnectRequest,
    FailureKind,
    Security,
)
from wifimenu.core.vpn import VpnTrigger
from wifimenu.frontends.base import Prompter

LOGGER = logging.getLogger(__name__)


class ConnectionOrchestrator:
    def __init__(
        self,
        adapter: NetworkAdapter,
        prompter: Prompter,
        *,
        max_attempts: int = 3,
        vpn: VpnTrigger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.adapter = adapter
        self.prompter = prompter
        self.max_attempts = max_attempts
        self.vpn = vpn
        self._clock = clock
        self.state = ConnectionState.IDLE
        self._transitions: list[ConnectionState] = []

    def connect(self, request: ConnectRequest) -> ConnectionResult:
        result = self._establish(request)
        if result.connected and self.vpn is not None:
            # The link is up; a cancelled or failed VPN start only shows in the outcome.
            result = replace(result, vpn=self.vpn.activate(request.ssid))
        return result

    def _establish(self, request: ConnectRequest) -> ConnectionResult:
        self.state = ConnectionState.IDLE
        self._transitions = [ConnectionState.IDLE]
        attempt = ConnectionAttempt(ssid=request.ssid, started_at=self._clock())
        profile_pending = False

        try:
            if request.security is Security.OPEN and not request.open_confirmed:
                message = f"{request.ssid} is an open network; traffic is not encrypted. Connect anyway?"
                if not self.prompter.confirm(message):
                    return self._fail(attempt, FailureKind.USER_CANCELLED, "Open network connection declined")

            saved = request.saved
            if not saved:
                try:
                    saved = request.ssid in self.adapter.saved_profiles()
                except AdapterError as exc:
                    LOGGER.warning("Could not list saved profiles: %s", exc)
                    return self._fail(
                        attempt,
                        FailureKind.ADAPTER_ERROR,
                        f"Could not check saved networks before connecting to {request.ssid}; try again",
                    )
            if saved:
                return self._connect_saved(request, attempt)

            secret = request.secret
            self._move(ConnectionState.CONNECTING)
            while True:
                wants_secret = request.security.needs_secret or attempt.last_error is FailureKind.AUTH_FAILURE
                if wants_secret and not secret:
                    self._move(ConnectionState.PASSWORD_REQUIRED)
                    secret = self.prompter.ask_secret(request.ssid, attempt.attempts + 1, self.max_attempts)
                    if not secret:
                        raise UserCancelledError(f"Password entry for {request.ssid} dismissed")
                    self._move(ConnectionState.CONNECTING)

                attempt.attempts += 1
                profile_pending = True
                LOGGER.info("Connecting to '%s' (attempt %d/%d)", request.ssid, attempt.attempts, self.max_attempts)
                try:
                    self.adapter.connect(request.ssid, secret)
                except AuthFailureError:
                    attempt.last_error = FailureKind.AUTH_FAILURE
                    self._cleanup(request.ssid)
                    profile_pending = False
                    if attempt.attempts >= self.max_attempts:
                        return self._fail(
                            attempt,
                            FailureKind.AUTH_FAILURE,
                            f"Too many attempts: password rejected {attempt.attempts} times",
                        )
                    self._move(ConnectionState.RETRYING)
                    secret = None
                    continue
                except ConnectTimeoutError:
                    self._cleanup(request.ssid)
                    profile_pending = False
                    return self._fail(attempt, FailureKind.TIMEOUT, f"Connecting to {request.ssid} timed out")
                except AdapterError as exc:
                    self._cleanup(request.ssid)
                    profile_pending = False
                    return self._fail(attempt, FailureKind.ADAPTER_ERROR, str(exc))

                profile_pending = False
                return self._connected(request.ssid, attempt)
        except (UserCancelledError, KeyboardInterrupt):
            if profile_pending:
                self._cleanup(request.ssid)
            return self._fail(attempt, FailureKind.USER_CANCELLED, f"Connection to {request.ssid} cancelled")

    def _connect_saved(self, request: ConnectRequest, attempt: ConnectionAttempt) -> ConnectionResult:
        self._move(ConnectionState.CONNECTING)
        attempt.attempts = 1
        LOGGER.info("Activating saved profile '%s'", request.ssid)
        try:
            self.adapter.activate(request.ssid)
        except AuthFailureError:
            return self._fail(
                attempt,
                FailureKind.AUTH_FAILURE,
                f"Saved credentials for {request.ssid} were rejected; forget the network and reconnect",
            )
        except ConnectTimeoutError:
            return self._fail(attempt, FailureKind.TIMEOUT, f"Connecting to {request.ssid} timed out")
        except AdapterError as exc:
            return self._fail(attempt, FailureKind.ADAPTER_ERROR, str(exc))
        return self._connected(request.ssid, attempt)

    def _cleanup(self, ssid: str) -> None:
        try:
            self.adapter.forget(ssid)
        except AdapterError as exc:
            LOGGER.warning("Could not remove partial profile '%s': %s", ssid, exc)

    def _move(self, state: ConnectionState) -> None:
        LOGGER.debug("%s -> %s", self.state.value, state.value)
        self.state = state
        self._transitions.append(state)

    def _connected(self, ssid: str, attempt: ConnectionAttempt) -> ConnectionResult:
        self._move(ConnectionState.CONNECTED)
        attempt.last_error = None
        attempt.ended_at = self._clock()
        return ConnectionResult(
            ssid=ssid,
            state=ConnectionState.CONNECTED,
            attempts=attempt.attempts,
            transitions=tuple(self._transitions),
        )

    def _fail(self, attempt: ConnectionAttempt, kind: FailureKind, reason: str) -> ConnectionResult:
        self._move(ConnectionState.FAILED)
        attempt.last_error = kind
        attempt.ended_at = self._clock()
        LOGGER.info("Connection to '%s' failed (%s): %s", attempt.ssid, kind.value, reason)
        return ConnectionResult(
            ssid=attempt.ssid,
            state=ConnectionState.FAILED,
            attempts=attempt.attempts,
            failure=kind,
            reason=reason,
            transitions=tuple(self._transitions),
        )
