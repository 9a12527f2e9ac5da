"""Wi-Fi sharing payload (the ``WIFI:`` URI understood by phone cameras)."""

from __future__ import annotations

import subprocess

from wifimenu.core.errors import AdapterError
from wifimenu.core.model import Security

_RESERVED = '\\;,":'


def escape_field(value: str) -> str:
    return "".join(f"\\{char}" if char in _RESERVED else char for char in value)


def wifi_share_payload(ssid: str, secret: str | None, security: Security) -> str:
    if security is Security.OPEN:
        kind = "nopass"
    elif security is Security.WEP:
        kind = "WEP"
    else:
        kind = "WPA"
    password = "" if kind == "nopass" else escape_field(secret or "")
    return f"WIFI:T:{kind};S:{escape_field(ssid)};P:{password};;"


def render_qr(payload: str) -> str:
    """Render ``payload`` as block characters through the ``qrencode`` tool."""
    try:
        result = subprocess.run(
            ["qrencode", "-t", "UTF8", "-m", "2", "-l", "M"],
            input=payload,
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise AdapterError("QR rendering requires 'qrencode'. Install it and retry.") from exc
    if result.returncode != 0:
        raise AdapterError(f"qrencode failed: {(result.stderr or '').strip()}")
    return "\n".join(f"  {line}" for line in result.stdout.splitlines())
