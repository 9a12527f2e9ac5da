"""On-disk snapshot cache shared by the daemon and foreground invocations.

Writes stage the payload in a temporary file next to the target and swap it in
with ``os.replace``, so a reader sees either the previous snapshot or the new
one in full. Reads take no lock and never raise: anything unreadable is
reported as ``EMPTY``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any

from wifimenu.core.errors import CacheWriteError
from wifimenu.core.model import EMPTY, CacheSnapshot, EmptySnapshot, NetworkRecord, Security

FORMAT_VERSION = 1
LOGGER = logging.getLogger(__name__)


def _record_to_dict(record: NetworkRecord) -> dict[str, Any]:
    return {
        "ssid": record.ssid,
        "security": record.security.value,
        "signal": record.signal,
        "saved": record.saved,
        "last_seen": record.last_seen,
        "in_use": record.in_use,
        "bars": record.bars,
    }


def _record_from_dict(data: dict[str, Any]) -> NetworkRecord:
    return NetworkRecord(
        ssid=str(data["ssid"]),
        security=Security(data["security"]),
        signal=int(data["signal"]),
        saved=bool(data.get("saved", False)),
        last_seen=float(data["last_seen"]),
        in_use=bool(data.get("in_use", False)),
        bars=str(data.get("bars", "")),
    )


def encode_snapshot(snapshot: CacheSnapshot) -> str:
    return json.dumps(
        {
            "version": FORMAT_VERSION,
            "generation": snapshot.generation,
            "scanned_at": snapshot.scanned_at,
            "count": len(snapshot.records),
            "records": [_record_to_dict(r) for r in snapshot.records],
        },
        ensure_ascii=False,
    )


def decode_snapshot(text: str) -> CacheSnapshot | EmptySnapshot:
    try:
        doc = json.loads(text)
        if not isinstance(doc, dict) or doc.get("version") != FORMAT_VERSION:
            return EMPTY
        records = tuple(_record_from_dict(item) for item in doc["records"])
        snapshot = CacheSnapshot(
            records=records,
            scanned_at=float(doc["scanned_at"]),
            generation=int(doc["generation"]),
        )
        count = int(doc["count"])
    except (ValueError, KeyError, TypeError):
        return EMPTY

    if count != len(records) or snapshot.generation < 1 or not snapshot.is_consistent():
        return EMPTY
    return snapshot


class StateCache:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> CacheSnapshot | EmptySnapshot:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return EMPTY
        snapshot = decode_snapshot(text)
        if not snapshot:
            LOGGER.debug("Cache file %s is unusable; treating as empty", self.path)
        return snapshot

    def generation(self) -> int:
        return self.read().generation

    def next_snapshot(self, records: list[NetworkRecord], now: float | None = None) -> CacheSnapshot:
        return CacheSnapshot.build(
            records,
            generation=self.generation() + 1,
            scanned_at=time.time() if now is None else now,
        )

    def write(self, snapshot: CacheSnapshot) -> None:
        payload = encode_snapshot(snapshot)
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
        except OSError as exc:
            raise CacheWriteError(f"Could not stage cache file in {directory}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise CacheWriteError(f"Could not write cache file {self.path}: {exc}") from exc
