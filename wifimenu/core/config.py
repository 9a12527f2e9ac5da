"""Configuration loading and validation for the YAML config file."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from wifimenu.core.errors import ConfigError

CONFIG_ENV = "WIFIMENU_CONFIG"
CONFIG_FILENAME = "config.yaml"
CACHE_FILENAME = "wifimenu-cache.json"
LOCK_FILENAME = "wifimenu-daemon.pid"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate keys and keeps yes/no/on/off as strings."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class RofiSettings:
    font: str = "DejaVu Sans Mono 8"
    location: int = 0
    x_offset: int = 0
    y_offset: int = 0
    max_lines: int = 8


@dataclass(frozen=True)
class Config:
    refresh_interval_s: float = 30.0
    max_retry: int = 3
    connect_timeout_s: int = 15
    warn_open_networks: bool = True
    stale_after_intervals: int = 3
    scan_wait_timeout_s: float = 20.0
    ping_host: str = "1.1.1.1"
    ping_count: int = 2
    vpn_bindings: dict[str, str] = field(default_factory=dict)
    rofi: RofiSettings = field(default_factory=RofiSettings)
    source: Path | None = None

    @property
    def cache_path(self) -> Path:
        return runtime_dir() / CACHE_FILENAME

    @property
    def lock_path(self) -> Path:
        return runtime_dir() / LOCK_FILENAME


def runtime_dir() -> Path:
    return Path(os.environ.get("XDG_RUNTIME_DIR") or "/tmp")


def config_candidates() -> list[Path]:
    candidates: list[Path] = []
    override = os.environ.get(CONFIG_ENV)
    if override:
        candidates.append(Path(override))
    if sys.argv and sys.argv[0]:
        candidates.append(Path(sys.argv[0]).resolve().parent / CONFIG_FILENAME)
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    candidates.append(xdg_config / "wifimenu" / CONFIG_FILENAME)
    return candidates


def _load_schema_validator() -> Any:
    schema_text = resources.files("wifimenu.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at root")
    return loaded


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "on"}:
            return True
        if lowered in {"false", "no", "off"}:
            return False
    raise ConfigError(f"{context} must be boolean true/false")


def _build_config(doc: dict[str, Any], source: Path) -> Config:
    if "warn_open_networks" in doc:
        doc = {
            **doc,
            "warn_open_networks": _normalize_bool(
                doc["warn_open_networks"], context="warn_open_networks"
            ),
        }

    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = Config()
    return Config(
        refresh_interval_s=float(doc.get("refresh_interval_s", defaults.refresh_interval_s)),
        max_retry=int(doc.get("max_retry", defaults.max_retry)),
        connect_timeout_s=int(doc.get("connect_timeout_s", defaults.connect_timeout_s)),
        warn_open_networks=doc.get("warn_open_networks", defaults.warn_open_networks),
        stale_after_intervals=int(doc.get("stale_after_intervals", defaults.stale_after_intervals)),
        scan_wait_timeout_s=float(doc.get("scan_wait_timeout_s", defaults.scan_wait_timeout_s)),
        ping_host=doc.get("ping_host", defaults.ping_host),
        ping_count=int(doc.get("ping_count", defaults.ping_count)),
        vpn_bindings={str(ssid): profile for ssid, profile in doc.get("vpn_bindings", {}).items()},
        rofi=RofiSettings(**doc.get("rofi", {})),
        source=source,
    )


def load_config(candidates: list[Path] | None = None) -> Config:
    """Load the first existing config file; defaults when none exists."""
    for path in candidates if candidates is not None else config_candidates():
        if path.is_file():
            LOGGER.debug("Loading config from %s", path)
            return _build_config(_read_yaml(path), path)
    return Config()
