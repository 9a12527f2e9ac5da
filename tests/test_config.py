from __future__ import annotations

from pathlib import Path

import pytest

from wifimenu.core.config import (
    CACHE_FILENAME,
    LOCK_FILENAME,
    Config,
    config_candidates,
    load_config,
    runtime_dir,
)
from wifimenu.core.errors import ConfigError


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_defaults_when_no_file_exists(tmp_path: Path) -> None:
    config = load_config([tmp_path / "missing.yaml"])
    assert config == Config()
    assert config.refresh_interval_s == 30.0
    assert config.max_retry == 3
    assert config.warn_open_networks is True
    assert config.vpn_bindings == {}
    assert config.source is None


def test_full_config_is_loaded(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "config.yaml",
        """
refresh_interval_s: 10
max_retry: 5
connect_timeout_s: 20
warn_open_networks: off
vpn_bindings:
  HomeNet: work-vpn
  "yes": guest-vpn
rofi:
  font: Iosevka 10
  location: 3
  y_offset: 24
""",
    )
    config = load_config([path])
    assert config.refresh_interval_s == 10.0
    assert config.max_retry == 5
    assert config.connect_timeout_s == 20
    assert config.warn_open_networks is False
    assert config.vpn_bindings == {"HomeNet": "work-vpn", "yes": "guest-vpn"}
    assert config.rofi.font == "Iosevka 10"
    assert config.rofi.location == 3
    assert config.rofi.y_offset == 24
    assert config.rofi.max_lines == 8
    assert config.source == path


def test_ssid_that_looks_like_a_bool_stays_a_string(tmp_path: Path) -> None:
    path = _write(tmp_path / "config.yaml", "vpn_bindings:\n  on: office-vpn\n")
    assert load_config([path]).vpn_bindings == {"on": "office-vpn"}


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path / "config.yaml", "")
    config = load_config([path])
    assert config.max_retry == 3
    assert config.source == path


def test_first_existing_candidate_wins(tmp_path: Path) -> None:
    first = _write(tmp_path / "a.yaml", "max_retry: 2\n")
    second = _write(tmp_path / "b.yaml", "max_retry: 7\n")
    assert load_config([tmp_path / "missing.yaml", first, second]).max_retry == 2


@pytest.mark.parametrize(
    ("content", "fragment"),
    [
        ("max_retry: 0\n", "max_retry"),
        ("refresh_interval_s: -1\n", "refresh_interval_s"),
        ("unknown_option: 1\n", "Schema validation failed"),
        ("rofi:\n  colour: red\n", "Schema validation failed"),
        ("warn_open_networks: maybe\n", "warn_open_networks"),
        ("max_retry: 2\nmax_retry: 3\n", "Duplicate key 'max_retry'"),
        ("- just\n- a list\n", "mapping at root"),
        ("max_retry: [unclosed\n", "Invalid YAML"),
    ],
)
def test_invalid_config_is_rejected(tmp_path: Path, content: str, fragment: str) -> None:
    path = _write(tmp_path / "config.yaml", content)
    with pytest.raises(ConfigError) as excinfo:
        load_config([path])
    assert fragment in str(excinfo.value)


def test_candidate_order(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WIFIMENU_CONFIG", str(tmp_path / "override.yaml"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setattr("sys.argv", [str(tmp_path / "bin" / "wifimenu")])

    candidates = config_candidates()

    assert candidates[0] == tmp_path / "override.yaml"
    assert candidates[1] == (tmp_path / "bin").resolve() / "config.yaml"
    assert candidates[-1] == tmp_path / "xdg" / "wifimenu" / "config.yaml"


def test_runtime_paths_follow_xdg_runtime_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path))
    config = Config()
    assert config.cache_path == tmp_path / CACHE_FILENAME
    assert config.lock_path == tmp_path / LOCK_FILENAME

    monkeypatch.delenv("XDG_RUNTIME_DIR")
    assert runtime_dir() == Path("/tmp")
