from __future__ import annotations

from pathlib import Path

import pytest

from aioturntable.__main__ import parse_args
from aioturntable.config import RadioConfig


def test_defaults_without_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "TURNTABLE_HOST",
        "TURNTABLE_PORT",
        "TURNTABLE_UPLOADS_DIR",
        "TURNTABLE_MAX_UPLOAD_MB",
        "TURNTABLE_MDNS",
        "TURNTABLE_SERVER_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = RadioConfig.from_env()
    assert settings.host == "0.0.0.0"
    assert settings.port == 3000
    assert settings.uploads_dir is None
    assert settings.max_upload_size == 100 * 1024 * 1024
    assert settings.mdns is True
    assert settings.effective_server_id.startswith("turntable-")


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TURNTABLE_PORT", "8123")
    monkeypatch.setenv("TURNTABLE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TURNTABLE_UPLOADS_DIR", str(tmp_path / "media"))
    monkeypatch.setenv("TURNTABLE_MAX_UPLOAD_MB", "5")
    monkeypatch.setenv("TURNTABLE_MDNS", "false")
    monkeypatch.setenv("TURNTABLE_LOG_LEVEL", "debug")
    monkeypatch.setenv("TURNTABLE_SERVER_ID", "studio")
    settings = RadioConfig.from_env()
    assert settings.port == 8123
    assert settings.data_dir == tmp_path
    assert settings.uploads_dir == tmp_path / "media"
    assert settings.max_upload_size == 5 * 1024 * 1024
    assert settings.mdns is False
    assert settings.log_level == "DEBUG"
    assert settings.effective_server_id == "studio"


def test_command_line_flags_override_environment(tmp_path: Path) -> None:
    defaults = RadioConfig(port=4000, server_id="env-id")
    settings = parse_args(
        ["--port", "5000", "--data-dir", str(tmp_path), "--no-mdns", "--log-level", "warning"],
        defaults=defaults,
    )
    assert settings.port == 5000
    assert settings.data_dir == tmp_path
    assert settings.mdns is False
    assert settings.log_level == "WARNING"
    assert settings.server_id == "env-id"
