"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from sbconf.config import Settings
from sbconf.editor import ConfigEditor
from sbconf.workspace import ActiveDirectory

# Index 2 has no tag; "proxy-hk" appears twice (indices 1 and 3).
OUTBOUNDS_DOC = b"""{
  "outbounds": [
    {"type": "direct", "tag": "direct"},
    {"type": "shadowsocks", "tag": "proxy-hk", "server": "203.0.113.7", "server_port": 8388},
    {"type": "block"},
    {"type": "vless", "tag": "proxy-hk", "server": "198.51.100.2"}
  ]
}
"""


@pytest.fixture
def outbounds_doc() -> bytes:
    return OUTBOUNDS_DOC


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """A sing-box conf directory split by function, plus one non-document file."""
    conf = tmp_path / "conf"
    conf.mkdir()
    (conf / "00_log.json").write_text('{"log": {"level": "info"}}\n', encoding="utf-8")
    (conf / "01_dns.json").write_text('{"dns": {"servers": []}}\n', encoding="utf-8")
    (conf / "02_outbounds.json").write_bytes(OUTBOUNDS_DOC)
    (conf / "notes.txt").write_text("not a document\n", encoding="utf-8")
    return conf


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def settings(state_dir: Path) -> Settings:
    return Settings(search_paths=(), service_files=(), state_dir=state_dir)


@pytest.fixture
def editor(settings: Settings, config_dir: Path) -> ConfigEditor:
    return ConfigEditor(settings, ActiveDirectory(config_dir))
