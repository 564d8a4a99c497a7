"""
Settings for sbconf.

Loaded from an optional TOML file. Everything has a default matching a
stock sing-box installation, so running without a settings file works.

Example:

    search_paths = ["/etc/sing-box/conf/"]
    state_dir = "/var/lib/sbconf"

    [service]
    binary = "/usr/local/bin/sing-box"
    restart_command = ["systemctl", "restart", "sing-box"]

    [server]
    host = "127.0.0.1"
    port = 8080

    [[categories]]
    key = "endpoints"
    name = "端点"
    rank = 10
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .categories import Category, CategoryRegistry, parse_category_rows
from .classify import DOCUMENT_SUFFIX

DEFAULT_SEARCH_PATHS: tuple[str, ...] = (
    "/usr/local/etc/sing-box/conf/",
    "/etc/sing-box/conf/",
    "/root/singbox/conf/",
    "/root/sing-box/conf/",
)

DEFAULT_SERVICE_FILES: tuple[str, ...] = (
    "/etc/systemd/system/sing-box.service",
    "/etc/systemd/system/singbox.service",
    "/usr/lib/systemd/system/sing-box.service",
    "/lib/systemd/system/sing-box.service",
)

DEFAULT_RESTART_COMMAND: tuple[str, ...] = ("sudo", "systemctl", "restart", "sing-box")


@dataclass(frozen=True)
class Settings:
    search_paths: tuple[str, ...] = DEFAULT_SEARCH_PATHS
    service_files: tuple[str, ...] = DEFAULT_SERVICE_FILES
    document_suffix: str = DOCUMENT_SUFFIX
    singbox_binary: str = "sing-box"
    restart_command: tuple[str, ...] = DEFAULT_RESTART_COMMAND
    state_dir: Path | None = None  # audit log location; None = next to the config directory
    host: str = "0.0.0.0"
    port: int = 80
    categories: tuple[Category, ...] = field(default_factory=tuple)

    def registry(self) -> CategoryRegistry:
        return CategoryRegistry().with_overrides(self.categories)


def default_settings_path() -> Path:
    """`$XDG_CONFIG_HOME/sbconf/config.toml` (or `~/.config/...`)."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "sbconf" / "config.toml"


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _str_tuple(data: dict[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if key not in data:
        return default
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of strings")
    return tuple(value)


def _str(data: dict[str, Any], key: str, default: str) -> str:
    if key not in data:
        return default
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value.strip()


def settings_from_dict(data: dict[str, Any]) -> Settings:
    """Build settings from parsed TOML data. Unknown keys are ignored."""
    service = _coerce_dict(data.get("service"))
    server = _coerce_dict(data.get("server"))

    port = server.get("port", 80)
    if not isinstance(port, int) or isinstance(port, bool) or not 0 <= port <= 65535:
        raise ValueError("server.port must be an integer between 0 and 65535")

    suffix = _str(data, "document_suffix", DOCUMENT_SUFFIX)
    if not suffix.startswith("."):
        raise ValueError("document_suffix must start with '.'")

    state_dir = data.get("state_dir")
    if state_dir is not None and not isinstance(state_dir, str):
        raise ValueError("state_dir must be a string")

    restart_command = _str_tuple(service, "restart_command", DEFAULT_RESTART_COMMAND)
    if not restart_command:
        raise ValueError("service.restart_command must not be empty")

    return Settings(
        search_paths=_str_tuple(data, "search_paths", DEFAULT_SEARCH_PATHS),
        service_files=_str_tuple(data, "service_files", DEFAULT_SERVICE_FILES),
        document_suffix=suffix,
        singbox_binary=_str(service, "binary", "sing-box"),
        restart_command=restart_command,
        state_dir=Path(state_dir).expanduser() if state_dir else None,
        host=_str(server, "host", "0.0.0.0"),
        port=port,
        categories=tuple(parse_category_rows(data.get("categories"))),
    )


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings from `path`, or from the default location when it exists.

    Raises:
        FileNotFoundError: If an explicit `path` does not exist
        ValueError: If the TOML is malformed or a value has the wrong type
    """
    if path is None:
        path = default_settings_path()
        if not path.is_file():
            return Settings()
    elif not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Failed to parse settings TOML: {e}") from e

    return settings_from_dict(data)
