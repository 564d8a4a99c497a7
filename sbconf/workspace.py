"""
Configuration directory handling.

This module provides:
- Discovery of candidate directories (systemd unit ExecStart, default list)
- The active-directory handle shared by concurrent requests
- Filename validation confined to the active directory
- Directory snapshots and atomic document writes
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator

from .errors import InvalidDirectory, InvalidFilename, NoActiveDirectory, PersistFailure

logger = logging.getLogger(__name__)

_CONFIG_DIR_FLAGS = ("-C", "-D")


class ReadWriteLock:
    """Many concurrent readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read_lock(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_lock(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ActiveDirectory:
    """The currently selected configuration directory."""

    def __init__(self, path: Path | None = None) -> None:
        self._lock = ReadWriteLock()
        self._path = path

    def get(self) -> Path | None:
        with self._lock.read_lock():
            return self._path

    def require(self) -> Path:
        path = self.get()
        if path is None:
            raise NoActiveDirectory("No configuration directory selected; choose one first.")
        return path

    def set(self, path: Path | str) -> Path:
        """Switch to `path` after checking it is a readable directory."""
        new_path = Path(os.path.normpath(str(path)))
        if not is_valid_config_dir(new_path):
            raise InvalidDirectory(f"Path '{new_path}' does not exist or is not readable.")
        with self._lock.write_lock():
            self._path = new_path
        return new_path


def is_valid_config_dir(path: Path) -> bool:
    """True when `path` is an existing directory whose entries can be listed."""
    try:
        if not path.is_dir():
            return False
        next(os.scandir(path), None)
    except PermissionError:
        return False
    except OSError as e:
        logger.warning("Cannot access path '%s': %s", path, e)
        return False
    return True


def parse_exec_start(unit_text: str) -> Path | None:
    """Directory passed to `-C`/`-D` on the first matching ExecStart line."""
    for line in unit_text.splitlines():
        line = line.strip()
        if not line.startswith("ExecStart="):
            continue
        parts = line.split()
        for i, part in enumerate(parts):
            if part in _CONFIG_DIR_FLAGS and i + 1 < len(parts):
                return Path(os.path.normpath(parts[i + 1].strip()))
    return None


def detect_systemd_config_path(service_files: Iterable[str | Path]) -> Path | None:
    """Config directory named by the first readable sing-box unit that has one."""
    for service_file in service_files:
        try:
            text = Path(service_file).read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue
        detected = parse_exec_start(text)
        if detected is not None:
            logger.info("Detected config path %s via ExecStart in %s", detected, service_file)
            return detected
    return None


@dataclass(frozen=True)
class DiscoveryResult:
    found_paths: list[Path] = field(default_factory=list)
    systemd_default: Path | None = None
    initial_active: Path | None = None

    def to_dict(self, current_active: Path | None = None) -> dict[str, Any]:
        active = current_active if current_active is not None else self.initial_active
        return {
            "found_paths": [str(p) for p in self.found_paths],
            "systemd_default": str(self.systemd_default) if self.systemd_default else "",
            "current_active_path": str(active) if active else "",
        }


def discover_config_dirs(
    search_paths: Iterable[str | Path],
    service_files: Iterable[str | Path],
) -> DiscoveryResult:
    """
    Find usable configuration directories.

    The systemd-detected directory (when valid) is preferred as the initial
    active directory; otherwise the first found path in sorted order is used.
    """
    found: list[Path] = []

    systemd_default = detect_systemd_config_path(service_files)
    if systemd_default is not None:
        if is_valid_config_dir(systemd_default):
            found.append(systemd_default)
        else:
            logger.info("systemd config path '%s' is missing or unreadable", systemd_default)
            systemd_default = None

    for raw in search_paths:
        candidate = Path(os.path.normpath(str(raw)))
        if candidate not in found and is_valid_config_dir(candidate):
            found.append(candidate)

    found.sort(key=str)

    initial: Path | None = systemd_default
    if initial is None and found:
        initial = found[0]

    logger.debug("Discovery: found=%s systemd=%s active=%s", found, systemd_default, initial)
    return DiscoveryResult(found_paths=found, systemd_default=systemd_default, initial_active=initial)


def list_documents(base_dir: Path, suffix: str) -> list[str]:
    """Names of regular files directly under `base_dir` ending in `suffix`, sorted."""
    try:
        entries = list(os.scandir(base_dir))
    except OSError as e:
        raise InvalidDirectory(f"Cannot read configuration directory '{base_dir}': {e}") from e
    return sorted(e.name for e in entries if e.name.endswith(suffix) and e.is_file())


def validate_filename(base_dir: Path, filename: str, suffix: str) -> Path:
    """
    Full path of `filename` inside `base_dir`.

    Raises:
        InvalidFilename: empty, wrong extension, escapes `base_dir`, or not an
            existing file at the top level of `base_dir`
    """
    if not filename:
        raise InvalidFilename("Filename is empty.")
    if not filename.endswith(suffix):
        raise InvalidFilename(f"Only {suffix} files are allowed.")

    root = Path(os.path.normpath(str(base_dir)))
    candidate = Path(os.path.normpath(str(root / filename)))
    if candidate.parent != root:
        raise InvalidFilename("Access outside the configuration directory is forbidden.")

    try:
        names = set(list_documents(root, suffix))
    except InvalidDirectory as e:
        raise InvalidFilename(f"Cannot validate filename: {e}") from e
    if filename not in names:
        raise InvalidFilename(f"File '{filename}' not found in the configuration directory.")

    return candidate


def snapshot_directory(base_dir: Path, suffix: str) -> tuple[list[str], dict[str, bytes]]:
    """Document names and contents; unreadable files are listed without content."""
    names = list_documents(base_dir, suffix)
    contents: dict[str, bytes] = {}
    for name in names:
        try:
            contents[name] = (base_dir / name).read_bytes()
        except OSError as e:
            logger.warning("Skipping unreadable document %s: %s", name, e)
    return names, contents


def write_document(path: Path, data: bytes) -> None:
    """Replace `path` with `data` via a temporary file and rename."""
    try:
        mode = path.stat().st_mode & 0o777
    except OSError:
        mode = 0o644

    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile("wb", dir=path.parent, prefix=f".{path.name}.", delete=False) as tmp:
            tmp_name = tmp.name
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistFailure(f"Failed to save {path.name}: {e}") from e
