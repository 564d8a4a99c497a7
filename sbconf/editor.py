"""
Request-scoped operations over the active configuration directory.

Each call reads the document fresh from disk, runs one core operation and,
for saves, writes the result back atomically. Nothing is cached between calls.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .audit_log import (
    REPLACE_DOCUMENT,
    RESTART_SERVICE,
    SAVE_VALUE,
    SELECT_DIRECTORY,
    default_state_dir,
    log_operation,
)
from .classify import Classification, classify
from .config import Settings
from .keys import KeyListing, list_keys
from .patch import read_value, write_value
from .paths import resolve_path
from .service import check_config, restart_service
from .workspace import (
    ActiveDirectory,
    DiscoveryResult,
    discover_config_dirs,
    snapshot_directory,
    validate_filename,
    write_document,
)

logger = logging.getLogger(__name__)


class ConfigEditor:
    """Operations the CLI and HTTP layers expose, bound to one active directory."""

    def __init__(self, settings: Settings, active: ActiveDirectory) -> None:
        self.settings = settings
        self.active = active
        self._registry = settings.registry()

    @classmethod
    def discover(cls, settings: Settings) -> tuple["ConfigEditor", DiscoveryResult]:
        """Editor whose active directory is the discovered default."""
        result = discover_config_dirs(settings.search_paths, settings.service_files)
        return cls(settings, ActiveDirectory(result.initial_active)), result

    def state_dir(self, config_dir: Path | None = None) -> Path:
        if self.settings.state_dir is not None:
            return self.settings.state_dir
        return default_state_dir(config_dir or self.active.require())

    def document_path(self, filename: str) -> Path:
        return validate_filename(self.active.require(), filename, self.settings.document_suffix)

    def read_document(self, filename: str) -> bytes:
        return self.document_path(filename).read_bytes()

    def overview(self) -> Classification:
        names, contents = snapshot_directory(self.active.require(), self.settings.document_suffix)
        return classify(names, contents, self._registry, suffix=self.settings.document_suffix)

    def top_keys(self, filename: str) -> KeyListing:
        return list_keys(self.read_document(filename))

    def resolve(self, filename: str, symbolic_path: str) -> str:
        return resolve_path(self.read_document(filename), symbolic_path)

    def read(self, filename: str, symbolic_path: str = "") -> str:
        return read_value(self.read_document(filename), symbolic_path)

    def save(self, filename: str, content: str, symbolic_path: str = "") -> bytes:
        """Store `content` at `symbolic_path` (whole file when empty) and persist it."""
        config_dir = self.active.require()
        path = self.document_path(filename)
        original = path.read_bytes()

        updated = write_value(original, symbolic_path, content)
        write_document(path, updated)

        resolved = resolve_path(original, symbolic_path)
        logger.info("Saved %s at %r (resolved %r)", filename, symbolic_path, resolved)
        self._audit(
            config_dir,
            SAVE_VALUE if symbolic_path else REPLACE_DOCUMENT,
            directory=config_dir,
            file=filename,
            path=symbolic_path,
            resolved_path=resolved,
            size_before=len(original),
            size_after=len(updated),
        )
        return updated

    def check(self) -> str:
        return check_config(self.settings.singbox_binary, self.active.require())

    def restart(self) -> str:
        output = restart_service(self.settings.restart_command)
        config_dir = self.active.get()
        if config_dir is not None or self.settings.state_dir is not None:
            self._audit(
                config_dir,
                RESTART_SERVICE,
                directory=config_dir or "",
                metadata={"command": list(self.settings.restart_command)},
            )
        return output

    def select_directory(self, path: Path | str) -> Path:
        previous = self.active.get()
        selected = self.active.set(path)
        self._audit(
            selected,
            SELECT_DIRECTORY,
            directory=selected,
            metadata={"from": str(previous) if previous else ""},
        )
        return selected

    def _audit(self, config_dir: Path | None, operation: str, **fields) -> None:
        # Runs after the change is on disk; audit failures never fail the operation.
        state_dir = self.state_dir(config_dir)
        try:
            log_operation(state_dir, operation, **fields)
        except OSError as e:
            logger.warning("Could not record %s in %s: %s", operation, state_dir, e)
