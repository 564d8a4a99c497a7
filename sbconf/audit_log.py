"""
Audit log for state-changing operations.

Every save, whole-file replacement, directory switch and service restart is
appended as one JSON line. Saves record the file, the symbolic path the user
gave and the positional path it resolved to, plus the document size before
and after. Configuration edits are not undoable from inside sbconf, so the
log is the record of what changed.

Default location: `<config dir parent>/.sbconf/audit.log`.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

SAVE_VALUE = "save-value"
REPLACE_DOCUMENT = "replace-document"
SELECT_DIRECTORY = "select-directory"
RESTART_SERVICE = "restart-service"


@dataclass
class AuditEntry:
    """One recorded operation.

    `path` is the symbolic path as submitted and `resolved_path` the
    positional path actually written; both are empty for whole-file and
    non-document operations.
    """

    timestamp: str
    operation: str
    directory: str = ""
    file: str = ""
    path: str = ""
    resolved_path: str = ""
    size_before: int = 0
    size_after: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def target(self) -> str:
        """`path`, annotated with its resolution when a tag was translated."""
        if self.resolved_path and self.resolved_path != self.path:
            return f"{self.path} -> {self.resolved_path}"
        return self.path

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditEntry":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def default_state_dir(config_dir: Path) -> Path:
    """State directory used when settings do not name one."""
    return config_dir.parent / ".sbconf"


def get_audit_log_path(state_dir: Path) -> Path:
    return state_dir / "audit.log"


def log_operation(
    state_dir: Path,
    operation: str,
    *,
    directory: Path | str = "",
    file: str = "",
    path: str = "",
    resolved_path: str = "",
    size_before: int = 0,
    size_after: int = 0,
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    """
    Append an operation to the audit log.

    Raises:
        OSError: If the state directory or log file cannot be written
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        directory=str(directory),
        file=file,
        path=path,
        resolved_path=resolved_path,
        size_before=size_before,
        size_after=size_after,
        metadata=metadata or {},
    )

    log_path = get_audit_log_path(state_dir)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    return entry


def read_audit_log(
    state_dir: Path,
    last_n: int | None = None,
    operation: str | None = None,
) -> list[AuditEntry]:
    """
    Entries oldest first, optionally filtered by operation and trimmed to
    the last `last_n`. Lines that are not valid entries are skipped.
    """
    log_path = get_audit_log_path(state_dir)
    if not log_path.exists():
        return []

    entries: list[AuditEntry] = []
    for line in log_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        try:
            data = json.loads(line)
            entry = AuditEntry.from_dict(data)
        except (json.JSONDecodeError, TypeError, AttributeError):
            continue
        if operation and entry.operation != operation:
            continue
        entries.append(entry)

    if last_n is not None:
        entries = entries[-last_n:] if last_n > 0 else []
    return entries
