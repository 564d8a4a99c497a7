"""Audit log command."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..audit_log import read_audit_log
from ..editor import ConfigEditor
from ..errors import SbconfError


def run_log(
    editor: ConfigEditor,
    *,
    last_n: int | None = None,
    operation: str | None = None,
    output_json: bool = False,
) -> int:
    """Show audit entries; returns 1 when there are none."""
    err = Console(stderr=True)
    try:
        state_dir = editor.state_dir()
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1

    entries = read_audit_log(state_dir, last_n=last_n, operation=operation)
    if not entries:
        err.print(f"No audit entries in {state_dir}", style="yellow", markup=False)
        return 1

    if output_json:
        for entry in entries:
            print(json.dumps(entry.to_dict(), ensure_ascii=False))
        return 0

    table = Table(title="Audit log")
    table.add_column("timestamp", style="dim", no_wrap=True)
    table.add_column("operation", style="cyan")
    table.add_column("file")
    table.add_column("path")
    table.add_column("bytes", justify="right")

    for entry in entries:
        size = f"{entry.size_before} -> {entry.size_after}" if entry.file else ""
        table.add_row(
            entry.timestamp,
            entry.operation,
            Text(entry.file or entry.directory),
            Text(entry.target),
            size,
        )

    Console().print(table)
    return 0
