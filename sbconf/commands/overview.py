"""Directory-level commands: discovered paths and functional overview."""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..editor import ConfigEditor
from ..errors import SbconfError
from ..workspace import DiscoveryResult


def run_paths(editor: ConfigEditor, discovery: DiscoveryResult, *, output_json: bool = False) -> int:
    """Show discovered configuration directories and the active one."""
    active = editor.active.get()

    if output_json:
        print(json.dumps(discovery.to_dict(active), indent=2, ensure_ascii=False))
        return 0

    console = Console()
    if not discovery.found_paths:
        console.print("No configuration directories found.", style="yellow")
    for path in discovery.found_paths:
        marks = []
        if path == active:
            marks.append("[bold green]active[/bold green]")
        if path == discovery.systemd_default:
            marks.append("[cyan]systemd[/cyan]")
        suffix = f"  ({', '.join(marks)})" if marks else ""
        console.print(f"{escape(str(path))}{suffix}")

    if active is not None and active not in discovery.found_paths:
        console.print(f"{escape(str(active))}  ([bold green]active[/bold green])")
    return 0


def run_overview(editor: ConfigEditor, *, output_json: bool = False) -> int:
    """Classify the documents in the active directory."""
    err = Console(stderr=True)
    try:
        config_dir = editor.active.require()
        result = editor.overview()
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1

    if output_json:
        payload = result.to_dict()
        payload["active_config_path"] = str(config_dir)
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    console = Console()
    table = Table(title=Text(f"Functional configs in {config_dir}"))
    table.add_column("function", style="cyan")
    table.add_column("file")
    table.add_column("order", justify="right", style="dim")

    for entry in result.entries:
        style = "dim" if entry.filename in result.unmatched else None
        table.add_row(Text(entry.name), Text(entry.filename), str(entry.order), style=style)

    console.print(table)
    console.print(f"{len(result.files)} document(s), {len(result.unmatched)} unrecognised", style="dim")
    return 0
