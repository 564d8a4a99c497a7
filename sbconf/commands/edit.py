"""Document-level commands: keys, resolve, get, set, replace."""

from __future__ import annotations

import json
import sys

from rich.console import Console

from ..editor import ConfigEditor
from ..errors import SbconfError


def run_keys(editor: ConfigEditor, filename: str, *, output_json: bool = False) -> int:
    err = Console(stderr=True)
    try:
        listing = editor.top_keys(filename)
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1

    if output_json:
        print(json.dumps(listing.to_dict(), indent=2, ensure_ascii=False))
        return 0

    console = Console()
    if listing.context_key is not None:
        console.print(listing.context_key, style="bold", markup=False, highlight=False)
        prefix = "  "
    else:
        prefix = ""
    for key in listing.keys:
        console.print(f"{prefix}{key}", highlight=False, markup=False)
    return 0


def run_resolve(editor: ConfigEditor, filename: str, path: str) -> int:
    err = Console(stderr=True)
    try:
        resolved = editor.resolve(filename, path)
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1
    print(resolved)
    return 0


def run_get(editor: ConfigEditor, filename: str, path: str) -> int:
    err = Console(stderr=True)
    try:
        text = editor.read(filename, path)
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1
    sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")
    return 0


def run_set(editor: ConfigEditor, filename: str, path: str, value: str) -> int:
    """Store `value` at `path`; objects/arrays are spliced raw, anything else as a string."""
    err = Console(stderr=True)
    if not path:
        err.print("Path is empty; use 'replace' to overwrite the whole document.", style="bold red", markup=False)
        return 2
    try:
        resolved = editor.resolve(filename, path)
        editor.save(filename, value, path)
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1

    target = path if resolved == path else f"{path} -> {resolved}"
    Console().print(f"Saved {filename}: {target}", highlight=False, markup=False)
    return 0


def run_replace(editor: ConfigEditor, filename: str, content: str) -> int:
    err = Console(stderr=True)
    try:
        written = editor.save(filename, content)
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1
    Console().print(f"Replaced {filename} ({len(written)} bytes)", highlight=False, markup=False)
    return 0
