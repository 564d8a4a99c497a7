"""Service commands: check, restart, serve."""

from __future__ import annotations

import logging

from rich.console import Console

from ..editor import ConfigEditor
from ..errors import ServiceError, SbconfError
from ..server import make_server
from ..workspace import DiscoveryResult

logger = logging.getLogger(__name__)


def run_check(editor: ConfigEditor) -> int:
    err = Console(stderr=True)
    try:
        editor.check()
    except ServiceError as e:
        err.print("Configuration check failed:", style="bold red")
        err.print(e.output.rstrip() or str(e), markup=False, highlight=False)
        return 1
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1
    Console().print("Configuration check passed.", style="green")
    return 0


def run_restart(editor: ConfigEditor) -> int:
    err = Console(stderr=True)
    try:
        editor.restart()
    except SbconfError as e:
        err.print(str(e), style="bold red", markup=False)
        return 1
    Console().print("sing-box service restarted.", style="green")
    return 0


def run_serve(editor: ConfigEditor, discovery: DiscoveryResult, host: str, port: int) -> int:
    """Serve the HTTP API until interrupted."""
    err = Console(stderr=True)
    try:
        server = make_server(editor, discovery, host, port)
    except OSError as e:
        err.print(f"Cannot listen on {host}:{port}: {e}", style="bold red", markup=False)
        return 1

    bound_host, bound_port = server.server_address[:2]
    err.print(f"[bold]Serving[/bold] http://{bound_host}:{bound_port}/api/")
    active = editor.active.get()
    err.print(f"  Active directory: {active if active else '(none)'}", markup=False)
    err.print("[dim]Press Ctrl+C to stop[/dim]")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        server.server_close()
    return 0
