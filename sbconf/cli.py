"""CLI entrypoint for sbconf."""

import logging
import sys
from pathlib import Path

import click

from . import __version__


def _read_content(source: Path | None, use_stdin: bool, value: str | None = None) -> str:
    if use_stdin:
        return click.get_text_stream("stdin").read()
    if source is not None:
        return source.read_text(encoding="utf-8")
    if value is None:
        raise click.UsageError("Provide a value, --from FILE, or --stdin.")
    return value


@click.group()
@click.version_option(__version__, prog_name="sbconf")
@click.option(
    "--dir",
    "-d",
    "directory",
    envvar="SBCONF_DIR",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="sing-box configuration directory (defaults to the systemd-detected or first found directory)",
)
@click.option(
    "--config",
    "-c",
    "settings_path",
    envvar="SBCONF_CONFIG",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Settings TOML (defaults to ~/.config/sbconf/config.toml when present)",
)
@click.option("--verbose", is_flag=True, help="Log discovery and request details to stderr")
@click.pass_context
def cli(ctx: click.Context, directory: Path | None, settings_path: Path | None, verbose: bool) -> None:
    """sbconf - Tag-aware editor for sing-box configuration directories.

    Browse, read and patch the JSON documents in a sing-box conf directory,
    addressing inbounds and outbounds by their tag.
    """
    from .config import load_settings
    from .editor import ConfigEditor
    from .errors import InvalidDirectory

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(settings_path)
    except (FileNotFoundError, ValueError) as e:
        raise click.BadParameter(str(e), param_hint="--config / -c") from e

    editor, discovery = ConfigEditor.discover(settings)
    if directory is not None:
        try:
            editor.active.set(directory)
        except InvalidDirectory as e:
            raise click.BadParameter(str(e), param_hint="--dir / -d") from e

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["editor"] = editor
    ctx.obj["discovery"] = discovery


# -----------------------------------------------------------------------------
# Directory commands
# -----------------------------------------------------------------------------


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def paths(ctx: click.Context, output_json: bool) -> None:
    """List discovered configuration directories.

    Directories come from the sing-box systemd unit (`-C`/`-D` on ExecStart)
    and the default search list in the settings.
    """
    from .commands.overview import run_paths

    sys.exit(run_paths(ctx.obj["editor"], ctx.obj["discovery"], output_json=output_json))


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def overview(ctx: click.Context, output_json: bool) -> None:
    """Group the directory's documents by function.

    Each file is filed under the first recognised top-level key (log, dns,
    inbounds, outbounds, route, ...). Unrecognised files are listed last as
    "其他-<name>".
    """
    from .commands.overview import run_overview

    sys.exit(run_overview(ctx.obj["editor"], output_json=output_json))


# -----------------------------------------------------------------------------
# Document commands
# -----------------------------------------------------------------------------


@cli.command()
@click.argument("filename")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def keys(ctx: click.Context, filename: str, output_json: bool) -> None:
    """List navigable keys of FILENAME.

    A document with a single top-level container lists that container's
    children instead; inbounds/outbounds entries are shown by tag.
    """
    from .commands.edit import run_keys

    sys.exit(run_keys(ctx.obj["editor"], filename, output_json=output_json))


@cli.command()
@click.argument("filename")
@click.argument("path")
@click.pass_context
def resolve(ctx: click.Context, filename: str, path: str) -> None:
    """Print the positional form of a symbolic PATH.

    Examples:

        sbconf resolve outbounds.json outbounds.proxy-hk
    """
    from .commands.edit import run_resolve

    sys.exit(run_resolve(ctx.obj["editor"], filename, path))


@cli.command()
@click.argument("filename")
@click.argument("path", required=False, default="")
@click.pass_context
def get(ctx: click.Context, filename: str, path: str) -> None:
    """Print the value at PATH (the whole document when omitted).

    Examples:

        sbconf get outbounds.json outbounds.proxy-hk

        sbconf get dns.json dns.servers
    """
    from .commands.edit import run_get

    sys.exit(run_get(ctx.obj["editor"], filename, path))


@cli.command("set")
@click.argument("filename")
@click.argument("path")
@click.argument("value", required=False)
@click.option(
    "--from",
    "source",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the value from a file",
)
@click.option("--stdin", "use_stdin", is_flag=True, help="Read the value from stdin")
@click.pass_context
def set_value(
    ctx: click.Context,
    filename: str,
    path: str,
    value: str | None,
    source: Path | None,
    use_stdin: bool,
) -> None:
    """Store VALUE at PATH in FILENAME and save it.

    A value that looks like an object or array ({...} / [...]) is spliced in
    verbatim, comments included, without validation. Anything else is stored
    as a JSON string.

    Examples:

        sbconf set outbounds.json outbounds.1.server 203.0.113.7

        sbconf set outbounds.json outbounds.proxy-hk --from hk.jsonc
    """
    from .commands.edit import run_set

    content = _read_content(source, use_stdin, value)
    sys.exit(run_set(ctx.obj["editor"], filename, path, content))


@cli.command()
@click.argument("filename")
@click.option(
    "--from",
    "source",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the new document from a file",
)
@click.option("--stdin", "use_stdin", is_flag=True, help="Read the new document from stdin")
@click.pass_context
def replace(ctx: click.Context, filename: str, source: Path | None, use_stdin: bool) -> None:
    """Overwrite FILENAME entirely with new content."""
    from .commands.edit import run_replace

    content = _read_content(source, use_stdin)
    sys.exit(run_replace(ctx.obj["editor"], filename, content))


# -----------------------------------------------------------------------------
# Service commands
# -----------------------------------------------------------------------------


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Run `sing-box check -C` on the active directory."""
    from .commands.service_cmd import run_check

    sys.exit(run_check(ctx.obj["editor"]))


@cli.command()
@click.pass_context
def restart(ctx: click.Context) -> None:
    """Restart the sing-box service."""
    from .commands.service_cmd import run_restart

    sys.exit(run_restart(ctx.obj["editor"]))


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to settings, 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Bind port (defaults to settings, 80)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Serve the JSON API over HTTP.

    Examples:

        sbconf serve --host 127.0.0.1 --port 8080
    """
    from .commands.service_cmd import run_serve

    settings = ctx.obj["settings"]
    sys.exit(
        run_serve(
            ctx.obj["editor"],
            ctx.obj["discovery"],
            host if host is not None else settings.host,
            port if port is not None else settings.port,
        )
    )


@cli.command("log")
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N entries")
@click.option("--operation", default=None, help="Filter by operation (save-value, replace-document, ...)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON Lines")
@click.pass_context
def audit_log(ctx: click.Context, last_n: int | None, operation: str | None, output_json: bool) -> None:
    """Show the audit log of saves, directory switches and restarts."""
    from .commands.log_cmd import run_log

    sys.exit(run_log(ctx.obj["editor"], last_n=last_n, operation=operation, output_json=output_json))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
