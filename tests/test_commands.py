"""
Tests for the command runners behind the CLI.

The runners format editor results for the terminal; these call them directly
and check the captured output.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from sbconf.commands.edit import run_get, run_keys, run_resolve, run_set
from sbconf.commands.log_cmd import run_log
from sbconf.commands.overview import run_overview, run_paths
from sbconf.config import Settings
from sbconf.editor import ConfigEditor
from sbconf.workspace import ActiveDirectory, DiscoveryResult


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep rich from wrapping table cells and long tmp paths."""
    monkeypatch.setenv("COLUMNS", "240")


def test_overview_table_lists_every_file(editor: ConfigEditor, capsys) -> None:
    """Unrecognised documents are listed after the ranked ones."""
    (editor.active.require() / "zz_custom.json").write_text('{"custom": true}', encoding="utf-8")

    result = run_overview(editor)

    assert result == 0
    output = capsys.readouterr().out
    assert "00_log.json" in output
    assert "其他-zz_custom" in output
    assert "4 document(s), 1 unrecognised" in output


def test_paths_marks_active_and_systemd(editor: ConfigEditor, config_dir: Path, capsys) -> None:
    discovery = DiscoveryResult(found_paths=[config_dir], systemd_default=config_dir, initial_active=config_dir)

    assert run_paths(editor, discovery) == 0
    output = capsys.readouterr().out
    assert str(config_dir) in output
    assert "active" in output
    assert "systemd" in output


def test_keys_plain_output(editor: ConfigEditor, capsys) -> None:
    assert run_keys(editor, "02_outbounds.json") == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["outbounds", "  direct", "  proxy-hk", "  2", "  proxy-hk"]


def test_resolve_and_get(editor: ConfigEditor, capsys) -> None:
    assert run_resolve(editor, "02_outbounds.json", "outbounds.proxy-hk") == 0
    assert capsys.readouterr().out == "outbounds.1\n"

    assert run_get(editor, "01_dns.json", "") == 0
    assert capsys.readouterr().out == '{"dns": {"servers": []}}\n'


def test_set_refuses_empty_path(editor: ConfigEditor, capsys) -> None:
    assert run_set(editor, "00_log.json", "", "x") == 2
    assert "replace" in capsys.readouterr().err


def test_get_missing_path_reports_error(editor: ConfigEditor, capsys) -> None:
    assert run_get(editor, "02_outbounds.json", "outbounds.gone") == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "outbounds.gone" in captured.err


def test_log_table_and_json(editor: ConfigEditor, capsys) -> None:
    assert run_log(editor) == 1
    capsys.readouterr()

    run_set(editor, "02_outbounds.json", "outbounds.1.server", "192.0.2.5")
    capsys.readouterr()

    assert run_log(editor) == 0
    assert "save-value" in capsys.readouterr().out

    assert run_log(editor, output_json=True, operation="save-value") == 0
    entry = json.loads(capsys.readouterr().out)
    assert entry["resolved_path"] == "outbounds.1.server"


@pytest.mark.parametrize("path", ["outbounds.[/x]", "outbounds.[bold]gone"])
def test_errors_with_markup_characters_are_printed_literally(editor: ConfigEditor, path: str, capsys) -> None:
    assert run_get(editor, "02_outbounds.json", path) == 1
    assert path in capsys.readouterr().err

    assert run_set(editor, "02_outbounds.json", path, "x") == 1
    assert path in capsys.readouterr().err


def test_log_table_shows_markup_characters_literally(editor: ConfigEditor, config_dir: Path, capsys) -> None:
    name = "[bold]x.json"
    (config_dir / name).write_text('{"log": {"level": "info"}}', encoding="utf-8")
    assert run_set(editor, name, "log.level", "warn") == 0
    capsys.readouterr()

    assert run_log(editor) == 0
    assert name in capsys.readouterr().out

    assert run_overview(editor) == 0
    assert name in capsys.readouterr().out


def test_set_succeeds_when_audit_log_is_unwritable(config_dir: Path, tmp_path: Path, capsys) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    settings = Settings(search_paths=(), service_files=(), state_dir=blocker / "state")
    editor = ConfigEditor(settings, ActiveDirectory(config_dir))

    assert run_set(editor, "00_log.json", "log.level", "debug") == 0
    assert "Saved 00_log.json" in capsys.readouterr().out
    assert (config_dir / "00_log.json").read_text(encoding="utf-8") == '{"log": {"level": "debug"}}\n'
