import json
import subprocess
import threading
from pathlib import Path
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

import pytest

from sbconf import service
from sbconf.config import Settings
from sbconf.editor import ConfigEditor
from sbconf.server import make_server
from sbconf.workspace import ActiveDirectory, DiscoveryResult


def _serve(editor: ConfigEditor, discovery: DiscoveryResult):
    server = make_server(editor, discovery, "127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    return server, f"http://{host}:{port}"


@pytest.fixture
def api(editor: ConfigEditor, config_dir: Path):
    server, base = _serve(editor, DiscoveryResult(found_paths=[config_dir], initial_active=config_dir))
    yield base
    server.shutdown()
    server.server_close()


def _request(base: str, method: str, path: str, body=None, raw: bytes | None = None):
    data = raw if raw is not None else (json.dumps(body).encode("utf-8") if body is not None else b"")
    req = Request(base + path, data=data if method == "POST" else None, method=method)
    req.add_header("Content-Type", "application/json")
    try:
        with urlopen(req, timeout=5) as resp:
            return resp.status, resp.headers.get_content_type(), resp.read().decode("utf-8")
    except HTTPError as e:
        return e.code, e.headers.get_content_type(), e.read().decode("utf-8")


def _get(base: str, route: str, **params: str):
    query = f"?{urlencode(params)}" if params else ""
    return _request(base, "GET", f"/api/{route}{query}")


def test_get_config_paths(api: str, config_dir: Path) -> None:
    status, ctype, text = _get(api, "get_config_paths")
    assert status == 200
    assert ctype == "application/json"
    assert json.loads(text) == {
        "found_paths": [str(config_dir)],
        "systemd_default": "",
        "current_active_path": str(config_dir),
    }


def test_get_functional_configs(api: str, config_dir: Path) -> None:
    status, _, text = _get(api, "get_functional_configs")
    payload = json.loads(text)

    assert status == 200
    assert payload["active_config_path"] == str(config_dir)
    assert payload["ordered_functional_config"][2] == {
        "FunctionName": "出站",
        "FileName": "02_outbounds.json",
        "Order": 5,
    }


def test_get_top_keys(api: str) -> None:
    status, _, text = _get(api, "get_top_keys", filename="01_dns.json")
    assert status == 200
    assert json.loads(text) == {"keys": ["servers"], "root_context_key": "dns"}


def test_get_content_is_plain_text(api: str) -> None:
    status, ctype, text = _get(api, "get_content", filename="02_outbounds.json", path="outbounds.direct")
    assert status == 200
    assert ctype == "text/plain"
    assert text == '{"type": "direct", "tag": "direct"}'


def test_save_then_read_by_tag(api: str, config_dir: Path) -> None:
    fragment = '{"type": "direct", "tag": "proxy-hk" /* parked */}'
    status, _, text = _request(
        api,
        "POST",
        "/api/save_content",
        {"filename": "02_outbounds.json", "path": "outbounds.proxy-hk", "content": fragment},
    )
    assert status == 200, text
    assert json.loads(text)["status"] == "success"

    _, _, content = _get(api, "get_content", filename="02_outbounds.json", path="outbounds.proxy-hk")
    assert content == fragment


@pytest.mark.parametrize(
    "params, expected",
    [
        ({"filename": "../sbconf.json"}, 403),
        ({"filename": "notes.txt"}, 403),
        ({"filename": "02_outbounds.json", "path": "outbounds.nope"}, 404),
        ({"filename": "02_outbounds.json", "path": "outbounds..x"}, 400),
    ],
)
def test_get_content_errors(api: str, params: dict, expected: int) -> None:
    status, ctype, text = _get(api, "get_content", **params)
    assert status == expected
    assert ctype == "application/json"
    assert "error" in json.loads(text)


def test_unknown_route_and_wrong_method(api: str) -> None:
    assert _get(api, "nothing_here")[0] == 404
    assert _get(api, "save_content")[0] == 405
    assert _request(api, "POST", "/api/get_top_keys", {})[0] == 405


def test_bad_request_bodies(api: str) -> None:
    assert _request(api, "POST", "/api/save_content", raw=b"{not json")[0] == 400
    assert _request(api, "POST", "/api/save_content", raw=b"[1]")[0] == 400
    assert _request(api, "POST", "/api/save_content", {"filename": "00_log.json"})[0] == 400
    assert _get(api, "get_top_keys")[0] == 400


def test_set_active_config_path(api: str, tmp_path: Path) -> None:
    other = tmp_path / "other"
    other.mkdir()

    status, _, _ = _request(api, "POST", "/api/set_active_config_path", {"path": str(other)})
    assert status == 200
    assert json.loads(_get(api, "get_config_paths")[2])["current_active_path"] == str(other)

    status, _, _ = _request(api, "POST", "/api/set_active_config_path", {"path": str(tmp_path / "missing")})
    assert status == 400


def test_check_config_failure_is_500(api: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        service.subprocess,
        "run",
        lambda args, **kwargs: subprocess.CompletedProcess(args, 1, "", "FATAL bad route\n"),
    )
    status, _, text = _request(api, "POST", "/api/check_config")
    assert status == 500
    assert "FATAL bad route" in json.loads(text)["error"]


def test_no_active_directory_is_503(settings: Settings) -> None:
    server, base = _serve(ConfigEditor(settings, ActiveDirectory()), DiscoveryResult())
    try:
        assert _get(base, "get_functional_configs")[0] == 503
        assert _get(base, "get_content", filename="00_log.json")[0] == 503
    finally:
        server.shutdown()
        server.server_close()
