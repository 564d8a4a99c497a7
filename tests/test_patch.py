import json

import pytest

from sbconf.document import get
from sbconf.errors import MalformedPath, PathNotFound, WriteFailure
from sbconf.patch import is_structured_fragment, read_value, write_value
from sbconf.paths import resolve_path


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{"a": 1}', True),
        ("  [1, 2]\n", True),
        ("{}", True),
        ("{", False),
        ("[1, 2", False),
        ("{]", False),
        ("203.0.113.7", False),
        ("", False),
        ('"{quoted}"', False),
    ],
)
def test_is_structured_fragment(text: str, expected: bool) -> None:
    assert is_structured_fragment(text) is expected


def test_empty_path_replaces_document_verbatim() -> None:
    assert write_value(b'{"a": 1}', "", "  anything goes  ") == b"  anything goes  "


def test_scalar_is_written_as_escaped_string(outbounds_doc: bytes) -> None:
    updated = write_value(outbounds_doc, "outbounds.1.server_port", "8443")

    node = get(updated, "outbounds.1.server_port")
    assert node is not None
    assert node.kind == "string"
    assert read_value(updated, "outbounds.1.server_port") == "8443"


def test_scalar_write_leaves_other_bytes_alone(outbounds_doc: bytes) -> None:
    updated = write_value(outbounds_doc, "outbounds.3.server", "192.0.2.1")
    assert updated == outbounds_doc.replace(b'"198.51.100.2"', b'"192.0.2.1"')


def test_scalar_with_quotes_round_trips() -> None:
    doc = b'{"route": {"final": "direct"}}'
    updated = write_value(doc, "route.final", 'say "hi"\n')
    assert json.loads(updated) == {"route": {"final": 'say "hi"\n'}}
    assert read_value(updated, "route.final") == 'say "hi"\n'


def test_structured_fragment_is_spliced_raw(outbounds_doc: bytes) -> None:
    fragment = '{\n  // moved to a new provider\n  "type": "direct", "tag": "proxy-hk"\n}'
    updated = write_value(outbounds_doc, "outbounds.proxy-hk", "\n" + fragment + "\n  ")

    assert "// moved to a new provider" in updated.decode("utf-8")
    assert read_value(updated, "outbounds.proxy-hk") == fragment
    # The fragment bypasses validation, so a strict parser rejects the result.
    with pytest.raises(json.JSONDecodeError):
        json.loads(updated)


def test_array_fragment_replaces_array() -> None:
    doc = b'{"dns": {"servers": []}}'
    updated = write_value(doc, "dns.servers", '[{"address": "1.1.1.1"}]')
    assert updated == b'{"dns": {"servers": [{"address": "1.1.1.1"}]}}'


def test_resolution_uses_given_bytes(outbounds_doc: bytes) -> None:
    renamed = write_value(outbounds_doc, "outbounds.1", '{"type": "shadowsocks", "tag": "proxy-sg"}')
    # The earlier "proxy-hk" is gone; the duplicate at index 3 is now the first match.
    assert resolve_path(renamed, "outbounds.proxy-hk") == "outbounds.3"
    assert resolve_path(renamed, "outbounds.proxy-sg") == "outbounds.1"


def test_missing_tag_reports_both_paths(outbounds_doc: bytes) -> None:
    with pytest.raises(PathNotFound) as excinfo:
        write_value(outbounds_doc, "outbounds.nope", "x")
    assert excinfo.value.symbolic_path == "outbounds.nope"
    assert excinfo.value.resolved_path == "outbounds.nope"
    assert "outbounds.nope" in str(excinfo.value)


def test_missing_positional_path_raises(outbounds_doc: bytes) -> None:
    with pytest.raises(PathNotFound) as excinfo:
        write_value(outbounds_doc, "outbounds.9", "x")
    assert excinfo.value.resolved_path == "outbounds.9"

    with pytest.raises(PathNotFound):
        write_value(outbounds_doc, "outbounds.2.server", "x")


def test_failed_write_leaves_input_untouched(outbounds_doc: bytes) -> None:
    original = bytes(outbounds_doc)
    with pytest.raises(PathNotFound):
        write_value(outbounds_doc, "outbounds.missing", '{"tag": "missing"}')
    assert outbounds_doc == original


def test_malformed_path_is_propagated() -> None:
    with pytest.raises(MalformedPath):
        write_value(b'{"dns": {}}', "dns..servers", "x")


def test_read_value_whole_document() -> None:
    assert read_value(b'{"a": 1}\n', "") == '{"a": 1}\n'


def test_read_value_by_tag(outbounds_doc: bytes) -> None:
    text = read_value(outbounds_doc, "outbounds.direct")
    assert text == '{"type": "direct", "tag": "direct"}'


def test_read_value_missing_raises(outbounds_doc: bytes) -> None:
    with pytest.raises(PathNotFound) as excinfo:
        read_value(outbounds_doc, "route.rules")
    assert excinfo.value.resolved_path == "route.rules"


def test_unencodable_whole_document_raises_write_failure() -> None:
    with pytest.raises(WriteFailure):
        write_value(b"{}", "", '{"a": "\ud800"}')


def test_oversized_array_index_is_not_found() -> None:
    with pytest.raises(PathNotFound):
        write_value(b'{"dns": {"servers": []}}', "dns.servers." + "1" * 5000, "x")
    with pytest.raises(PathNotFound):
        read_value(b'{"dns": {"servers": []}}', "dns.servers." + "9" * 5000)
