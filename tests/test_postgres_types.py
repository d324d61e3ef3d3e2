import pytest

from ormkit.postgres_types import Hstore, Jsonb


def test_hstore_encoding_format():
    assert Hstore({"a": "b"}).value() == b'"a"=>"b"'


def test_hstore_empty_is_null():
    assert Hstore().value() is None


def test_hstore_round_trip_with_null():
    original = Hstore({"colour": "red", "size": None})
    restored = Hstore()
    restored.scan(original.value())
    assert restored == original
    assert restored["size"] is None


def test_hstore_round_trip_with_escapes():
    original = Hstore({'say "hi"': "back\\slash", "comma,key": "x=>y"})
    restored = Hstore()
    restored.scan(original.value())
    assert restored == original


def test_hstore_scan_accepts_text_with_spaces():
    restored = Hstore()
    restored.scan('"a" => "1", "b" => NULL')
    assert restored == {"a": "1", "b": None}


def test_hstore_scan_replaces_contents():
    store = Hstore({"old": "value"})
    store.scan(b'"new"=>"value"')
    assert store == {"new": "value"}


def test_hstore_scan_null_or_empty_keeps_contents():
    store = Hstore({"keep": "me"})
    store.scan(None)
    store.scan(b"")
    assert store == {"keep": "me"}


def test_hstore_scan_rejects_malformed_input():
    with pytest.raises(ValueError):
        Hstore().scan(b'"a" "b"')
    with pytest.raises(ValueError):
        Hstore().scan(b'"a"=>"unterminated')


def test_hstore_scan_rejects_other_types():
    with pytest.raises(TypeError):
        Hstore().scan(42)


def test_jsonb_empty_is_null():
    assert Jsonb().value() is None


def test_jsonb_round_trip():
    raw = b'{"name": "widget", "tags": [1, 2]}'
    doc = Jsonb()
    doc.scan(raw)
    assert doc.value() == raw
    assert Jsonb(doc.value()) == doc


def test_jsonb_scan_rejects_text():
    with pytest.raises(TypeError, match="Failed to unmarshal JSONB value:"):
        Jsonb().scan('{"a": 1}')


def test_jsonb_scan_rejects_invalid_json():
    doc = Jsonb(b"[1]")
    with pytest.raises(ValueError):
        doc.scan(b"{not json")
    assert doc.raw == b"[1]"