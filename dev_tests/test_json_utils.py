"""
Tests for json_utils.py - orjson wrapper module.
"""

import uuid

import pytest

import json_utils as json


class TestDumps:
    """Tests for json.dumps() function."""

    def test_returns_str(self):
        """
        Given: An empty dictionary
        When: dumps() is called
        Then: Returns '{}' as str, not bytes
        """
        result = json.dumps({})
        assert result == "{}"
        assert isinstance(result, str)

    def test_unicode_is_kept(self):
        assert json.loads(json.dumps({"q": "¿Qué es la fotosíntesis?"})) == {"q": "¿Qué es la fotosíntesis?"}

    def test_indent_pretty_prints(self):
        assert json.dumps({"a": 1}, indent=2) == '{\n  "a": 1\n}'

    def test_non_str_keys(self):
        assert json.loads(json.dumps({0: "Thylakoid"})) == {"0": "Thylakoid"}

    def test_uuid(self):
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert json.dumps({"id": value}) == '{"id":"12345678-1234-5678-1234-567812345678"}'

    def test_default_handles_unknown_types(self):
        assert json.dumps({"s": {1, 2}}, default=sorted) == '{"s":[1,2]}'

    def test_unknown_type_without_default_raises(self):
        with pytest.raises(TypeError):
            json.dumps({"s": object()})


class TestDumpsBytes:

    def test_returns_bytes(self):
        result = json.dumps_bytes({"model": "m", "payload": {"contents": []}})
        assert isinstance(result, bytes)
        assert json.loads(result) == {"model": "m", "payload": {"contents": []}}


class TestLoads:

    def test_accepts_str_and_bytes(self):
        assert json.loads('{"a": [1, 2]}') == {"a": [1, 2]}
        assert json.loads(b'{"a": null}') == {"a": None}

    @pytest.mark.parametrize("text", ["", "{", "{'a': 1}", "no json here"])
    def test_invalid_raises_decode_error(self, text):
        with pytest.raises(json.JSONDecodeError):
            json.loads(text)

    def test_decode_error_is_value_error(self):
        with pytest.raises(ValueError):
            json.loads("[1,")
