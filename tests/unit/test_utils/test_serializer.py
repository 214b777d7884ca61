"""Unit tests for buildloop.utils.serializer module."""

import json

import pytest

from buildloop.execution.types import FileEntry, SandboxInfo
from buildloop.utils.serializer import (
    deserialize,
    json_serialize,
    safe_serialize,
    schema_name_for,
    serialize,
)


class TestSerialize:
    """Tests for serialize function."""

    def test_primitives_pass_through(self):
        """Test that JSON primitives are returned unchanged."""
        assert serialize("text") == "text"
        assert serialize(3) == 3
        assert serialize(None) is None

    def test_pydantic_model(self):
        """Test that models are dumped in JSON mode."""
        assert serialize(FileEntry(path="a.ts", content="x")) == {"path": "a.ts", "content": "x"}

    def test_nested_models(self):
        """Test that models nested in containers are dumped."""
        data = {"files": [FileEntry(path="a.ts", content="x")]}
        assert serialize(data) == {"files": [{"path": "a.ts", "content": "x"}]}

    def test_unserializable_raises(self):
        """Test that arbitrary objects are rejected."""
        with pytest.raises(TypeError, match="not JSON serializable"):
            serialize(object())


class TestJsonSerialize:
    """Tests for json_serialize function."""

    def test_string_passthrough(self):
        """Test that strings are not quoted again."""
        assert json_serialize("plain output") == "plain output"

    def test_dict(self):
        """Test that dicts become JSON text."""
        assert json.loads(json_serialize({"a": 1})) == {"a": 1}


class TestSafeSerialize:
    """Tests for safe_serialize function."""

    def test_falls_back_to_name(self):
        """Test that callables are named instead of raising."""

        def helper():
            pass

        assert safe_serialize(helper) == "<helper>"

    def test_falls_back_to_type_name(self):
        """Test that other objects use their type name."""

        class Opaque:
            pass

        assert safe_serialize(Opaque()) == "<Opaque>"


class TestSchemaRoundTrip:
    """Tests for schema_name_for and deserialize."""

    def test_schema_name_for_model(self):
        """Test the import path recorded for a model."""
        assert schema_name_for(SandboxInfo(sandbox_id="s", is_reused=True)) == (
            "buildloop.execution.types.SandboxInfo"
        )

    def test_schema_name_for_plain_values(self):
        """Test that non-model values have no schema."""
        assert schema_name_for({"a": 1}) is None
        assert schema_name_for([]) is None
        assert schema_name_for("text") is None

    @pytest.mark.asyncio
    async def test_deserialize_rebuilds_model(self):
        """Test that a stored dict is rebuilt into its model."""
        result = await deserialize(
            {"sandbox_id": "sbx-1", "is_reused": False}, "buildloop.execution.types.SandboxInfo"
        )
        assert isinstance(result, SandboxInfo)
        assert result.sandbox_id == "sbx-1"

    @pytest.mark.asyncio
    async def test_deserialize_rebuilds_list_of_models(self):
        """Test that list schemas rebuild every item."""
        entries = [FileEntry(path="a", content="1"), FileEntry(path="b", content="2")]
        stored = serialize(entries)
        result = await deserialize(stored, schema_name_for(entries))
        assert result == entries

    @pytest.mark.asyncio
    async def test_deserialize_without_schema_returns_input(self):
        """Test that values without schema are returned as-is."""
        assert await deserialize({"a": 1}) == {"a": 1}
