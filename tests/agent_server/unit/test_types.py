"""
Unit tests for wire types, the config store and query options
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import List

import pytest

from backend.agent_server.runtime.config_store import ConfigStore
from backend.agent_server.runtime.errors import ConfigInvalid, MalformedMessage
from backend.agent_server.runtime.query_engine import build_query_options, serialize_event
from backend.agent_server.runtime.types import (
    CreateFileCommand,
    FileEncoding,
    InterruptCommand,
    ListFilesCommand,
    QueryConfig,
    ReadFileCommand,
    UserMessageCommand,
    parse_inbound,
)


# ============================================
# parse_inbound
# ============================================


class TestParseInbound:
    def test_user_message(self):
        data = {"type": "user", "message": {"role": "user", "content": "hi"}}
        command = parse_inbound(json.dumps({"type": "user_message", "data": data}))
        assert command == UserMessageCommand(data=data)

    def test_interrupt(self):
        assert parse_inbound('{"type": "interrupt"}') == InterruptCommand()

    def test_create_file_defaults_to_utf8(self):
        command = parse_inbound('{"type": "create_file", "path": "a.txt", "content": "x"}')
        assert command == CreateFileCommand(path="a.txt", content="x", encoding=FileEncoding.UTF8)

    def test_read_file_base64(self):
        command = parse_inbound(b'{"type": "read_file", "path": "a.bin", "encoding": "base64"}')
        assert command == ReadFileCommand(path="a.bin", encoding=FileEncoding.BASE64)

    def test_list_files_without_path(self):
        assert parse_inbound('{"type": "list_files"}') == ListFilesCommand(path=None)

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2, 3]",
            '{"type": "shutdown"}',
            '{"data": {}}',
            '{"type": "user_message", "data": "hello"}',
            '{"type": "create_file", "path": "a.txt"}',
            '{"type": "read_file", "path": 7}',
            '{"type": "read_file", "path": "a", "encoding": "latin-1"}',
            '{"type": "list_files", "path": ["a"]}',
        ],
    )
    def test_malformed_frames(self, raw):
        with pytest.raises(MalformedMessage):
            parse_inbound(raw)


# ============================================
# QueryConfig / ConfigStore
# ============================================


class TestConfigStore:
    def test_default_is_empty(self):
        assert ConfigStore().get().to_dict() == {}

    def test_set_replaces_wholesale(self):
        store = ConfigStore()
        store.set({"model": "claude-opus-4-1", "allowedTools": ["Read"]})
        store.set({"systemPrompt": "Be brief."})

        assert store.get().to_dict() == {"systemPrompt": "Be brief."}
        assert store.get().model is None

    def test_unknown_keys_are_echoed(self):
        store = ConfigStore()
        store.set({"model": "m", "maxTurns": 3})
        assert store.get().to_dict() == {"model": "m", "maxTurns": 3}

    @pytest.mark.parametrize("body", [None, [], "text", 42])
    def test_non_object_is_invalid(self, body):
        store = ConfigStore()
        store.set({"model": "kept"})
        with pytest.raises(ConfigInvalid) as exc_info:
            store.set(body)
        assert str(exc_info.value) == "Invalid JSON"
        assert store.get().model == "kept"

    def test_snapshot_is_independent(self):
        store = ConfigStore()
        store.set({"allowedTools": ["Read"]})
        snapshot = store.snapshot()

        store.get().allowed_tools.append("Write")

        assert snapshot.allowed_tools == ["Read"]

    def test_from_dict_copies_input(self):
        body = {"agents": {"reviewer": {"description": "d", "prompt": "p"}}}
        config = QueryConfig.from_dict(body)
        body["agents"]["reviewer"]["prompt"] = "changed"
        assert config.agents["reviewer"]["prompt"] == "p"


# ============================================
# build_query_options
# ============================================


class TestBuildQueryOptions:
    def test_fixed_defaults(self):
        options = build_query_options(QueryConfig(), "/work")
        assert options.cwd == "/work"
        assert options.permission_mode == "bypassPermissions"
        assert options.setting_sources == ["local"]
        assert options.model is None
        assert options.env == {}

    def test_overlay(self):
        config = QueryConfig.from_dict(
            {
                "model": "claude-sonnet-4-5",
                "allowedTools": ["Read", "Bash"],
                "systemPrompt": {"type": "preset", "preset": "claude_code"},
                "mcpServers": {"fs": {"command": "mcp-fs"}},
                "anthropicApiKey": "sk-test",
                "cwd": "/elsewhere",
            }
        )
        options = build_query_options(config, "/work")

        assert options.cwd == "/work"
        assert options.model == "claude-sonnet-4-5"
        assert options.allowed_tools == ["Read", "Bash"]
        assert options.system_prompt == {"type": "preset", "preset": "claude_code"}
        assert options.mcp_servers == {"fs": {"command": "mcp-fs"}}
        assert options.env == {"ANTHROPIC_API_KEY": "sk-test"}


# ============================================
# serialize_event
# ============================================


class Color(Enum):
    RED = "red"


@dataclass
class TextBlock:
    text: str


@dataclass
class AssistantMessage:
    content: List[TextBlock]
    model: str
    extras: dict = field(default_factory=dict)


class TestSerializeEvent:
    def test_sdk_dataclasses_are_tagged(self):
        event = AssistantMessage(content=[TextBlock(text="hi")], model="m", extras={"c": Color.RED})
        assert serialize_event(event) == {
            "type": "assistant",
            "content": [{"type": "text", "text": "hi"}],
            "model": "m",
            "extras": {"c": "red"},
        }

    def test_plain_values_pass_through(self):
        assert serialize_event({"type": "result", "n": 1, "ok": True, "x": None}) == {
            "type": "result",
            "n": 1,
            "ok": True,
            "x": None,
        }

    def test_unknown_objects_become_strings(self):
        class Opaque:
            def __str__(self):
                return "opaque"

        assert serialize_event({"value": Opaque()}) == {"value": "opaque"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
