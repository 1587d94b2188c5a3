"""Tests for stored-row validation and conversion."""

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage
from pydantic import ValidationError

from coderelay.infra.db import message_role, rows_to_messages


class TestRowsToMessages:
    def test_roles_map_to_message_types(self):
        messages = rows_to_messages(
            [
                {"role": "system", "content": "sys"},
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello"},
            ]
        )
        assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage]
        assert [m.content for m in messages] == ["sys", "hi", "hello"]

    def test_extra_columns_ignored(self):
        (message,) = rows_to_messages(
            [{"role": "user", "content": "hi", "position": 4, "chat_id": "c1"}]
        )
        assert message.content == "hi"

    def test_unknown_role_fails_whole_batch(self):
        with pytest.raises(ValidationError):
            rows_to_messages(
                [
                    {"role": "user", "content": "fine"},
                    {"role": "tool", "content": "not allowed"},
                ]
            )

    def test_missing_content_fails(self):
        with pytest.raises(ValidationError):
            rows_to_messages([{"role": "user"}])

    def test_empty_history(self):
        assert rows_to_messages([]) == []


class TestMessageRole:
    def test_round_trip_roles(self):
        assert message_role(SystemMessage("s")) == "system"
        assert message_role(HumanMessage("u")) == "user"
        assert message_role(AIMessage("a")) == "assistant"

    def test_unsupported_type_raises(self):
        with pytest.raises(ValueError, match="tool"):
            message_role(ToolMessage("result", tool_call_id="call-1"))
