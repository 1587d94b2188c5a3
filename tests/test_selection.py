"""Unit tests for history selection (code-block stripping + capping)."""

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from prometheus_client import REGISTRY

from coderelay.configs.system import HistoryConfig
from coderelay.core.selection import (
    cap_history,
    remove_code_fences,
    select_history,
    strip_code_blocks,
)

CODE_ANSWER = "Here you go:\n```python\nprint('hi')\n```\nRun it."


def _contents(messages):
    return [m.content for m in messages]


# ---------------------------------------------------------------------------
# remove_code_fences
# ---------------------------------------------------------------------------


class TestRemoveCodeFences:
    def test_removes_multiline_block_and_trims(self):
        assert remove_code_fences(CODE_ANSWER) == "Here you go:\n\nRun it."

    def test_removes_every_block_non_greedy(self):
        text = "a ```x``` b ```y``` c"
        assert remove_code_fences(text) == "a  b  c"

    def test_only_code_becomes_empty(self):
        assert remove_code_fences("  ```tsx\n<App />\n```  ") == ""

    def test_unclosed_fence_is_left_alone(self):
        assert remove_code_fences("```js\nconst a = 1;") == "```js\nconst a = 1;"


# ---------------------------------------------------------------------------
# strip_code_blocks
# ---------------------------------------------------------------------------


class TestStripCodeBlocks:
    def test_single_assistant_message_untouched(self):
        messages = [SystemMessage("sys"), HumanMessage("hi"), AIMessage(CODE_ANSWER)]
        result = strip_code_blocks(messages)
        assert result[2] is messages[2]
        assert result[2].content == CODE_ANSWER

    def test_two_latest_assistant_messages_exempt(self):
        messages = [
            SystemMessage("sys"),
            HumanMessage("make an app"),
            AIMessage(CODE_ANSWER),
            HumanMessage("change colour"),
            AIMessage(CODE_ANSWER),
            HumanMessage("add a button"),
            AIMessage(CODE_ANSWER),
            HumanMessage("thanks"),
        ]
        result = strip_code_blocks(messages)
        assert result[2].content == "Here you go:\n\nRun it."
        assert result[4] is messages[4]
        assert result[6] is messages[6]

    def test_user_and_system_messages_never_modified(self):
        messages = [
            SystemMessage("```rules```"),
            HumanMessage("```my code```"),
            AIMessage("```old```"),
            AIMessage("```a```"),
            AIMessage("```b```"),
        ]
        result = strip_code_blocks(messages)
        assert result[0] is messages[0]
        assert result[1] is messages[1]
        assert result[2].content == ""

    def test_example_three_assistant_fences(self):
        messages = [
            SystemMessage("sys"),
            HumanMessage("hi"),
            AIMessage("```a```"),
            AIMessage("```b```"),
            AIMessage("```c```"),
        ]
        result = strip_code_blocks(messages)
        assert _contents(result) == ["sys", "hi", "", "```b```", "```c```"]

    def test_input_not_mutated(self):
        messages = [AIMessage(CODE_ANSWER), AIMessage("x"), AIMessage("y")]
        strip_code_blocks(messages)
        assert messages[0].content == CODE_ANSWER

    def test_stripped_message_keeps_its_type(self):
        messages = [AIMessage(CODE_ANSWER), AIMessage("x"), AIMessage("y")]
        assert isinstance(strip_code_blocks(messages)[0], AIMessage)

    def test_idempotent(self):
        messages = [
            SystemMessage("sys"),
            AIMessage(CODE_ANSWER),
            HumanMessage("q"),
            AIMessage("one ```a``` two"),
            AIMessage("```latest```"),
            AIMessage("```newest```"),
        ]
        once = strip_code_blocks(messages)
        twice = strip_code_blocks(once)
        assert _contents(once) == _contents(twice)
        assert _contents(twice)[-2:] == ["```latest```", "```newest```"]

    def test_custom_exempt_count(self):
        messages = [AIMessage("```a```"), AIMessage("```b```"), AIMessage("```c```")]
        assert _contents(strip_code_blocks(messages, exempt_count=1)) == [
            "",
            "",
            "```c```",
        ]

    def test_empty_history(self):
        assert strip_code_blocks([]) == []

    def test_counter_counts_only_removed_code(self):
        def stripped_total():
            return REGISTRY.get_sample_value("coderelay_code_blocks_stripped_total") or 0.0

        before = stripped_total()
        strip_code_blocks(
            [
                AIMessage("plain answer, no code"),
                AIMessage(CODE_ANSWER),
                AIMessage("x"),
                AIMessage("y"),
            ]
        )
        assert stripped_total() - before == 1

    def test_message_without_code_keeps_identity(self):
        messages = [AIMessage("no fences"), AIMessage("x"), AIMessage("y")]
        assert strip_code_blocks(messages)[0] is messages[0]


# ---------------------------------------------------------------------------
# cap_history
# ---------------------------------------------------------------------------


class TestCapHistory:
    def test_ten_or_fewer_pass_through(self):
        messages = [HumanMessage(str(i)) for i in range(10)]
        assert cap_history(messages) == messages

    def test_twelve_messages_keep_head_and_tail(self):
        messages = [HumanMessage(str(i)) for i in range(12)]
        result = cap_history(messages)
        assert _contents(result) == ["0", "1", "2", "5", "6", "7", "8", "9", "10", "11"]

    def test_eleven_messages_drop_exactly_one(self):
        messages = [HumanMessage(str(i)) for i in range(11)]
        result = cap_history(messages)
        assert len(result) == 10
        assert _contents(result) == ["0", "1", "2", "4", "5", "6", "7", "8", "9", "10"]

    def test_short_lists_do_not_duplicate(self):
        for n in range(4):
            messages = [HumanMessage(str(i)) for i in range(n)]
            assert cap_history(messages) == messages

    def test_returns_new_list(self):
        messages = [HumanMessage("a")]
        assert cap_history(messages) is not messages


# ---------------------------------------------------------------------------
# select_history
# ---------------------------------------------------------------------------


class TestSelectHistory:
    def test_strips_before_capping(self):
        messages = [SystemMessage("sys"), HumanMessage("q0"), AIMessage(CODE_ANSWER)]
        for i in range(1, 6):
            messages += [HumanMessage(f"q{i}"), AIMessage(f"```v{i}```")]
        assert len(messages) == 13

        result = select_history(messages)

        assert len(result) == 10
        # Head keeps the first exchange, with its code removed.
        assert _contents(result[:3]) == ["sys", "q0", "Here you go:\n\nRun it."]
        assert _contents(result[3:]) == [
            "",
            "q3",
            "",
            "q4",
            "```v4```",
            "q5",
            "```v5```",
        ]

    def test_uses_config_counts(self):
        config = HistoryConfig(head_count=1, tail_count=2, exempt_assistant_count=0)
        messages = [SystemMessage("sys"), AIMessage("```a```"), HumanMessage("q"), AIMessage("```b```")]
        assert _contents(select_history(messages, config)) == ["sys", "q", ""]
