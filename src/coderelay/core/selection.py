"""History selection: fit a chat's stored turns into a small context.

Two steps, always in this order:

1. ``strip_code_blocks`` removes fenced code from every assistant turn
   except the most recent ones.  Code is the most token-expensive content
   and older iterations of it are superseded by later answers.
2. ``cap_history`` keeps the leading messages (system prompt and the first
   exchange) plus the most recent tail once the list grows too long.

Both steps return new lists and never mutate their input.
"""

import logging
import re

from langchain_core.messages import AIMessage, BaseMessage

from coderelay.configs.system import HistoryConfig

from .metrics import CODE_BLOCKS_STRIPPED_TOTAL, HISTORY_MESSAGES_SELECTED

logger = logging.getLogger(__name__)

CODE_FENCE_RE = re.compile(r"```[\s\S]*?```")

DEFAULT_EXEMPT_ASSISTANT_COUNT = 2
DEFAULT_HEAD_COUNT = 3
DEFAULT_TAIL_COUNT = 7


def _is_assistant(msg: BaseMessage) -> bool:
    return isinstance(msg, AIMessage)


def _latest_assistant_indices(messages: list[BaseMessage], count: int) -> set[int]:
    found: set[int] = set()
    for i in range(len(messages) - 1, -1, -1):
        if len(found) >= count:
            break
        if _is_assistant(messages[i]):
            found.add(i)
    return found


def remove_code_fences(text: str) -> str:
    """Drop every fenced code block from *text* and trim surrounding whitespace."""
    return CODE_FENCE_RE.sub("", text).strip()


def strip_code_blocks(
    messages: list[BaseMessage],
    exempt_count: int = DEFAULT_EXEMPT_ASSISTANT_COUNT,
) -> list[BaseMessage]:
    """Strip code blocks from all but the latest *exempt_count* assistant turns.

    System and user messages are returned untouched.
    """
    exempt = _latest_assistant_indices(messages, exempt_count)
    result: list[BaseMessage] = []
    for i, msg in enumerate(messages):
        if _is_assistant(msg) and i not in exempt:
            content = str(msg.content)
            stripped = remove_code_fences(content)
            if stripped != content:
                msg = msg.model_copy(update={"content": stripped})
                if CODE_FENCE_RE.search(content):
                    CODE_BLOCKS_STRIPPED_TOTAL.inc()
        result.append(msg)
    return result


def cap_history(
    messages: list[BaseMessage],
    head: int = DEFAULT_HEAD_COUNT,
    tail: int = DEFAULT_TAIL_COUNT,
) -> list[BaseMessage]:
    """Keep the first *head* and last *tail* messages once over ``head + tail``.

    Shorter lists pass through unchanged, so the two slices can never
    overlap or duplicate an entry.
    """
    if len(messages) <= head + tail:
        return list(messages)
    return messages[:head] + messages[len(messages) - tail :]


def select_history(
    messages: list[BaseMessage],
    config: HistoryConfig | None = None,
) -> list[BaseMessage]:
    """Reduce a chat's ordered history to what is submitted to the model."""
    config = config or HistoryConfig()
    stripped = strip_code_blocks(messages, config.exempt_assistant_count)
    selected = cap_history(stripped, config.head_count, config.tail_count)
    HISTORY_MESSAGES_SELECTED.observe(len(selected))
    logger.debug("Selected %d of %d history messages", len(selected), len(messages))
    return selected
