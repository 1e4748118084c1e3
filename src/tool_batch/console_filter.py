# console_filter.py
# Console message shaping pipeline.
#
# Stages run in a fixed order, each on the previous stage's output:
#   level -> pattern -> dedup -> window
# A stage whose option is unset returns its input unchanged.
#
# stdlib only; pure functions, inputs are never mutated.

import re
from collections.abc import Iterable, Sequence

from tool_batch.models import ConsoleFilterOptions, ConsoleMessage

DEFAULT_KIND = "log"


def _kind(message: ConsoleMessage) -> str:
    return message.kind or DEFAULT_KIND


def _render(message: ConsoleMessage) -> str:
    # Patterns and the dedup key both see "[KIND] text".
    return f"[{_kind(message).upper()}] {message.text}"


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _by_level(messages: list[ConsoleMessage], levels: Iterable[str] | None) -> list[ConsoleMessage]:
    if not levels:
        return messages
    wanted = set(levels)
    return [m for m in messages if _kind(m) in wanted]


def _matcher(pattern: str):
    """
    Case-insensitive regex search. A pattern that does not compile is used
    as a case-sensitive substring instead.
    """
    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error:
        return lambda text: pattern in text
    return lambda text: regex.search(text) is not None


def _by_pattern(messages: list[ConsoleMessage], patterns: Sequence[str] | None) -> list[ConsoleMessage]:
    if not patterns:
        return messages
    matchers = [_matcher(p) for p in patterns]
    return [m for m in messages if any(match(_render(m)) for match in matchers)]


def _dedup(messages: list[ConsoleMessage], enabled: bool) -> list[ConsoleMessage]:
    if not enabled:
        return messages
    seen: set[str] = set()
    kept: list[ConsoleMessage] = []
    for message in messages:
        key = _render(message)
        if key in seen:
            continue
        seen.add(key)
        kept.append(message)
    return kept


def _window(messages: list[ConsoleMessage], max_messages: int) -> list[ConsoleMessage]:
    if len(messages) <= max_messages:
        return messages
    # Most recent entries win.
    return messages[len(messages) - max_messages:]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def filter_console_messages(
    messages: Iterable[ConsoleMessage],
    options: ConsoleFilterOptions | None = None,
) -> list[ConsoleMessage]:
    """
    Apply level, pattern, dedup and window stages to `messages`.

    Returns a new list; `options=None` applies the defaults (window of 10,
    no other stage).
    """
    if options is None:
        options = ConsoleFilterOptions()

    filtered = list(messages)
    filtered = _by_level(filtered, options.levels)
    filtered = _by_pattern(filtered, options.patterns)
    filtered = _dedup(filtered, options.remove_duplicates)
    filtered = _window(filtered, options.max_messages)
    return filtered
