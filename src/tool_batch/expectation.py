# expectation.py
# Global / per-step expectation merging.
#
# Each option is resolved on its own: step value, then global value, then
# the default below. This is the only place defaults are stated.

from tool_batch.models import (
    ConsoleFilterOptions,
    ConsoleOptions,
    EffectiveExpectation,
    ExpectationConfig,
)

DEFAULT_CONSOLE_OPTIONS = ConsoleFilterOptions(
    levels=None,
    patterns=None,
    remove_duplicates=False,
    max_messages=10,
)

# Snapshots and console messages are reported unless a caller opts out.
DEFAULT_INCLUDE_SNAPSHOT = True
DEFAULT_INCLUDE_CONSOLE = True


def default_expectation() -> EffectiveExpectation:
    """The expectation applied when neither the batch nor the step declares one."""
    return EffectiveExpectation(
        include_snapshot=DEFAULT_INCLUDE_SNAPSHOT,
        include_console=DEFAULT_INCLUDE_CONSOLE,
        console_options=DEFAULT_CONSOLE_OPTIONS,
    )


def _console(config: ExpectationConfig | None) -> ConsoleOptions:
    if config is None or config.console_options is None:
        return ConsoleOptions()
    return config.console_options


def _pick(step_value, global_value, default):
    if step_value is not None:
        return step_value
    if global_value is not None:
        return global_value
    return default


def merge(
    global_expectation: ExpectationConfig | None = None,
    step_expectation: ExpectationConfig | None = None,
) -> EffectiveExpectation:
    """
    Resolve the expectation applied to one step.

    An explicit empty list is a present value: it wins over the global list
    and disables that filter stage.
    """
    if global_expectation is None and step_expectation is None:
        return default_expectation()

    step_config = step_expectation or ExpectationConfig()
    global_config = global_expectation or ExpectationConfig()
    step = _console(step_expectation)
    glob = _console(global_expectation)
    base = DEFAULT_CONSOLE_OPTIONS

    levels = _pick(step.levels, glob.levels, None)
    patterns = _pick(step.patterns, glob.patterns, None)

    return EffectiveExpectation(
        include_snapshot=_pick(
            step_config.include_snapshot, global_config.include_snapshot, DEFAULT_INCLUDE_SNAPSHOT
        ),
        include_console=_pick(
            step_config.include_console, global_config.include_console, DEFAULT_INCLUDE_CONSOLE
        ),
        console_options=ConsoleFilterOptions(
            levels=frozenset(levels) if levels is not None else base.levels,
            patterns=tuple(patterns) if patterns is not None else base.patterns,
            remove_duplicates=_pick(step.remove_duplicates, glob.remove_duplicates, base.remove_duplicates),
            max_messages=_pick(step.max_messages, glob.max_messages, base.max_messages),
        ),
    )
