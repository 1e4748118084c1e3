# executor.py
# Step sequencer for batch tool execution.
#
# Control flow, per step, strictly in request order:
#   cancel check → expectation merge → dispatch (timed)
#   → result shaping → StepResult → stop policy
#
# Step failures are recorded, never raised. The only exception that leaves
# execute() is BatchValidationError, and it is raised before any step runs.

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from pydantic import ValidationError

from tool_batch.aggregator import aggregate
from tool_batch.config import Settings
from tool_batch.console_filter import filter_console_messages
from tool_batch.errors import BatchValidationError, StepTimeoutError
from tool_batch.expectation import merge
from tool_batch.models import (
    BatchRequest,
    BatchResult,
    ConsoleMessage,
    EffectiveExpectation,
    Step,
    StepResult,
    StopReason,
    ToolResult,
)

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Step cancelled"


class Dispatcher(Protocol):
    async def invoke(self, tool_name: str, arguments: dict[str, Any]) -> Any: ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, asyncio.CancelledError):
        return CANCELLED_MESSAGE
    return str(exc) or type(exc).__name__


async def _bounded(call: Awaitable[Any], timeout_s: float) -> Any:
    """
    Await `call` for at most `timeout_s` seconds.

    Only the expiry of this bound raises StepTimeoutError; a TimeoutError
    raised by the call itself propagates unchanged.
    """
    inner = asyncio.ensure_future(call)
    try:
        done, _ = await asyncio.wait({inner}, timeout=timeout_s)
    except asyncio.CancelledError:
        # Forward the cancel, then report whatever the call resolves to.
        inner.cancel()
        await asyncio.wait({inner})
        if inner.cancelled():
            raise
        return inner.result()
    if inner in done:
        return inner.result()
    inner.cancel()
    await asyncio.wait({inner})
    raise StepTimeoutError(timeout_s)


def shape_result(raw: Any, expectation: EffectiveExpectation) -> Any:
    """
    Apply a step's expectation to its raw tool result.

    ToolResult and mappings are shaped: the snapshot is dropped unless
    include_snapshot, the console list is emptied unless include_console and
    filtered otherwise. Mappings are shaped through their snapshot and
    console_messages/consoleMessages keys. Anything else passes through
    untouched. The raw value is never mutated.
    """
    options = expectation.console_options
    if isinstance(raw, ToolResult):
        update: dict[str, Any] = {
            "console_messages": (
                filter_console_messages(raw.console_messages, options) if expectation.include_console else []
            )
        }
        if not expectation.include_snapshot:
            update["snapshot"] = None
        return raw.model_copy(update=update)
    if isinstance(raw, Mapping):
        shaped = dict(raw)
        if not expectation.include_snapshot:
            shaped.pop("snapshot", None)
        for key in ("console_messages", "consoleMessages"):
            if isinstance(raw.get(key), list):
                if not expectation.include_console:
                    shaped[key] = []
                    continue
                messages = [
                    m if isinstance(m, ConsoleMessage) else ConsoleMessage.model_validate(m)
                    for m in raw[key]
                ]
                shaped[key] = filter_console_messages(messages, options)
        return shaped
    return raw


def validate_request(request: BatchRequest | Mapping[str, Any]) -> BatchRequest:
    """Parse and check a request. Raises BatchValidationError."""
    if isinstance(request, BatchRequest):
        parsed = request
    else:
        try:
            parsed = BatchRequest.model_validate(request)
        except ValidationError as exc:
            raise BatchValidationError(f"Batch request is invalid: {exc}") from exc
    if not parsed.steps:
        raise BatchValidationError("Batch request must contain at least one step.")
    return parsed


# ---------------------------------------------------------------------------
# BatchExecutor
# ---------------------------------------------------------------------------


class BatchExecutor:
    """
    Runs the steps of a batch one at a time against a dispatcher.

    The dispatcher is anything with `async invoke(tool_name, arguments)`;
    see tool_batch.tools.ToolDispatcher for the built-in one.

    Example:
        async with BrowserSession() as session:
            executor = BatchExecutor(ToolDispatcher(default_registry(), session))
            result = await executor.execute({
                "steps": [
                    {"tool": "browser_navigate", "arguments": {"url": "https://example.com"}},
                    {"tool": "browser_snapshot", "arguments": {}},
                ],
                "stopOnFirstError": True,
            })
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        settings: Settings | None = None,
        on_step: Callable[[StepResult, int], None] | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._settings = settings or Settings()
        self._on_step = on_step

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, step: Step, cancel_event: asyncio.Event | None) -> asyncio.Future:
        """
        Start the tool call and wait for it to resolve.

        If the cancel event fires first the call is cancelled, then awaited
        to its own resolution. The returned future is always done.
        """
        async def invoke() -> Any:
            return await self._dispatcher.invoke(step.tool_name, dict(step.arguments))

        call = invoke()
        if self._settings.step_timeout_s is not None:
            call = _bounded(call, self._settings.step_timeout_s)
        task = asyncio.ensure_future(call)

        try:
            if cancel_event is not None and not task.done():
                waiter = asyncio.ensure_future(cancel_event.wait())
                try:
                    await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    waiter.cancel()
                if not task.done():
                    logger.info("Cancelling in-flight step %s", step.tool_name)
                    task.cancel()
            await asyncio.wait({task})
        finally:
            if not task.done():
                task.cancel()
        return task

    async def execute_step(
        self,
        index: int,
        step: Step,
        request: BatchRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> StepResult:
        """Run one step and build its StepResult. Never raises for tool errors."""
        expectation = merge(request.global_expectation, step.expectation)

        started = time.perf_counter()
        task = await self._dispatch(step, cancel_event)
        elapsed_ms = (time.perf_counter() - started) * 1000

        if task.cancelled():
            error: BaseException | None = asyncio.CancelledError()
        else:
            error = task.exception()

        if error is not None:
            message = _error_message(error)
            logger.warning("Step %d (%s) failed: %s", index, step.tool_name, message)
            return StepResult(
                step_index=index,
                tool_name=step.tool_name,
                success=False,
                error=message,
                execution_time_ms=elapsed_ms,
            )

        logger.info("Step %d (%s) succeeded in %.1fms", index, step.tool_name, elapsed_ms)
        return StepResult(
            step_index=index,
            tool_name=step.tool_name,
            success=True,
            result=shape_result(task.result(), expectation),
            execution_time_ms=elapsed_ms,
        )

    def _notify(self, result: StepResult, total: int) -> None:
        # A failing observer is logged; it never costs the batch its results.
        if self._on_step is None:
            return
        try:
            self._on_step(result, total)
        except Exception:
            logger.exception("on_step callback failed for step %d", result.step_index)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def execute(
        self,
        request: BatchRequest | Mapping[str, Any],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchResult:
        """
        Execute every step in order and return the aggregated report.

        Halts with stop reason:
          - error:   a step failed and the stop policy applies
          - stopped: cancel_event was set
        otherwise completed.
        """
        request = validate_request(request)
        total = len(request.steps)
        executed: list[StepResult] = []
        halt_reason = StopReason.COMPLETED

        logger.info("Executing batch of %d step(s)", total)

        for index, step in enumerate(request.steps):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Batch cancelled before step %d", index)
                halt_reason = StopReason.STOPPED
                break

            result = await self.execute_step(index, step, request, cancel_event)
            executed.append(result)
            self._notify(result, total)

            if cancel_event is not None and cancel_event.is_set():
                logger.info("Batch cancelled during step %d", index)
                halt_reason = StopReason.STOPPED
                break

            # A step may waive its own failure, but not the batch-wide stop.
            if not result.success and (request.stop_on_first_error or not step.continue_on_error):
                logger.info("Stopping batch after failed step %d", index)
                halt_reason = StopReason.ERROR
                break

        return aggregate(executed, total, halt_reason)
