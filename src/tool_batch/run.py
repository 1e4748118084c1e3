# run.py
# Entry point. Config and wiring only, no logic lives here.
#
#   tool-batch examples/batch.json
#   python -m tool_batch.run examples/batch.json --stop-on-first-error
#
# Ctrl-C cancels the batch; the partial report is still printed.

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path

from rich.logging import RichHandler

from tool_batch import display
from tool_batch.config import Settings, load_settings
from tool_batch.errors import BatchValidationError
from tool_batch.executor import BatchExecutor, validate_request
from tool_batch.models import BatchResult
from tool_batch.report import format_batch_result
from tool_batch.session import BrowserSession
from tool_batch.tools import ToolDispatcher, default_registry

logger = logging.getLogger("tool_batch")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=display.console, rich_tracebacks=True)],
    )


def load_request(path: Path, stop_on_first_error: bool = False) -> dict:
    """Read a request file. Unreadable or non-object JSON raises BatchValidationError."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise BatchValidationError(f"Cannot read batch request {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise BatchValidationError(
            f"Batch request must be a JSON object, got {type(payload).__name__}."
        )
    if stop_on_first_error:
        payload["stopOnFirstError"] = True
    return payload


async def run_batch(payload: dict, settings: Settings, source: str = "<inline>") -> BatchResult:
    request = validate_request(payload)
    registry = default_registry()
    cancel_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT handler unavailable; Ctrl-C will abort without a report")

    display.banner(source, registry.names())
    display.request_parsed(request)

    try:
        async with BrowserSession(settings=settings) as session:
            executor = BatchExecutor(
                ToolDispatcher(registry, session),
                settings=settings,
                on_step=display.step_finished,
            )
            return await executor.execute(request, cancel_event=cancel_event)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="tool-batch", description="Run a batch of browser tools.")
    parser.add_argument("request", type=Path, help="JSON file holding the batch request.")
    parser.add_argument(
        "--stop-on-first-error",
        action="store_true",
        help="Stop on any failed step, even those marked continueOnError.",
    )
    parser.add_argument("--env-file", default=None, help="Alternative .env file.")
    args = parser.parse_args(argv)

    settings = load_settings(args.env_file)
    _configure_logging(settings.log_level)

    try:
        payload = load_request(args.request, stop_on_first_error=args.stop_on_first_error)
        result = asyncio.run(run_batch(payload, settings, source=str(args.request)))
    except BatchValidationError as exc:
        display.halt(str(exc))
        return 2

    display.execution_summary(result)
    display.report(format_batch_result(result))
    return 0 if result.failed_steps == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
