# errors.py
# Exception taxonomy for the batch orchestrator.
#
# Only BatchValidationError crosses the executor boundary. Everything a tool
# raises is captured into that step's StepResult.error.


class BatchError(Exception):
    """Base class for all tool_batch errors."""


class BatchValidationError(BatchError):
    """Raised when a batch request is malformed. Always raised before any step runs."""


class ToolNotFoundError(BatchError):
    """Raised when a step names a tool absent from the registry."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool '{tool_name}' not found in the registry.")
        self.tool_name = tool_name


class ToolArgumentError(BatchError):
    """Raised by a tool handler when its arguments are missing or malformed."""


class StepTimeoutError(BatchError):
    """Raised when a step exceeds the configured step timeout."""

    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"Step timed out after {timeout_s}s")
        self.timeout_s = timeout_s
