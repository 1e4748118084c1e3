# aggregator.py
# Folds executed step results into the final BatchResult.

from collections.abc import Sequence

from tool_batch.models import BatchResult, StepResult, StopReason


def aggregate(
    executed: Sequence[StepResult],
    total_requested: int,
    halt_reason: StopReason | str,
) -> BatchResult:
    """
    Build the batch report.

    total_steps is the requested count even when the batch halted early;
    the counters and total time only cover steps that actually ran.
    """
    successful = sum(1 for r in executed if r.success)
    return BatchResult(
        steps=list(executed),
        total_steps=total_requested,
        successful_steps=successful,
        failed_steps=len(executed) - successful,
        total_execution_time_ms=sum(r.execution_time_ms for r in executed),
        stop_reason=StopReason(halt_reason),
    )
