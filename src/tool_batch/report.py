# report.py
# Markdown rendering of a BatchResult, as handed back to the calling client.

from typing import Any

from tool_batch.models import BatchResult, StepResult, StopReason, ToolResult

PREVIEW_LINES = 3

_STATUS = {
    StopReason.COMPLETED: "✅ Completed",
    StopReason.ERROR: "❌ Stopped on Error",
    StopReason.STOPPED: "⏹️ Stopped",
}


def _join(content: Any, snapshot: Any) -> str:
    parts = []
    if isinstance(content, str) and content:
        parts.append(content)
    if isinstance(snapshot, str) and snapshot:
        parts.append(f"### Page state\n{snapshot}")
    return "\n".join(parts)


def result_text(result: Any) -> str:
    """Best-effort text content of a step result, page state included."""
    if isinstance(result, ToolResult):
        return _join(result.content, result.snapshot)
    if isinstance(result, dict):
        return _join(result.get("content"), result.get("snapshot"))
    if isinstance(result, str):
        return result
    return ""


def _format_duration(ms: float) -> str:
    return f"{round(ms)}ms"


def format_summary(result: BatchResult) -> str:
    lines = [
        "### Batch Execution Summary",
        f"- Status: {_STATUS[result.stop_reason]}",
        f"- Total Steps: {result.total_steps}",
        f"- Successful: {result.successful_steps}",
        f"- Failed: {result.failed_steps}",
        f"- Total Time: {_format_duration(result.total_execution_time_ms)}",
    ]
    if result.stop_reason == StopReason.ERROR:
        lines.append("- Note: Execution stopped early due to error")
    return "\n".join(lines)


def format_step(step: StepResult) -> list[str]:
    status = "✅" if step.success else "❌"
    lines = [
        f"{status} Step {step.step_index + 1}: {step.tool_name} ({_format_duration(step.execution_time_ms)})"
    ]
    if step.success:
        text = result_text(step.result)
        if text:
            content = text.split("\n")
            lines.append("   " + "\n   ".join(content[:PREVIEW_LINES]))
            if len(content) > PREVIEW_LINES:
                lines.append("   ...")
    elif step.error:
        lines.append(f"   Error: {step.error}")
    return lines


def format_batch_result(result: BatchResult) -> str:
    """
    Summary, then one entry per executed step, then the final page state.

    The final state section is the content of the last successful step with
    content, and only appears when the batch ran to completion.
    """
    lines = [format_summary(result)]

    if result.steps:
        lines.append("")
        lines.append("### Step Details")
        for step in result.steps:
            lines.extend(format_step(step))

    with_content = [s for s in result.steps if s.success and result_text(s.result)]
    if with_content and result.stop_reason == StopReason.COMPLETED:
        lines.append("")
        lines.append("### Final State")
        lines.append(result_text(with_content[-1].result))

    return "\n".join(lines)
