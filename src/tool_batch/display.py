# display.py
# All terminal output for the batch runner.
#
# This module owns presentation entirely. executor.py never formats strings;
# run.py wires the functions here in as callbacks. Swap this file to change
# the entire UI.
#
# Colour language:
#   cyan     scaffolding / batch events
#   green    successful steps
#   red      failed steps, halts
#   yellow   cancellation

import json

from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from tool_batch.models import BatchRequest, BatchResult, StepResult, StopReason
from tool_batch.report import result_text

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    value = value.replace("\n", " ")
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


# ---------------------------------------------------------------------------
# Batch entry
# ---------------------------------------------------------------------------


def banner(source: str, tools: list[str]) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Tool Batch Runner[/bold cyan]\n"
            "[dim]Sequential tool execution with expectation-driven output shaping[/dim]\n\n"
            f"[dim]Request :[/dim] [white]{escape(source)}[/white]\n"
            f"[dim]Tools   :[/dim] [white]{escape(', '.join(tools))}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def request_parsed(request: BatchRequest) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Tool", style="bold white", width=26)
    table.add_column("Args", style="dim white")
    table.add_column("On error", justify="center", width=10)

    for index, step in enumerate(request.steps):
        table.add_row(
            str(index + 1),
            escape(step.tool_name),
            escape(_mono(json.dumps(step.arguments), 50)),
            "continue" if step.continue_on_error else "stop",
        )

    policy = "stop on first error" if request.stop_on_first_error else "per-step"
    console.print(
        Panel(
            table,
            title=_label("BATCH REQUEST", "cyan"),
            subtitle=f"[dim]Stop policy: {policy}[/dim]",
            border_style="cyan",
            padding=(0, 1),
        )
    )
    console.print(Rule(f"[cyan]EXECUTION: {len(request.steps)} step(s)[/cyan]", style="cyan"))


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def step_finished(result: StepResult, total: int) -> None:
    position = f"[{result.step_index + 1}/{total}]"
    duration = f"[dim]{result.execution_time_ms:.0f}ms[/dim]"
    if result.success:
        console.print(
            f"  [bold green]✓ STEP {position}[/bold green]  [white]{escape(result.tool_name)}[/white]  {duration}"
        )
        text = result_text(result.result)
        if text:
            console.print(f"    [dim white]{escape(_mono(text, 140))}[/dim white]")
    else:
        console.print(
            f"  [bold red]✗ STEP {position}[/bold red]  [white]{escape(result.tool_name)}[/white]  {duration}"
        )
        console.print(f"    [red]{escape(_mono(result.error or '', 140))}[/red]")


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


def execution_summary(result: BatchResult) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("Step", justify="center", width=6)
    table.add_column("Tool", width=26)
    table.add_column("OK", justify="center", width=4)
    table.add_column("Time", justify="right", width=9)
    table.add_column("Output", style="dim white")

    for step in result.steps:
        ok = "[bold green]✓[/bold green]" if step.success else "[bold red]✗[/bold red]"
        output = result_text(step.result) if step.success else (step.error or "")
        table.add_row(
            str(step.step_index + 1),
            escape(step.tool_name),
            ok,
            f"{step.execution_time_ms:.0f}ms",
            escape(_mono(output, 60)),
        )

    skipped = result.total_steps - len(result.steps)
    console.print(
        Panel(
            table,
            title="[dim]EXECUTION SUMMARY[/dim]",
            subtitle=(
                f"[dim]{result.successful_steps} ok · {result.failed_steps} failed · "
                f"{skipped} not run · {result.total_execution_time_ms:.0f}ms[/dim]"
            ),
            border_style="dim",
            padding=(0, 1),
        )
    )

    if result.stop_reason == StopReason.ERROR:
        halt("Batch stopped after a failed step.")
    elif result.stop_reason == StopReason.STOPPED:
        cancelled()


def report(markdown: str) -> None:
    console.print()
    console.print(
        Panel(
            Markdown(markdown),
            title=_label("REPORT", "green"),
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def cancelled() -> None:
    console.print()
    console.print(
        Panel(
            "[bold white]Batch cancelled. Partial results are shown above.[/bold white]",
            title=_label("STOPPED", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
