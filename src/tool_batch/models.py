# models.py
# Data contracts for the batch orchestrator.
# No business logic lives here: pure schema and validation.
#
# Python attributes are snake_case; the wire format is camelCase. Every model
# accepts either spelling and dumps camelCase with by_alias=True.

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Console messages and expectations
# ---------------------------------------------------------------------------


class ConsoleMessage(_WireModel):
    """One console entry captured from the session."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(
        default="log",
        validation_alias=AliasChoices("kind", "type", "level"),
        serialization_alias="type",
    )
    text: str = ""

    def __str__(self) -> str:
        return f"[{self.kind.upper()}] {self.text}"


class ConsoleOptions(_WireModel):
    """
    Caller-declared console shaping rules.

    None means "not given" so the merger can tell absence from an explicit
    value. Defaults live in tool_batch.expectation, not here.
    """

    levels: list[str] | None = None
    patterns: list[str] | None = Field(default=None, description="Regex patterns to filter messages.")
    remove_duplicates: bool | None = None
    max_messages: int | None = Field(default=None, ge=0)


class ExpectationConfig(_WireModel):
    """
    What a step reports back. The include toggles drop the page snapshot or
    the console list from the result; console_options shape what is kept.
    """

    include_snapshot: bool | None = None
    include_console: bool | None = None
    console_options: ConsoleOptions | None = None


class ConsoleFilterOptions(_WireModel):
    """Fully resolved console options, as applied to one step."""

    model_config = ConfigDict(frozen=True)

    levels: frozenset[str] | None = None
    patterns: tuple[str, ...] | None = None
    remove_duplicates: bool = False
    max_messages: int = Field(default=10, ge=0)


class EffectiveExpectation(_WireModel):
    model_config = ConfigDict(frozen=True)

    include_snapshot: bool = True
    include_console: bool = True
    console_options: ConsoleFilterOptions = Field(default_factory=ConsoleFilterOptions)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class Step(_WireModel):
    """A single tool invocation within a batch."""

    model_config = ConfigDict(frozen=True)

    tool_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("tool_name", "toolName", "tool"),
        description="Tool name, resolved by the dispatcher at execution time.",
    )
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("arguments", "args"),
    )
    continue_on_error: bool = Field(default=False, description="Treat this step's failure as non-fatal.")
    expectation: ExpectationConfig | None = None


class BatchRequest(_WireModel):
    steps: list[Step] = Field(..., min_length=1)
    stop_on_first_error: bool = False
    global_expectation: ExpectationConfig | None = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ToolResult(_WireModel):
    """Raw output of a built-in tool. snapshot and console_messages are shaped per step."""

    content: str = ""
    snapshot: str | None = Field(default=None, description="Page state after the tool ran.")
    console_messages: list[ConsoleMessage] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)


class StopReason(str, Enum):
    COMPLETED = "completed"
    ERROR = "error"
    STOPPED = "stopped"


class StepResult(_WireModel):
    """Immutable record produced once per attempted step."""

    model_config = ConfigDict(frozen=True)

    step_index: int = Field(..., ge=0)
    tool_name: str
    success: bool
    result: Any = None
    error: str | None = None
    execution_time_ms: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _outcome_matches_success(self) -> "StepResult":
        if self.success and self.error is not None:
            raise ValueError("a successful step cannot carry an error")
        if not self.success:
            if self.error is None:
                raise ValueError("a failed step must carry an error message")
            if self.result is not None:
                raise ValueError("a failed step cannot carry a result")
        return self


class BatchResult(_WireModel):
    steps: list[StepResult] = Field(default_factory=list)
    total_steps: int = Field(..., ge=0, description="Requested steps, not executed steps.")
    successful_steps: int = Field(..., ge=0)
    failed_steps: int = Field(..., ge=0)
    total_execution_time_ms: float = Field(..., ge=0)
    stop_reason: StopReason

    @model_validator(mode="after")
    def _counters_match_steps(self) -> "BatchResult":
        if self.successful_steps + self.failed_steps != len(self.steps):
            raise ValueError("successful_steps + failed_steps must equal the executed step count")
        return self
