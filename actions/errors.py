"""
Error taxonomy for the action execution contract.

Every contract method (probe, run) raises one of these instead of
terminating the process. The layer never retries; ``retryable`` is only a
hint for whoever drives the graph.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .process import CommandResult


class ActionError(Exception):
    """Base class for failures surfaced by actions."""

    retryable: bool = False

    def __init__(self, summary: str, detail: Optional[str] = None) -> None:
        super().__init__(summary)
        self.summary = summary
        self.detail = detail

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        if self.detail:
            return f"{self.summary}\n\n{self.detail}"
        return self.summary


class NoActionReturn(ActionError):
    """A referenced dependency has no output in the store."""

    def __init__(self, action_id: Any) -> None:
        super().__init__(f"Action {action_id} produced no output")
        self.action_id = action_id


class TypeConversionMismatch(ActionError):
    """The stored output kind does not match the requested type."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Cannot convert {actual} output to {expected}")
        self.expected = expected
        self.actual = actual


class StateNotLoaded(ActionError):
    """A shared state type was never registered."""

    def __init__(self, state_type: type) -> None:
        super().__init__(f"Shared state {state_type.__name__} has not been loaded")
        self.state_type = state_type


class OperationNotSupported(ActionError):
    """The requested direction cannot be executed by this action."""

    def __init__(self, action_name: str, operation: Any) -> None:
        op = getattr(operation, "value", operation)
        super().__init__(f"Operation '{op}' is not supported by {action_name}")
        self.action_name = action_name
        self.operation = operation


class ActionFailed(ActionError):
    """The underlying side effect did not succeed.

    ``summary`` is meant for operators; ``detail`` carries diagnostics such
    as captured process streams or an HTTP response body.
    """

    retryable = True

    def __init__(self, summary: str, detail: str = "") -> None:
        super().__init__(summary, detail)

    @classmethod
    def from_command(cls, summary: str, result: CommandResult) -> ActionFailed:
        """Build a failure from a finished process, keeping both streams."""
        detail = f"-- STDERR --\n\n{result.stderr}\n\n-- STDOUT --\n\n{result.stdout}"
        return cls(summary, detail)
