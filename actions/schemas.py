"""
Data contracts shared by actions and whoever drives them.

Defines action identities, the typed outputs actions hand to their
dependents, probe results, and the per-node result records produced by
the lifecycle.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, ClassVar, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import TypeConversionMismatch


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActionId(BaseModel):
    """Opaque identity of one node in the dependency graph."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(default_factory=lambda: str(uuid.uuid4()))

    def __str__(self) -> str:
        return self.value


class Operation(str, Enum):
    """Direction requested of an action's run()."""

    PERFORM = "perform"
    ROLLBACK = "rollback"


class Probe(BaseModel):
    """Side-effect-free verdict on an action's current state."""

    model_config = ConfigDict(frozen=True)

    needs_run: bool = Field(..., description="False when the desired end state already holds")
    can_rollback: bool = Field(..., description="False when the effect cannot be undone")


class _OutputBase(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    python_type: ClassVar[type] = object

    def convert(self, as_type: type) -> Any:
        """Return the stored value as ``as_type``.

        Only an exact kind match converts; there is no coercion between
        kinds (a string output never becomes an int, a bool never an int).

        Raises:
            TypeConversionMismatch: If the stored kind differs from as_type
        """
        if as_type is not self.python_type:
            raise TypeConversionMismatch(getattr(as_type, "__name__", str(as_type)), self.kind)
        return self.value


class StringOutput(_OutputBase):
    kind: Literal["string"] = "string"
    value: str
    python_type: ClassVar[type] = str


class IntegerOutput(_OutputBase):
    kind: Literal["integer"] = "integer"
    value: int
    python_type: ClassVar[type] = int


class FloatOutput(_OutputBase):
    kind: Literal["float"] = "float"
    value: float
    python_type: ClassVar[type] = float


class BooleanOutput(_OutputBase):
    kind: Literal["boolean"] = "boolean"
    value: bool
    python_type: ClassVar[type] = bool


ActionOutput = Annotated[
    Union[StringOutput, IntegerOutput, FloatOutput, BooleanOutput],
    Field(discriminator="kind"),
]


def output_from(value: Any) -> ActionOutput:
    """Wrap a plain Python value in the matching output variant.

    Raises:
        TypeError: If the value is not one of the supported primitive kinds
    """
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return BooleanOutput(value=value)
    if isinstance(value, int):
        return IntegerOutput(value=value)
    if isinstance(value, float):
        return FloatOutput(value=value)
    if isinstance(value, str):
        return StringOutput(value=value)
    raise TypeError(f"Unsupported action output type: {type(value).__name__}")


class NodeStatus(str, Enum):
    """Lifecycle state of one action node."""

    UNPROBED = "unprobed"
    PROBED = "probed"
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"
    ROLLBACK_UNSUPPORTED = "rollback_unsupported"


class NodeResult(BaseModel):
    """Outcome of one lifecycle step for a single action."""

    action_id: ActionId
    display_name: str
    operation: Operation
    status: NodeStatus
    output: Optional[ActionOutput] = None
    error_kind: Optional[str] = Field(None, description="ActionError subclass name")
    error_message: Optional[str] = None
    error_detail: Optional[str] = Field(None, description="Captured diagnostics (stderr, response body)")
    retryable: bool = False
    duration_seconds: float = 0.0
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def ok(self) -> bool:
        return self.status in (NodeStatus.SKIPPED, NodeStatus.SUCCEEDED, NodeStatus.ROLLED_BACK)


class ExecutionStatus(str, Enum):
    """Overall outcome of a sequence run."""

    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class ExecutionReport(BaseModel):
    """Machine readable report of a sequence run."""

    status: ExecutionStatus
    results: List[NodeResult] = Field(default_factory=list)
    rollback_results: List[NodeResult] = Field(default_factory=list)
    failed_action: Optional[str] = Field(None, description="Display name of the action that failed")
    duration_seconds: float
    started_at: datetime
    completed_at: datetime = Field(default_factory=_utcnow)

    @property
    def errors(self) -> List[str]:
        return [r.error_message for r in self.results + self.rollback_results if r.error_message]
