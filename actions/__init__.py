"""
Action execution contract for composable provisioning actions.

This package provides the base class every action implements, the typed
inputs and outputs actions exchange, the run-scoped output store and
shared state registry, and the probe/run lifecycle that drives a node.
"""

from .base import Action
from .context import OutputAlreadyWritten, OutputStore, RegistrySealed, Runtime, StateRegistry
from .errors import (
    ActionError,
    ActionFailed,
    NoActionReturn,
    OperationNotSupported,
    StateNotLoaded,
    TypeConversionMismatch,
)
from .inputs import ActionInput, Dynamic, Static, as_input, resolve
from .lifecycle import ActionNode, InvalidTransition, load_states, run_sequence
from .process import CommandResult, CommandRunner
from .schemas import (
    ActionId,
    ActionOutput,
    BooleanOutput,
    ExecutionReport,
    ExecutionStatus,
    FloatOutput,
    IntegerOutput,
    NodeResult,
    NodeStatus,
    Operation,
    Probe,
    StringOutput,
    output_from,
)

__all__ = [
    "Action",
    "ActionError",
    "ActionFailed",
    "ActionId",
    "ActionInput",
    "ActionNode",
    "ActionOutput",
    "BooleanOutput",
    "CommandResult",
    "CommandRunner",
    "Dynamic",
    "ExecutionReport",
    "ExecutionStatus",
    "FloatOutput",
    "IntegerOutput",
    "InvalidTransition",
    "NoActionReturn",
    "NodeResult",
    "NodeStatus",
    "Operation",
    "OperationNotSupported",
    "OutputAlreadyWritten",
    "OutputStore",
    "Probe",
    "RegistrySealed",
    "Runtime",
    "StateNotLoaded",
    "StateRegistry",
    "Static",
    "StringOutput",
    "TypeConversionMismatch",
    "as_input",
    "load_states",
    "output_from",
    "resolve",
    "run_sequence",
]
