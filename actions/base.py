"""
Base Action class implementing the action execution contract.

Every action is a node in a dependency graph and implements the
load_state → probe → run(perform | rollback) lifecycle. The driver holds
actions only through this interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .context import Runtime, StateRegistry
from .errors import OperationNotSupported
from .schemas import ActionId, ActionOutput, Operation, Probe

logger = logging.getLogger(__name__)


class Action(ABC):
    """Abstract base class for composable provisioning actions.

    Implements the action contract:
    - load_state: Register shared state this kind of action needs
    - probe: Decide, without side effects, whether run is needed and
      whether the effect can be undone
    - run: Execute one direction (perform or rollback) of the effect
    - display_name: Human readable label for logs and progress
    """

    def __init__(self) -> None:
        """Assign the action its graph identity."""
        self.id = ActionId()
        self.logger = logging.getLogger(f"{__name__}.{type(self).__name__}")

    async def load_state(self, registry: StateRegistry) -> None:
        """Register shared state needed by this kind of action.

        Called once per action kind before any probe or run. MUST be safe to
        call again with the same registry; implementations check
        ``registry.has_state`` before adding.

        Args:
            registry: The run's shared state registry
        """
        return None

    @abstractmethod
    async def probe(self, ctx: Runtime) -> Probe:
        """Inspect current state without changing anything.

        MUST NOT mutate the system, the OutputStore or the StateRegistry.
        Repeated calls without an intervening run return the same Probe
        as long as the outside world does not change.

        Args:
            ctx: Run context for resolving inputs and reading shared state

        Returns:
            Probe with needs_run and can_rollback

        Raises:
            ActionError: If an input cannot be resolved or state cannot be read
        """

    @abstractmethod
    async def run(self, ctx: Runtime, operation: Operation) -> Optional[ActionOutput]:
        """Execute the requested direction of this action's effect.

        A rollback the action cannot perform MUST raise OperationNotSupported
        (see ``unsupported``) rather than silently succeed. Rollback never
        returns an output.

        Args:
            ctx: Run context for resolving inputs and reading shared state
            operation: Operation.PERFORM or Operation.ROLLBACK

        Returns:
            The output visible to dependents, or None

        Raises:
            ActionError: On any failure
        """

    @abstractmethod
    def display_name(self) -> str:
        """Return a human readable label. Must not fail."""

    def unsupported(self, operation: Operation) -> OperationNotSupported:
        """Build the error for a direction this action cannot execute."""
        return OperationNotSupported(self.display_name() or type(self).__name__, operation)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.display_name()!r} id={self.id}>"
