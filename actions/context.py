"""
Run-scoped stores handed to actions.

The OutputStore holds what each action produced; the StateRegistry holds
one shared instance per state type (an HTTP client, a command runner).
Runtime bundles both into the context object passed to probe() and run().
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, TypeVar

from .errors import StateNotLoaded
from .schemas import ActionId, ActionOutput

logger = logging.getLogger(__name__)

S = TypeVar("S")


class OutputAlreadyWritten(RuntimeError):
    """Raised when an action's output key is written twice."""


class RegistrySealed(RuntimeError):
    """Raised when shared state is registered after the load phase."""


class OutputStore:
    """Action identity to produced output.

    Each key is written once, by the action that owns it. Readers never
    wait: an absent key simply returns None.
    """

    def __init__(self) -> None:
        self._outputs: Dict[ActionId, ActionOutput] = {}

    def put(self, action_id: ActionId, output: ActionOutput) -> None:
        if action_id in self._outputs:
            raise OutputAlreadyWritten(f"Output for action {action_id} already written")
        self._outputs[action_id] = output
        logger.debug("Stored %s output for action %s", output.kind, action_id)

    def get(self, action_id: ActionId) -> Optional[ActionOutput]:
        return self._outputs.get(action_id)

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._outputs

    def __len__(self) -> int:
        return len(self._outputs)


class StateRegistry:
    """Type to shared instance, populated before execution starts.

    Registration is last-write-wins. Once sealed, the registry is
    read-only for the rest of the run.
    """

    def __init__(self) -> None:
        self._states: Dict[type, Any] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def add_state(self, instance: Any, as_type: Optional[type] = None) -> None:
        """Register a shared instance.

        Args:
            instance: The shared object
            as_type: Key to register under (defaults to type(instance)),
                useful for registering a subclass or a fake under its
                base type

        Raises:
            RegistrySealed: If the load phase has already ended
        """
        if self._sealed:
            raise RegistrySealed("Shared state cannot be registered after the load phase")
        key = as_type or type(instance)
        if key in self._states:
            logger.debug("Replacing shared state %s", key.__name__)
        self._states[key] = instance

    def get_state(self, state_type: Type[S]) -> Optional[S]:
        return self._states.get(state_type)

    def has_state(self, state_type: type) -> bool:
        return state_type in self._states

    def seal(self) -> None:
        """End the load phase."""
        self._sealed = True
        logger.debug("State registry sealed with %d entries", len(self._states))

    async def aclose(self) -> None:
        """Close every shared instance that owns resources (HTTP clients)."""
        for key, state in list(self._states.items()):
            close = getattr(state, "aclose", None)
            if close is not None:
                logger.debug("Closing shared state %s", key.__name__)
                await close()


class Runtime:
    """Context object passed to every probe() and run() call."""

    def __init__(
        self,
        outputs: Optional[OutputStore] = None,
        states: Optional[StateRegistry] = None,
    ) -> None:
        self.outputs = outputs if outputs is not None else OutputStore()
        self.states = states if states is not None else StateRegistry()

    async def get_output(self, action_id: ActionId) -> Optional[ActionOutput]:
        return self.outputs.get(action_id)

    def get_state(self, state_type: Type[S]) -> Optional[S]:
        return self.states.get_state(state_type)

    def require_state(self, state_type: Type[S]) -> S:
        """Return the shared instance for ``state_type``.

        Raises:
            StateNotLoaded: If no load_state hook registered it
        """
        state = self.states.get_state(state_type)
        if state is None:
            raise StateNotLoaded(state_type)
        return state
