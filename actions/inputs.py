"""
Action inputs: a literal value, or a reference to another action's output.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

from pydantic import BaseModel, ConfigDict

from .errors import NoActionReturn
from .schemas import ActionId

if TYPE_CHECKING:
    from .context import Runtime

T = TypeVar("T")


class Static(BaseModel, Generic[T]):
    """A value fixed when the action is built."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: T

    async def resolve(self, ctx: Runtime, as_type: type = str) -> T:
        return copy.deepcopy(self.value)

    def describe(self) -> str:
        return str(self.value)


class Dynamic(BaseModel):
    """A forward reference to the output of another action.

    The producer must have finished before this is resolved; resolution
    never waits for a future write.
    """

    model_config = ConfigDict(frozen=True)

    action_id: ActionId

    async def resolve(self, ctx: Runtime, as_type: type = str) -> Any:
        output = await ctx.get_output(self.action_id)
        if output is None:
            raise NoActionReturn(self.action_id)
        return output.convert(as_type)

    def describe(self) -> str:
        return "<dynamic>"


ActionInput = Union[Static, Dynamic]


def as_input(value: Any) -> ActionInput:
    """Lift a raw value into an ActionInput.

    Inputs pass through unchanged, an ActionId or an action (anything with
    an ``id`` ActionId) becomes Dynamic, everything else becomes Static.
    """
    if isinstance(value, (Static, Dynamic)):
        return value
    if isinstance(value, ActionId):
        return Dynamic(action_id=value)
    action_id = getattr(value, "id", None)
    if isinstance(action_id, ActionId):
        return Dynamic(action_id=action_id)
    return Static(value=value)


async def resolve(value: ActionInput, ctx: Runtime, as_type: type = str) -> Any:
    """Resolve an input against the run's OutputStore.

    Raises:
        NoActionReturn: If a Dynamic reference has no stored output yet
        TypeConversionMismatch: If the stored output is not ``as_type``
    """
    return await value.resolve(ctx, as_type)
