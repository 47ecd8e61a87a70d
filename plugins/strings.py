"""
String actions.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from actions import (
    Action,
    ActionInput,
    ActionOutput,
    Operation,
    Probe,
    Runtime,
    StringOutput,
    as_input,
)


class Join(Action):
    """Concatenate resolved string inputs into one string output."""

    def __init__(self, parts: Iterable[object], separator: str = "") -> None:
        super().__init__()
        self.parts: List[ActionInput] = [as_input(p) for p in parts]
        self.separator = separator

    async def probe(self, ctx: Runtime) -> Probe:
        # always recomputed so dependents find an output
        return Probe(needs_run=True, can_rollback=True)

    async def run(self, ctx: Runtime, operation: Operation) -> Optional[ActionOutput]:
        if operation is Operation.ROLLBACK:
            return None
        values = [await part.resolve(ctx, str) for part in self.parts]
        return StringOutput(value=self.separator.join(values))

    def display_name(self) -> str:
        return f"Join {len(self.parts)} inputs"
