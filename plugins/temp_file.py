"""
Temporary file action.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from actions import (
    Action,
    ActionFailed,
    ActionInput,
    ActionOutput,
    Operation,
    Probe,
    Runtime,
    StateRegistry,
    StringOutput,
    as_input,
)

from .common import ensure_settings, settings_for


class TempFile(Action):
    """Write contents to a new temp file and output its path.

    Rollback deletes the file named by this action's own stored output.
    """

    def __init__(self, contents: object) -> None:
        super().__init__()
        self.contents: ActionInput = as_input(contents)

    async def load_state(self, registry: StateRegistry) -> None:
        ensure_settings(registry)

    async def probe(self, ctx: Runtime) -> Probe:
        return Probe(needs_run=True, can_rollback=True)

    async def run(self, ctx: Runtime, operation: Operation) -> Optional[ActionOutput]:
        if operation is Operation.ROLLBACK:
            await self._remove(ctx)
            return None

        contents = await self.contents.resolve(ctx, str)
        directory = settings_for(ctx).temp_dir
        path = None
        try:
            fd, path = tempfile.mkstemp(dir=str(directory) if directory else None)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(contents)
        except (OSError, UnicodeError) as exc:
            if path is not None:
                Path(path).unlink(missing_ok=True)
            raise ActionFailed(f"Failed to write temp file: {path or directory or tempfile.gettempdir()}", str(exc)) from exc

        self.logger.debug("Wrote %d characters to %s", len(contents), path)
        return StringOutput(value=path)

    async def _remove(self, ctx: Runtime) -> None:
        output = await ctx.get_output(self.id)
        if output is None:
            return
        path = Path(output.convert(str))
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise ActionFailed(f"Failed to remove temp file: {path}", str(exc)) from exc

    def display_name(self) -> str:
        return "TempFile"
