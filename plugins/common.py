"""
Shared state helpers used by plugin load_state hooks.
"""

from __future__ import annotations

from actions import CommandRunner, Runtime, StateRegistry
from shared.config import ActionSettings, get_settings


def ensure_settings(registry: StateRegistry) -> ActionSettings:
    """Register the process settings unless a run already supplied some."""
    settings = registry.get_state(ActionSettings)
    if settings is None:
        settings = get_settings()
        registry.add_state(settings, ActionSettings)
    return settings


def ensure_command_runner(registry: StateRegistry) -> None:
    """Register a CommandRunner configured from settings, once."""
    settings = ensure_settings(registry)
    if not registry.has_state(CommandRunner):
        registry.add_state(
            CommandRunner(
                timeout_seconds=settings.command_timeout_seconds,
                env={"DEBIAN_FRONTEND": "noninteractive"},
            ),
            CommandRunner,
        )


def settings_for(ctx: Runtime) -> ActionSettings:
    return ctx.require_state(ActionSettings)
