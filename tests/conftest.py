"""Pytest configuration and fixtures for action tests."""

from pathlib import Path
from typing import List, Sequence, Set

import pytest

from actions import CommandResult, CommandRunner, Runtime, StateRegistry
from shared.config import ActionSettings


class FakeRunner(CommandRunner):
    """Stands in for apt-get / dpkg-query / add-apt-repository.

    Keeps an in-memory set of installed packages so probes observe the
    effect of earlier runs.
    """

    def __init__(self, installed: Sequence[str] = (), failing: Sequence[str] = ()) -> None:
        super().__init__()
        self.installed: Set[str] = set(installed)
        self.failing: Set[str] = set(failing)
        self.calls: List[List[str]] = []

    def mutating_calls(self) -> List[List[str]]:
        return [c for c in self.calls if Path(c[0]).name != "dpkg-query"]

    async def run(self, args: Sequence[str]) -> CommandResult:
        command = [str(a) for a in args]
        self.calls.append(command)
        program = Path(command[0]).name

        if program == "dpkg-query":
            name = command[-1]
            if name in self.installed:
                return CommandResult(command=command, stdout="install ok installed", exit_code=0)
            return CommandResult(
                command=command,
                stderr=f"dpkg-query: no packages found matching {name}",
                exit_code=1,
            )

        subcommand = command[1] if program == "apt-get" else program
        if subcommand in self.failing:
            return CommandResult(
                command=command,
                stdout="Reading package lists...",
                stderr="E: Unable to locate package",
                exit_code=100,
            )

        if program == "apt-get" and subcommand == "install":
            self.installed.update(a for a in command[2:] if not a.startswith("-"))
        elif program == "apt-get" and subcommand == "remove":
            self.installed.difference_update(command[2:])
        return CommandResult(command=command, stdout="done", exit_code=0)


@pytest.fixture
def settings(tmp_path: Path) -> ActionSettings:
    """Settings pointing every filesystem location into tmp_path."""
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    sources = tmp_path / "apt"
    (sources / "sources.list.d").mkdir(parents=True)
    return ActionSettings(
        _env_file=None,
        apt_sources_dir=sources,
        apt_update_stamp=tmp_path / "update-success-stamp",
        temp_dir=temp_dir,
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def registry(settings: ActionSettings, fake_runner: FakeRunner) -> StateRegistry:
    """Registry pre-loaded the way load_state would, but with fakes."""
    registry = StateRegistry()
    registry.add_state(settings, ActionSettings)
    registry.add_state(fake_runner, CommandRunner)
    return registry


@pytest.fixture
def runtime(registry: StateRegistry) -> Runtime:
    return Runtime(states=registry)

