"""
APT actions: install packages, add repositories, refresh the cache.

Each action probes dpkg/apt state first so that work already done on the
host is skipped instead of repeated.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from actions import (
    Action,
    ActionFailed,
    ActionInput,
    ActionOutput,
    CommandRunner,
    Operation,
    Probe,
    Runtime,
    StateRegistry,
    as_input,
)
from shared.config import ActionSettings

from .common import ensure_command_runner, settings_for

logger = logging.getLogger(__name__)


async def package_installed(ctx: Runtime, name: str) -> bool:
    """Ask dpkg whether ``name`` is currently installed.

    Raises:
        ActionFailed: If dpkg-query fails for a reason other than an
            unknown package
    """
    settings = settings_for(ctx)
    runner = ctx.require_state(CommandRunner)
    result = await runner.run([settings.dpkg_query_path, "-W", "-f=${Status}", name])
    if result.ok:
        # "install ok installed", "hold ok installed", "deinstall ok config-files", ...
        words = result.stdout.split()
        return len(words) == 3 and words[2] == "installed"
    if result.exit_code == 1:
        # no packages found matching name
        return False
    raise ActionFailed.from_command(f"Failed to query package: {name}", result)


async def _apt_get(ctx: Runtime, args: Sequence[str], summary: str) -> None:
    settings = settings_for(ctx)
    runner = ctx.require_state(CommandRunner)
    result = await runner.run([settings.apt_get_path, *args])
    if not result.ok:
        raise ActionFailed.from_command(summary, result)


class AptPackage(Action):
    """Install (or, on rollback, remove) a single APT package."""

    def __init__(self, name: object) -> None:
        super().__init__()
        self.name: ActionInput = as_input(name)
        self._installed = False

    async def load_state(self, registry: StateRegistry) -> None:
        ensure_command_runner(registry)

    async def probe(self, ctx: Runtime) -> Probe:
        name = await self.name.resolve(ctx, str)
        missing = not await package_installed(ctx, name)
        # a package that was already there is not ours to remove
        return Probe(needs_run=missing, can_rollback=missing or self._installed)

    async def run(self, ctx: Runtime, operation: Operation) -> Optional[ActionOutput]:
        name = await self.name.resolve(ctx, str)
        if operation is Operation.PERFORM:
            self.logger.info("Installing APT package %s", name)
            await _apt_get(ctx, ["install", "-y", name], f"Failed to install package: {name}")
            self._installed = True
            return None

        if not self._installed:
            # present before we ran, or never installed by this action
            raise self.unsupported(operation)
        self.logger.info("Removing APT package %s", name)
        await _apt_get(ctx, ["remove", "-y", name], f"Failed to remove package: {name}")
        self._installed = False
        return None

    def display_name(self) -> str:
        return f"Install APT package {self.name.describe()}"


class AptPackages(Action):
    """Install several APT packages with a single apt-get call."""

    def __init__(self, names: Iterable[object]) -> None:
        super().__init__()
        self.names: List[ActionInput] = [as_input(n) for n in names]
        self._installed: List[str] = []

    async def load_state(self, registry: StateRegistry) -> None:
        ensure_command_runner(registry)

    async def _missing(self, ctx: Runtime) -> List[str]:
        missing = []
        for value in self.names:
            name = await value.resolve(ctx, str)
            if not await package_installed(ctx, name):
                missing.append(name)
        return missing

    async def probe(self, ctx: Runtime) -> Probe:
        missing = await self._missing(ctx)
        return Probe(needs_run=bool(missing), can_rollback=bool(missing) or bool(self._installed))

    async def run(self, ctx: Runtime, operation: Operation) -> Optional[ActionOutput]:
        if operation is Operation.PERFORM:
            missing = await self._missing(ctx)
            if missing:
                await _apt_get(ctx, ["install", "-y", *missing], f"Failed to install packages: {missing}")
            self._installed = missing
            return None

        if not self._installed:
            raise self.unsupported(operation)
        await _apt_get(
            ctx, ["remove", "-y", *self._installed], f"Failed to remove packages: {self._installed}"
        )
        self._installed = []
        return None

    def display_name(self) -> str:
        return "Install APT packages"


def _source_needles(repository: str) -> List[str]:
    """Strings that appear in an apt source entry for ``repository``."""
    if repository.startswith("ppa:"):
        path = repository[len("ppa:"):].strip("/")
        return [f"ppa.launchpadcontent.net/{path}/", f"ppa.launchpad.net/{path}/"]
    uris = [token.rstrip("/") for token in repository.split() if "://" in token]
    return uris or [repository.strip()]


def repository_configured(sources_dir: Path, repository: str) -> bool:
    """Whether any active apt source under ``sources_dir`` refers to ``repository``.

    Raises:
        ActionFailed: If a source file exists but cannot be read
    """
    needles = _source_needles(repository)
    parts = sources_dir / "sources.list.d"
    candidates = [sources_dir / "sources.list"]
    if parts.is_dir():
        candidates += sorted(parts.glob("*.list")) + sorted(parts.glob("*.sources"))

    for path in candidates:
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ActionFailed(f"Failed to read apt source {path}", str(exc)) from exc
        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if any(needle in line for needle in needles):
                return True
    return False


class AptRepository(Action):
    """Add (or, on rollback, remove) an APT repository."""

    def __init__(self, url: object) -> None:
        super().__init__()
        self.url: ActionInput = as_input(url)
        self._added = False

    async def load_state(self, registry: StateRegistry) -> None:
        ensure_command_runner(registry)

    async def probe(self, ctx: Runtime) -> Probe:
        url = await self.url.resolve(ctx, str)
        configured = repository_configured(settings_for(ctx).apt_sources_dir, url)
        return Probe(needs_run=not configured, can_rollback=not configured or self._added)

    async def run(self, ctx: Runtime, operation: Operation) -> Optional[ActionOutput]:
        url = await self.url.resolve(ctx, str)
        settings = settings_for(ctx)

        args = [settings.add_apt_repository_path, "-y"]
        if operation is Operation.PERFORM:
            summary = f"Failed to add repository: {url}"
        elif self._added:
            args.append("--remove")
            summary = f"Failed to remove repository: {url}"
        else:
            raise self.unsupported(operation)
        args.append(url)

        result = await ctx.require_state(CommandRunner).run(args)
        if not result.ok:
            raise ActionFailed.from_command(summary, result)
        self._added = operation is Operation.PERFORM
        return None

    def display_name(self) -> str:
        return "Add repository"


class AptUpdate(Action):
    """Refresh the APT package cache when it is older than the configured age."""

    async def load_state(self, registry: StateRegistry) -> None:
        ensure_command_runner(registry)

    @staticmethod
    def cache_is_fresh(settings: ActionSettings, now: Optional[float] = None) -> bool:
        try:
            updated_at = settings.apt_update_stamp.stat().st_mtime
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise ActionFailed(f"Failed to read {settings.apt_update_stamp}", str(exc)) from exc
        age = (now if now is not None else time.time()) - updated_at
        return age < settings.apt_cache_max_age_seconds

    async def probe(self, ctx: Runtime) -> Probe:
        fresh = self.cache_is_fresh(settings_for(ctx))
        return Probe(needs_run=not fresh, can_rollback=False)

    async def run(self, ctx: Runtime, operation: Operation) -> Optional[ActionOutput]:
        if operation is not Operation.PERFORM:
            raise self.unsupported(operation)
        await _apt_get(ctx, ["update"], "Failed to update")
        return None

    def display_name(self) -> str:
        return "Update APT Cache"
