"""
HTTP GET action backed by one shared httpx.AsyncClient per run.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

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
from shared.config import ActionSettings

from .common import ensure_settings

logger = logging.getLogger(__name__)


def build_client(settings: ActionSettings, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Create the shared client from settings.

    Args:
        settings: Runtime settings (timeout, user agent, redirects)
        transport: Optional transport override (e.g. httpx.MockTransport)

    Returns:
        A configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        headers={"User-Agent": settings.http_user_agent},
        timeout=settings.http_timeout_seconds,
        follow_redirects=settings.http_follow_redirects,
        transport=transport,
    )


class HttpGet(Action):
    """Fetch a URL and output the response body as text."""

    def __init__(self, url: object) -> None:
        super().__init__()
        self.url: ActionInput = as_input(url)

    async def load_state(self, registry: StateRegistry) -> None:
        settings = ensure_settings(registry)
        if not registry.has_state(httpx.AsyncClient):
            registry.add_state(build_client(settings), httpx.AsyncClient)

    async def probe(self, ctx: Runtime) -> Probe:
        # a GET changes nothing remotely, so there is nothing to undo
        return Probe(needs_run=True, can_rollback=True)

    async def run(self, ctx: Runtime, operation: Operation) -> Optional[ActionOutput]:
        if operation is Operation.ROLLBACK:
            return None

        client = ctx.require_state(httpx.AsyncClient)
        url = await self.url.resolve(ctx, str)
        self.logger.debug("GET %s", url)

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ActionFailed(
                f"GET {url} returned HTTP {exc.response.status_code}",
                exc.response.text,
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ActionFailed(f"GET {url} failed", f"{type(exc).__name__}: {exc}") from exc

        return StringOutput(value=response.text)

    def display_name(self) -> str:
        return f"HttpGet {self.url.describe()}"
