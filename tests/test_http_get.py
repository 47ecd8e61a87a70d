"""Tests for the HttpGet action against httpx.MockTransport."""

import asyncio
from pathlib import Path

import httpx
import pytest

from actions import (
    ActionFailed,
    ActionNode,
    ExecutionStatus,
    NoActionReturn,
    NodeStatus,
    Operation,
    Runtime,
    StateNotLoaded,
    StateRegistry,
    StringOutput,
    load_states,
    run_sequence,
)
from plugins import HttpGet, Join, TempFile
from plugins.http_get import build_client
from shared.config import ActionSettings


def handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/broken":
        return httpx.Response(500, text="upstream exploded")
    return httpx.Response(200, text=f"body of {request.url}")


def make_runtime(settings: ActionSettings) -> Runtime:
    registry = StateRegistry()
    registry.add_state(settings, ActionSettings)
    registry.add_state(build_client(settings, httpx.MockTransport(handler)), httpx.AsyncClient)
    return Runtime(states=registry)


def test_client_not_loaded():
    action = HttpGet("https://x")

    with pytest.raises(StateNotLoaded) as exc_info:
        asyncio.run(action.run(Runtime(), Operation.PERFORM))
    assert exc_info.value.state_type is httpx.AsyncClient


def test_get_returns_body(settings):
    async def scenario():
        ctx = make_runtime(settings)
        try:
            return await HttpGet("https://x/page").run(ctx, Operation.PERFORM)
        finally:
            await ctx.states.aclose()

    assert asyncio.run(scenario()) == StringOutput(value="body of https://x/page")


def test_url_from_previous_action(settings):
    async def scenario():
        ctx = make_runtime(settings)
        producer = Join(["https://x", "/feed"])
        action = HttpGet(producer)
        try:
            with pytest.raises(NoActionReturn):
                await action.run(ctx, Operation.PERFORM)

            report = await run_sequence([ActionNode(producer), ActionNode(action)], ctx)
            return report, await ctx.get_output(action.id)
        finally:
            await ctx.states.aclose()

    report, output = asyncio.run(scenario())

    assert report.status == ExecutionStatus.SUCCESS
    assert [r.status for r in report.results] == [NodeStatus.SUCCEEDED, NodeStatus.SUCCEEDED]
    assert output == StringOutput(value="body of https://x/feed")


def test_http_error_keeps_body(settings):
    async def scenario():
        ctx = make_runtime(settings)
        try:
            await HttpGet("https://x/broken").run(ctx, Operation.PERFORM)
        finally:
            await ctx.states.aclose()

    with pytest.raises(ActionFailed) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.summary == "GET https://x/broken returned HTTP 500"
    assert exc_info.value.detail == "upstream exploded"
    assert exc_info.value.retryable


def test_transport_error(settings):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        registry = StateRegistry()
        registry.add_state(build_client(settings, httpx.MockTransport(refuse)), httpx.AsyncClient)
        ctx = Runtime(states=registry)
        try:
            await HttpGet("https://x").run(ctx, Operation.PERFORM)
        finally:
            await registry.aclose()

    with pytest.raises(ActionFailed) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.summary == "GET https://x failed"
    assert exc_info.value.detail.startswith("ConnectError")


def test_rollback_does_nothing():
    assert asyncio.run(HttpGet("https://x").run(Runtime(), Operation.ROLLBACK)) is None


def test_load_state_registers_one_client(settings):
    async def scenario():
        registry = StateRegistry()
        registry.add_state(settings, ActionSettings)
        first, second = HttpGet("https://a"), HttpGet("https://b")

        await first.load_state(registry)
        client = registry.get_state(httpx.AsyncClient)
        await second.load_state(registry)
        same = registry.get_state(httpx.AsyncClient) is client

        await registry.aclose()
        return client, same

    client, same = asyncio.run(scenario())

    assert same
    assert client.headers["User-Agent"] == settings.http_user_agent
    assert client.follow_redirects == settings.http_follow_redirects


def test_load_states_uses_existing_client(settings):
    async def scenario():
        ctx = make_runtime(settings)
        existing = ctx.states.get_state(httpx.AsyncClient)
        await load_states([HttpGet("https://x")], ctx.states)
        kept = ctx.states.get_state(httpx.AsyncClient) is existing
        await ctx.states.aclose()
        return kept

    assert asyncio.run(scenario())


def test_display_name():
    assert HttpGet("https://x").display_name() == "HttpGet https://x"
    assert HttpGet(Join(["a"])).display_name() == "HttpGet <dynamic>"


def test_malformed_url_is_action_failure(settings):
    action = HttpGet("http://[::1")

    async def scenario():
        ctx = make_runtime(settings)
        try:
            await action.run(ctx, Operation.PERFORM)
        finally:
            await ctx.states.aclose()

    with pytest.raises(ActionFailed) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.summary == "GET http://[::1 failed"
    assert exc_info.value.detail.startswith("InvalidURL")


def test_malformed_url_rolls_back_upstream(settings):
    async def scenario():
        ctx = make_runtime(settings)
        upstream = TempFile("hello")
        nodes = [ActionNode(upstream), ActionNode(HttpGet("http://[::1"))]
        try:
            report = await run_sequence(nodes, ctx)
        finally:
            await ctx.states.aclose()
        return report, nodes, ctx.outputs.get(upstream.id)

    report, nodes, written = asyncio.run(scenario())

    assert report.status == ExecutionStatus.ROLLED_BACK
    assert nodes[1].status == NodeStatus.FAILED
    assert nodes[0].status == NodeStatus.ROLLED_BACK
    assert not Path(written.value).exists()
