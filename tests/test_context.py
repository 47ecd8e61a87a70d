"""Tests for the output store, shared state registry and runtime context."""

import asyncio

import pytest

from actions import (
    ActionId,
    OutputAlreadyWritten,
    OutputStore,
    RegistrySealed,
    Runtime,
    StateNotLoaded,
    StateRegistry,
    StringOutput,
)


class Client:
    def __init__(self, name="default"):
        self.name = name
        self.closed = False

    async def aclose(self):
        self.closed = True


class FakeClient(Client):
    pass


def test_output_store_is_write_once():
    store = OutputStore()
    action_id = ActionId()
    store.put(action_id, StringOutput(value="first"))

    with pytest.raises(OutputAlreadyWritten):
        store.put(action_id, StringOutput(value="second"))

    assert store.get(action_id).value == "first"
    assert action_id in store
    assert len(store) == 1


def test_output_store_missing_key():
    assert OutputStore().get(ActionId()) is None


def test_registry_last_registration_wins():
    registry = StateRegistry()
    registry.add_state(Client("one"))
    registry.add_state(Client("two"))

    assert registry.get_state(Client).name == "two"


def test_registry_register_under_base_type():
    registry = StateRegistry()
    fake = FakeClient()
    registry.add_state(fake, Client)

    assert registry.get_state(Client) is fake
    assert registry.get_state(FakeClient) is None


def test_registry_sealed_after_load_phase():
    registry = StateRegistry()
    registry.add_state(Client())
    registry.seal()

    with pytest.raises(RegistrySealed):
        registry.add_state(Client("late"))
    assert registry.get_state(Client).name == "default"


def test_require_state_not_loaded():
    ctx = Runtime()
    assert ctx.get_state(Client) is None
    with pytest.raises(StateNotLoaded) as exc_info:
        ctx.require_state(Client)
    assert exc_info.value.state_type is Client
    assert not exc_info.value.retryable


def test_runtime_get_output():
    ctx = Runtime()
    action_id = ActionId()
    ctx.outputs.put(action_id, StringOutput(value="v"))

    assert asyncio.run(ctx.get_output(action_id)) == StringOutput(value="v")
    assert asyncio.run(ctx.get_output(ActionId())) is None


def test_registry_aclose_closes_clients():
    registry = StateRegistry()
    client = Client()
    registry.add_state(client)
    registry.add_state("not closable", str)

    asyncio.run(registry.aclose())
    assert client.closed
