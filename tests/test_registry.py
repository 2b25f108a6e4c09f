"""Tests for the handler registry and dispatcher."""

import pytest

from app import create_app
from core.dispatcher import DeferredRunner, InteractionDispatcher, split_custom_id
from core.errors import DuplicateRegistration, NoHandlersRegistered, RegistrationError, UnsupportedInteraction
from core.registry import COMMAND, LABEL, HandlerRegistry


def test_register_and_resolve():
    registry = HandlerRegistry()

    @registry.command("hello")
    def hello(interaction):
        return "hi"

    registry.register(LABEL, "action", lambda interaction, cid: cid)

    assert registry.resolve(COMMAND, "hello") is hello
    assert registry.resolve(LABEL, "action") is not None
    assert registry.resolve(COMMAND, "action") is None
    assert (COMMAND, "hello") in registry
    assert len(registry) == 2


def test_duplicate_key_is_rejected():
    registry = HandlerRegistry()
    registry.register(COMMAND, "create", lambda i: None)

    with pytest.raises(DuplicateRegistration) as excinfo:
        registry.register(COMMAND, "create", lambda i: None)
    assert "command:create" in str(excinfo.value)


def test_same_key_in_different_kinds_is_allowed():
    registry = HandlerRegistry()
    registry.register(COMMAND, "info", lambda i: None)
    registry.register(LABEL, "info", lambda i, c: None)
    assert len(registry) == 2


@pytest.mark.parametrize("kind,key", [("emoji", "x"), (COMMAND, ""), (LABEL, None)])
def test_invalid_registration(kind, key):
    with pytest.raises(RegistrationError):
        HandlerRegistry().register(kind, key, lambda i: None)


def test_empty_registry_refuses_to_start():
    with pytest.raises(NoHandlersRegistered):
        HandlerRegistry().ensure_ready()


def test_frozen_registry_rejects_registration():
    registry = HandlerRegistry()
    registry.register(COMMAND, "hello", lambda i: None)
    registry.ensure_ready()

    assert registry.frozen
    with pytest.raises(RegistrationError):
        registry.register(COMMAND, "late", lambda i: None)


def test_app_without_handlers_fails(public_key_hex):
    class NoHandlers:
        def register_handlers(self, registry):
            pass

    with pytest.raises(NoHandlersRegistered):
        create_app(manager=NoHandlers(), public_key_hex=public_key_hex)


def test_app_without_public_key_fails(manager, monkeypatch):
    monkeypatch.setattr("config.DISCORD_PUBLIC_KEY", "")
    with pytest.raises(ValueError):
        create_app(manager=manager, public_key_hex="")


@pytest.mark.parametrize("custom_id,expected", [
    ("action_123", ("action", "123")),
    ("info_1_2", ("info", "1_2")),
    ("plain", ("plain", "")),
    ("", ("", "")),
])
def test_split_custom_id(custom_id, expected):
    assert split_custom_id(custom_id) == expected


class TestDispatcher:
    @pytest.fixture
    def dispatcher(self):
        registry = HandlerRegistry()
        registry.register(COMMAND, "echo", lambda i: {"type": 4, "data": {"content": i["data"]["name"]}})
        registry.register(LABEL, "action", lambda i, cid: {"type": 4, "data": {"content": cid}})
        registry.ensure_ready()
        return InteractionDispatcher(registry)

    def test_ping_skips_lookup(self, dispatcher):
        assert dispatcher.dispatch({"type": 1}) == ({"type": 1}, 200)

    def test_command_receives_interaction(self, dispatcher):
        body, status = dispatcher.dispatch({"type": 2, "data": {"name": "echo"}})
        assert status == 200
        assert body["data"]["content"] == "echo"

    def test_component_receives_correlation_id(self, dispatcher):
        body, status = dispatcher.dispatch({"type": 3, "data": {"custom_id": "action_987"}})
        assert status == 200
        assert body["data"]["content"] == "987"

    def test_unknown_command(self, dispatcher):
        body, status = dispatcher.dispatch({"type": 2, "data": {"name": "missing"}})
        assert status == 404
        assert body["data"]["content"] == "Command not found"

    def test_unsupported_type(self, dispatcher):
        with pytest.raises(UnsupportedInteraction):
            dispatcher.dispatch({"type": 5, "data": {}})


class TestDeferredRunner:
    def test_inline_runs_immediately(self):
        calls = []
        DeferredRunner(inline=True).submit(calls.append, 1)
        assert calls == [1]

    def test_background_runs_after_return(self):
        calls = []
        runner = DeferredRunner(start_delay=0, max_workers=1)
        future = runner.submit(calls.append, "done")
        future.result(timeout=5)
        runner.shutdown()
        assert calls == ["done"]

    def test_background_failure_is_contained(self):
        def boom():
            raise RuntimeError("boom")

        runner = DeferredRunner(start_delay=0, max_workers=1)
        future = runner.submit(boom)
        runner.shutdown()
        assert isinstance(future.exception(), RuntimeError)
