"""Tests for hook registry - built-in and user bindings."""

import itertools
from unittest.mock import AsyncMock

import pytest

from hookmake.build.hooks import (
    BEFORE_PACKAGE,
    BUILD_COMPLETED,
    INITIALIZE,
    HookKind,
    HookRegistry,
    register_hooks,
)


async def builtin_handler():
    return None


@pytest.fixture
def builtins():
    return {INITIALIZE: builtin_handler, BEFORE_PACKAGE: builtin_handler}


class TestRegisterHooks:
    """Tests for table construction."""

    def test_builtins_are_tagged(self, builtins, plugin_log):
        """Test built-in handlers are installed as BUILTIN."""
        table = register_hooks(builtins, {}, AsyncMock(), plugin_log)

        assert set(table) == {INITIALIZE, BEFORE_PACKAGE}
        assert all(hook.kind == HookKind.BUILTIN for hook in table.values())
        assert table[INITIALIZE].run is builtin_handler

    def test_override_rejected_with_one_warning(self, builtins, plugin_log, host_log):
        """Test binding a built-in name keeps the built-in and warns once."""
        table = register_hooks(builtins, {INITIALIZE: "other"}, AsyncMock(), plugin_log)

        assert table[INITIALIZE].kind == HookKind.BUILTIN
        assert table[INITIALIZE].run is builtin_handler
        assert host_log.messages["warning"] == [
            '[make] Unable to override registered internal hook "initialize"!'
        ]

    def test_reserved_event_rejected(self, builtins, plugin_log, host_log):
        """Test the completion event cannot be bound."""
        table = register_hooks(builtins, {BUILD_COMPLETED: "loop"}, AsyncMock(), plugin_log)

        assert BUILD_COMPLETED not in table
        assert len(host_log.messages["warning"]) == 1

    def test_user_binding_installed(self, builtins, plugin_log, host_log):
        """Test a new event name gets a USER hook for its target."""
        table = register_hooks(
            builtins, {"after:deploy:deploy": "clean"}, AsyncMock(), plugin_log
        )

        hook = table["after:deploy:deploy"]
        assert hook.kind == HookKind.USER
        assert hook.target == "clean"
        assert host_log.messages["warning"] == []

    @pytest.mark.asyncio
    async def test_user_hook_makes_bound_target(self, builtins, plugin_log, host_log):
        """Test invoking a user hook runs make for its own target."""
        make = AsyncMock()
        table = register_hooks(builtins, {"after:deploy:deploy": "clean"}, make, plugin_log)

        result = await table["after:deploy:deploy"].run()

        assert result is None
        make.assert_awaited_once_with("clean")
        assert "[make] after:deploy:deploy" in host_log.messages["verbose"]

    def test_binding_order_irrelevant(self, builtins, plugin_log):
        """Test every ordering of bindings gives the same table."""
        bindings = [("a", "ta"), (INITIALIZE, "x"), ("b", "tb"), (BEFORE_PACKAGE, "y")]
        results = []
        for order in itertools.permutations(bindings):
            table = register_hooks(builtins, dict(order), AsyncMock(), plugin_log)
            results.append({k: (v.kind, v.target) for k, v in table.items()})

        assert all(r == results[0] for r in results)
        assert results[0]["a"] == (HookKind.USER, "ta")
        assert results[0][INITIALIZE] == (HookKind.BUILTIN, None)


class TestHookRegistry:
    """Tests for dispatch."""

    @pytest.mark.asyncio
    async def test_fire_runs_hook(self, builtins, plugin_log):
        """Test fire awaits the bound handler."""
        make = AsyncMock()
        registry = HookRegistry(
            register_hooks(builtins, {"custom": "t"}, make, plugin_log), plugin_log
        )

        await registry.fire("custom")

        make.assert_awaited_once_with("t")

    @pytest.mark.asyncio
    async def test_fire_unknown_event(self, builtins, plugin_log, host_log):
        """Test unknown events are a verbose no-op."""
        registry = HookRegistry(register_hooks(builtins, {}, AsyncMock(), plugin_log), plugin_log)

        assert await registry.fire("nope") is None
        assert "[make] No hook bound to nope" in host_log.messages["verbose"]

    def test_mapping_protocol(self, builtins, plugin_log):
        """Test membership, iteration and serialization."""
        registry = HookRegistry(
            register_hooks(builtins, {"custom": "t"}, AsyncMock(), plugin_log)
        )

        assert "custom" in registry
        assert len(registry) == 3
        assert registry.names() == [INITIALIZE, BEFORE_PACKAGE, "custom"]
        assert registry.to_dict()["custom"] == {"kind": "user", "target": "t"}
        assert registry.get("missing") is None
