"""Tests for Registry: entry classification, lazy memoized resolution, flow integration."""

import pytest

from topicflow import Flow, Registry
from topicflow.registry import FactoryEntry, FailureEntry, ValueEntry, classify


class TestClassify:
    """Raw entries are tagged once."""

    def test_value(self) -> None:
        assert classify("foov") == ValueEntry("foov")

    def test_failure(self) -> None:
        err = RuntimeError("BOOM")
        assert classify(err) == FailureEntry(err)

    def test_factory(self) -> None:
        def factory(registry: Registry) -> str:
            return "x"

        assert classify(factory) == FactoryEntry(factory)


class TestRegistryFunctions:
    """Function groups resolve lazily and cache the accessor."""

    def test_value_and_factory_entries(self) -> None:
        registry = Registry(
            functions={
                "actions": {
                    "foo": "foov",
                    "wsx": lambda ctx: lambda props=None: "wsxv",
                }
            }
        )
        actions = registry.functions["actions"]
        assert actions["foo"]() == "foov"
        assert actions["wsx"]() == "wsxv"

    def test_factory_receives_registry(self) -> None:
        seen: list[Registry] = []

        def qaz(ctx: Registry):
            seen.append(ctx)
            assert ctx.functions["actions"]["bar"]() == "barf"
            assert ctx.properties["props"]["foo"] == "foov"
            return lambda: "qazf"

        registry = Registry(
            properties={"props": {"foo": "foov"}},
            functions={"actions": {"bar": "barf", "qaz": qaz}},
        )
        actions = registry.group("actions")
        assert actions["qaz"]() == "qazf"
        assert actions["qaz"]() == "qazf"
        assert seen == [registry]

    def test_factory_resolved_once(self) -> None:
        calls: list[int] = []

        def factory(ctx: Registry):
            calls.append(1)
            return lambda: "v"

        registry = Registry(functions={"actions": {"f": factory}})
        group = registry.group("actions")
        assert group["f"] is group["f"]
        assert calls == [1]

    def test_factory_returning_value(self) -> None:
        registry = Registry(functions={"actions": {"three": lambda ctx: 3}})
        assert registry.group("actions")["three"]() == 3

    def test_factory_returning_exception_raises_on_call(self) -> None:
        registry = Registry(functions={"actions": {"nope": lambda ctx: ValueError("nope")}})
        nope = registry.functions["actions"]["nope"]
        with pytest.raises(ValueError, match="nope"):
            nope()
        with pytest.raises(ValueError, match="nope"):
            nope()

    def test_failure_entry_raises_on_call(self) -> None:
        registry = Registry(functions={"actions": {"fail": RuntimeError("BOOM")}})
        fail = registry.group("actions")["fail"]
        with pytest.raises(RuntimeError, match="BOOM"):
            fail()

    def test_action_chain(self) -> None:
        def calc(ctx: Registry):
            return lambda param: ctx.group("actions")["mutate"](param)

        def mutate(ctx: Registry):
            return lambda param: param + ctx.group("actions")["three"]()

        registry = Registry(functions={"actions": {"calc": calc, "mutate": mutate, "three": 3}})
        assert registry.group("actions")["calc"](2) == 5

    def test_to_dict_lists_resolved_only(self) -> None:
        registry = Registry(functions={"actions": {"qaz": "qazv", "wsx": "wsxv"}})
        actions = registry.group("actions")
        assert actions.to_dict() == {}
        actions["qaz"]
        assert list(actions.to_dict()) == ["qaz"]
        assert len(actions) == 2
        assert sorted(actions) == ["qaz", "wsx"]


class TestRegistryNegative:
    """Unknown groups and names."""

    def test_unknown_group_is_empty(self) -> None:
        registry = Registry()
        assert len(registry.group("bad")) == 0
        assert registry.properties == {}

    def test_unknown_name_raises_key_error(self) -> None:
        registry = Registry(functions={"actions": {}})
        with pytest.raises(KeyError):
            registry.group("actions")["bad"]
        assert registry.group("actions").get("bad") is None


class TestRegistryFlow:
    """A registry is a flow; accessors can define and consume topics."""

    @pytest.mark.asyncio
    async def test_define_and_consume_inside_accessors(self) -> None:
        def calc(ctx: Registry):
            async def run():
                param1 = await ctx.consume("param1")
                await ctx.group("actions")["mutate"](param1)
                return await ctx.consume("result")

            return run

        def mutate(ctx: Registry):
            async def run(param1: int) -> None:
                ctx.define("result", param1 + ctx.group("actions")["three"]())

            return run

        registry = Registry(
            functions={"actions": {"calc": calc, "mutate": mutate, "three": lambda ctx: 3}}
        )
        registry.define("param1", 2)
        assert await registry.group("actions")["calc"]() == 5

    @pytest.mark.asyncio
    async def test_registry_shares_base_flow_store(self) -> None:
        base = Flow()
        registry = Registry(base=base)
        base.define("foo", "bar")
        assert await registry.consume("foo") == "bar"
