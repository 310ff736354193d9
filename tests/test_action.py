"""Tests for Action: single activation, child ordering, store sharing, add() forms."""

from typing import Any

import pytest

from topicflow import Action, Flow, FlowTimeoutError, FunctionAction, UsageError


class FooAction(Action):
    def execute(self) -> None:
        self.define("foo", "bar")


class QazAction(Action):
    def execute(self) -> None:
        self.define("qax", "wsx")


class RecordingAction(Action):
    def __init__(self, name: str, log: list[str]) -> None:
        super().__init__()
        self.name = name
        self.log = log

    def execute(self) -> None:
        self.log.append(self.name)


class TestActionActivate:
    """activate(): single run, order, chaining."""

    def test_activate_marks_executed(self) -> None:
        action = Action()
        assert not action.executed
        assert action.activate() is action
        assert action.executed

    def test_activate_twice_runs_body_once(self) -> None:
        log: list[str] = []
        action = RecordingAction("a", log)
        action.activate().activate()
        assert log == ["a"]

    def test_parent_body_runs_before_children_in_order(self) -> None:
        log: list[str] = []
        base = RecordingAction("base", log)
        child_a = RecordingAction("childA", log)
        child_b = RecordingAction("childB", log)
        child_a.add(RecordingAction("grandchild", log))
        base.add(child_a, child_b)
        base.activate()
        assert log == ["base", "childA", "grandchild", "childB"]

    @pytest.mark.asyncio
    async def test_custom_action_defines_topic(self) -> None:
        action = FooAction()
        result = action.consume("foo")
        action.activate()
        assert await result == "bar"


class TestActionAdd:
    """add(): accepted forms, store rebinding, misuse."""

    @pytest.mark.asyncio
    async def test_child_publishes_to_parent_store(self) -> None:
        base = Action()
        base.add(FooAction())
        result = base.consume("foo")
        base.activate()
        assert await result == "bar"

    @pytest.mark.asyncio
    async def test_waterfall_style(self) -> None:
        assert await Action().add(FooAction()).activate().consume("foo") == "bar"

    @pytest.mark.asyncio
    async def test_add_plain_function(self) -> None:
        base = Action()
        base.add(lambda flow: flow.define("foo", "bar"))
        assert isinstance(base.actions[0], FunctionAction)
        assert await base.activate().consume("foo") == "bar"

    @pytest.mark.asyncio
    async def test_add_list(self) -> None:
        base = Action()
        base.add([lambda flow: flow.define("edc", "rfv"), QazAction(), FooAction()])
        futures = base.activate().consume(["foo", "qax", "edc"])
        assert await futures["foo"] == "bar"
        assert await futures["qax"] == "wsx"
        assert await futures["edc"] == "rfv"

    @pytest.mark.asyncio
    async def test_add_variadic_mix(self) -> None:
        base = Action()
        base.add(lambda flow: flow.define("edc", "rfv"), [QazAction()], FooAction())
        assert len(base.actions) == 3
        futures = base.activate().consume(["foo", "qax", "edc"])
        assert {k: await v for k, v in futures.items()} == {
            "foo": "bar",
            "qax": "wsx",
            "edc": "rfv",
        }

    @pytest.mark.asyncio
    async def test_add_during_execution(self) -> None:
        class BaseAction(Action):
            def execute(self) -> None:
                self.add(lambda flow: flow.define("edc", "rfv"), QazAction(), FooAction())

        futures = BaseAction().activate().consume(["foo", "qax", "edc"])
        assert await futures["edc"] == "rfv"
        assert await futures["qax"] == "wsx"
        assert await futures["foo"] == "bar"

    def test_add_rebinds_store(self) -> None:
        base = Action()
        child = Action()
        assert child.store is not base.store
        base.add(child)
        assert child.store is base.store

    def test_add_rebinds_existing_subtree(self) -> None:
        base = Action()
        child = Action()
        grandchild = FooAction()
        child.add(grandchild)
        base.add(child)
        assert grandchild.store is base.store
        base.activate()
        assert base.state().queue == {"foo": 1}

    def test_adding_activated_action_fails(self) -> None:
        with pytest.raises(
            UsageError,
            match="The action should not be in progress when it is added to the other action",
        ):
            Action().add(Action().activate())

    def test_adding_unsupported_object_fails(self) -> None:
        with pytest.raises(UsageError):
            Action().add(42)

    def test_many_listeners_on_one_topic(self) -> None:
        action = Action()
        calls: list[Any] = []
        for _ in range(25):
            action.consume("topic", lambda value, flow: calls.append(value))
        action.define("topic", 1)
        assert len(calls) == 25


class TestActionTimeout:
    """Timeouts set on a child surface through the parent."""

    @pytest.mark.asyncio
    async def test_child_timeout_rejects_parent_future(self) -> None:
        action = Action()
        other = Action().timeout("foo", 1)
        action.add(other)
        action.catch(lambda err, flow: None)
        with pytest.raises(FlowTimeoutError, match=r"Topic/s \(foo\) timed out"):
            await action.activate().consume("foo")

    @pytest.mark.asyncio
    async def test_action_is_a_flow(self) -> None:
        action = Action()
        imported = Flow(action)
        imported.define("foo", "bar")
        assert await action.consume("foo") == "bar"
