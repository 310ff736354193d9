"""Action tree: composable units of work sharing one TopicStore.

An action runs its own execute() body and then its children, depth-first,
exactly once. Attaching a child re-binds it (and everything already below it)
to the parent's store.
"""

import logging
from typing import Any, Callable, Iterable

from topicflow.errors import UsageError
from topicflow.flow import Flow

logger = logging.getLogger(__name__)


class Action(Flow):
    """Flow node with single-run activation. Override execute() to give it a body."""

    def __init__(self) -> None:
        super().__init__()
        self.actions: list[Action] = []
        self.executed = False

    def execute(self) -> Any:
        """Body of the action. Runs once, before any child."""

    def activate(self) -> "Action":
        """Run execute() and then every child registered so far. Repeated calls are no-ops."""
        if self.executed:
            return self
        self.executed = True
        logger.debug("Activating %s with %d children", type(self).__name__, len(self.actions))
        self.execute()
        for action in list(self.actions):
            action.activate()
        return self

    def add(self, *actions: "Action | Callable[[Flow], Any] | Iterable[Any]") -> "Action":
        """Attach children: actions, plain functions taking the flow, or lists of either."""
        for item in actions:
            if isinstance(item, (list, tuple)):
                self.add(*item)
                continue
            child = self._as_action(item)
            if child.executed:
                raise UsageError(
                    "The action should not be in progress when it is added to the other action"
                )
            child._rebind(self.store)
            self.actions.append(child)
        return self

    def _rebind(self, store: Any) -> None:
        self.store = store
        for action in self.actions:
            action._rebind(store)

    @staticmethod
    def _as_action(item: Any) -> "Action":
        if isinstance(item, Action):
            return item
        if callable(item):
            return FunctionAction(item)
        raise UsageError(f"Cannot add {type(item).__name__} as an action")


class FunctionAction(Action):
    """Ad-hoc action whose body is a plain function called with the action itself."""

    def __init__(self, fn: Callable[[Flow], Any]) -> None:
        super().__init__()
        self._fn = fn

    def execute(self) -> Any:
        return self._fn(self)
