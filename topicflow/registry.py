"""Registry: lazily resolved function groups and plain properties on top of a Flow.

Used to inject or mock the dependencies of business logic. Raw entries are
classified once when the registry is built:

- a callable is a factory, called with the registry on first access; a callable
  result becomes the accessor, an exception result is raised by it, anything
  else is returned by it;
- an exception is a failure, raised whenever the accessor is called;
- anything else is a constant returned by the accessor.

Resolved accessors are cached per name, so a factory runs at most once.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from topicflow.flow import Flow

logger = logging.getLogger(__name__)

Accessor = Callable[..., Any]


@dataclass(frozen=True)
class ValueEntry:
    value: Any

    def resolve(self, registry: "Registry") -> Accessor:
        value = self.value
        return lambda *args, **kwargs: value


@dataclass(frozen=True)
class FailureEntry:
    error: BaseException

    def resolve(self, registry: "Registry") -> Accessor:
        error = self.error

        def _raise(*args: Any, **kwargs: Any) -> Any:
            raise error

        return _raise


@dataclass(frozen=True)
class FactoryEntry:
    factory: Callable[["Registry"], Any]

    def resolve(self, registry: "Registry") -> Accessor:
        result = self.factory(registry)
        if callable(result):
            return result
        if isinstance(result, BaseException):
            return FailureEntry(result).resolve(registry)
        return ValueEntry(result).resolve(registry)


Entry = ValueEntry | FailureEntry | FactoryEntry


def classify(raw: Any) -> Entry:
    """Tag a raw registry entry as value, failure or factory."""
    if isinstance(raw, BaseException):
        return FailureEntry(raw)
    if callable(raw):
        return FactoryEntry(raw)
    return ValueEntry(raw)


class FunctionGroup(Mapping[str, Accessor]):
    """Read-only mapping name -> accessor, resolving each entry on first lookup."""

    def __init__(self, registry: "Registry", entries: Mapping[str, Any]) -> None:
        self._registry = registry
        self._entries: dict[str, Entry] = {
            name: classify(raw) for name, raw in entries.items()
        }
        self._resolved: dict[str, Accessor] = {}

    def __getitem__(self, name: str) -> Accessor:
        accessor = self._resolved.get(name)
        if accessor is None:
            entry = self._entries[name]
            accessor = entry.resolve(self._registry)
            self._resolved[name] = accessor
            logger.debug("Registry resolved %s as %s", name, type(entry).__name__)
        return accessor

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> dict[str, Accessor]:
        """Accessors resolved so far; unresolved entries are not forced."""
        return dict(self._resolved)

    def __repr__(self) -> str:
        return f"FunctionGroup(resolved={sorted(self._resolved)})"


class Registry(Flow):
    """Flow carrying named function groups and properties for dependency injection."""

    def __init__(
        self,
        functions: Mapping[str, Mapping[str, Any]] | None = None,
        properties: Mapping[str, Any] | None = None,
        base: Flow | None = None,
    ) -> None:
        super().__init__(base)
        self.properties: dict[str, Any] = dict(properties or {})
        self.functions: dict[str, FunctionGroup] = {
            name: FunctionGroup(self, entries)
            for name, entries in (functions or {}).items()
        }

    def group(self, name: str) -> FunctionGroup:
        """Function group by name; unknown names give an empty group."""
        group = self.functions.get(name)
        if group is None:
            return FunctionGroup(self, {})
        return group
