"""Value objects passed between the store, publishers and consumers."""

from dataclasses import dataclass, field
from typing import Any

__all__ = ["FlowState", "Outcome", "TopicEvent"]


@dataclass(frozen=True)
class TopicEvent:
    """Immutable envelope delivered to wildcard listeners."""

    topic: str
    value: Any


@dataclass(frozen=True)
class FlowState:
    """Store snapshot: history length per topic and topics still awaited."""

    queue: dict[str, int] = field(default_factory=dict)
    pending: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Outcome:
    """Discriminated publish result: exactly one of ok / err is meaningful."""

    ok: Any = None
    err: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.err is not None

    @classmethod
    def success(cls, value: Any) -> "Outcome":
        return cls(ok=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome":
        return cls(err=error)

    @classmethod
    def of(cls, value: Any) -> "Outcome":
        """Classify a raw payload once: exceptions are failures, anything else succeeds."""
        if isinstance(value, BaseException):
            return cls.failure(value)
        return cls.success(value)
