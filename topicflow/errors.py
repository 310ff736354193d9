"""Errors raised by topicflow: caller misuse and failures published on a flow."""

from typing import Any


class UsageError(Exception):
    """API misuse detected at the call site (bad arity, re-attaching an activated action)."""


class FlowError(Exception):
    """Failure published on the error topic.

    Exceptions published on a flow are delivered as-is; any other payload is
    wrapped so it can reject futures and be raised.
    """

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class FlowTimeoutError(FlowError, TimeoutError):
    """Watched topics did not resolve before the timeout supervisor fired."""


def as_exception(value: Any) -> BaseException:
    """Return value if it is already an exception, else wrap it in FlowError."""
    if isinstance(value, BaseException):
        return value
    return FlowError(f"Flow failed with {value!r}", payload=value)
