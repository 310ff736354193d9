"""Flow: public façade over a TopicStore (define, consume, streams, catch, timeout, state).

Flows constructed from another flow share its store, so independently built
flows can publish to and consume from each other without copying data.
"""

import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Iterable

from topicflow.errors import FlowTimeoutError, UsageError
from topicflow.events.models import FlowState, Outcome
from topicflow.events.publisher import Publisher
from topicflow.events.store import TopicStore
from topicflow.events.topics import Topics, end_topic
from topicflow.settings import get_flow_settings
from topicflow.stream import TopicStream

logger = logging.getLogger(__name__)

_MISSING = object()

TopicArg = str | Iterable[str]


def _as_topics(topics: TopicArg) -> list[str]:
    if isinstance(topics, str):
        return [topics]
    return list(topics)


def _outcome_of(done: asyncio.Future[Any]) -> Outcome:
    if done.cancelled():
        return Outcome.failure(asyncio.CancelledError())
    if done.exception() is not None:
        return Outcome.failure(done.exception())
    return Outcome.of(done.result())


def _ignore(_value: Any) -> None:
    pass


class Flow:
    """Coordinates producers and consumers of named topics on one event loop."""

    def __init__(self, base: "Flow | None" = None) -> None:
        self.store: TopicStore = base.store if base is not None else TopicStore()
        self._tasks: set[asyncio.Future[Any]] = set()

    def define(self, topics: TopicArg, arg: Any = _MISSING) -> "Flow | Publisher":
        """Define a publisher for topics.

        - callable: called as arg(publisher, flow); a non-None return is published,
          an awaitable return is awaited and its result (or exception) published.
        - awaitable: its result, or its exception as a failure, is published when it settles.
        - any other value: published now; an exception instance is a failure.
        - omitted: the Publisher itself is returned for deferred publishing.

        Returns the flow for chaining, except when arg is omitted.
        """
        publisher = Publisher(self.store, _as_topics(topics))
        if arg is _MISSING:
            return publisher
        if inspect.isawaitable(arg):
            self._publish_when_done(publisher, arg)
            return self
        if callable(arg):
            result = arg(publisher, self)
            if inspect.isawaitable(result):
                self._publish_when_done(publisher, result)
            elif result is not None:
                publisher.publish(result)
            return self
        publisher.publish(arg)
        return self

    def consume(self, topics: TopicArg, cb: Callable[..., Any] | None = None) -> Any:
        """Consume one or more topics.

        - consume(topic): memoized future of the topic's first value.
        - consume(topic, cb): cb(value, flow) on every value, history included.
        - consume([a, b]): {topic: future}.
        - consume([a, b], cb): cb({topic: value}, flow) once, after all topics resolve.

        With a callback the flow is returned for chaining.
        """
        if not isinstance(topics, str):
            names = _as_topics(topics)
            if cb is None:
                return {name: self.store.get_future(name) for name in names}
            self._consume_all(names, cb)
            return self
        if cb is None:
            return self.store.get_future(topics)
        self.store.subscribe(topics, lambda value: self._deliver(cb, value))
        return self

    def consume_stream(
        self,
        topic: str,
        cb: Callable[[TopicStream], Any] | None = None,
    ) -> "TopicStream | Flow":
        """Consume topic as a TopicStream. Publish None on topic to end the stream."""
        # track end of stream so it shows up in pending topics on timeout
        self.store.subscribe(end_topic(topic), _ignore, once=True)
        stream = TopicStream(topic, self.store)
        if cb is not None:
            cb(stream)
            return self
        return stream

    def catch(self, *args: Callable[..., Any]) -> "Flow":
        """Register an error handler: shorthand for consume("error", handler)."""
        if len(args) != 1:
            raise UsageError("Invalid arguments")
        return self.consume(Topics.ERROR, args[0])

    def timeout(self, topics: TopicArg, ms: int | None = None) -> "Flow":
        """Fail the flow if topics are not all resolved within ms milliseconds."""
        watched = _as_topics(topics)
        if ms is None:
            ms = get_flow_settings().timeout.default_ms
        handle = asyncio.get_running_loop().call_later(
            ms / 1000, self._on_timeout, watched
        )
        # subscriptions, not futures: the watcher must not count as an error consumer
        remaining = set(watched)

        def _seen(name: str) -> None:
            remaining.discard(name)
            if not remaining:
                handle.cancel()

        for name in dict.fromkeys(watched):
            self.store.subscribe(name, lambda _value, name=name: _seen(name), once=True)
        return self

    def state(self) -> FlowState:
        """Snapshot of the shared store: queue counts and pending topics."""
        return self.store.snapshot()

    def _on_timeout(self, watched: list[str]) -> None:
        state = self.state()
        timed_out = [name for name in state.pending if name in watched]
        others = [name for name in state.pending if name not in watched]
        queue_state = json.dumps(state.queue, separators=(",", ":"))
        message = (
            f"Topic/s ({','.join(timed_out)}) timed out, "
            f"pending topics ({','.join(others) or 'none'}), "
            f"queue state {queue_state}"
        )
        logger.warning("Flow timeout: %s", message)
        self.define(Topics.ERROR, FlowTimeoutError(message))

    def _consume_all(self, names: list[str], cb: Callable[..., Any]) -> None:
        unique = list(dict.fromkeys(names))
        waiter = asyncio.gather(*(self.store.get_future(name) for name in unique))

        def _on_resolved(done: asyncio.Future[list[Any]]) -> None:
            if done.cancelled():
                return
            if done.exception() is not None:
                # already raised on the error channel
                logger.debug("consume(%s) abandoned: %s", unique, done.exception())
                return
            values = dict(zip(unique, done.result()))
            # next turn, so a fault in cb reaches the loop's exception handler
            asyncio.get_running_loop().call_soon(self._call, cb, values)

        waiter.add_done_callback(_on_resolved)

    def _deliver(self, cb: Callable[..., Any], value: Any) -> None:
        if inspect.isawaitable(value):
            future = self._track(value)
            future.add_done_callback(lambda done: self._call(cb, done.result()))
            return
        self._call(cb, value)

    def _call(self, cb: Callable[..., Any], value: Any) -> None:
        result = cb(value, self)
        if inspect.isawaitable(result):
            self._track(result).add_done_callback(self._report_failure)

    def _publish_when_done(self, publisher: Publisher, awaitable: Any) -> None:
        self._track(awaitable).add_done_callback(
            lambda done: publisher.publish_outcome(_outcome_of(done))
        )

    def _track(self, awaitable: Any) -> asyncio.Future[Any]:
        future = asyncio.ensure_future(awaitable)
        self._tasks.add(future)
        future.add_done_callback(self._tasks.discard)
        return future

    @staticmethod
    def _report_failure(task: asyncio.Future[Any]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        task.get_loop().call_exception_handler(
            {
                "message": "topicflow consumer callback failed",
                "exception": task.exception(),
                "future": task,
            }
        )
