"""Topic store: per-topic history, replay on subscribe, memoized futures, error latch.

Pure in-process transport. Every mutation completes synchronously on the event
loop thread; the only deferred work is the wildcard broadcast.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from topicflow.errors import as_exception
from topicflow.events.models import FlowState, TopicEvent
from topicflow.events.topics import Topics

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


@dataclass(eq=False)
class _Listener:
    handler: Handler
    once: bool = False


class TopicStore:
    """Multiplexer keyed by topic name. Shared by reference between imported flows."""

    def __init__(self) -> None:
        self._queue: dict[str, list[Any]] = {}
        # store-wide emission order, replayed to late wildcard subscribers
        self._journal: list[tuple[str, Any]] = []
        self._resolved: dict[str, bool] = {}
        self._futures: dict[str, asyncio.Future[Any]] = {}
        self._listeners: dict[str, list[_Listener]] = defaultdict(list)
        self._latched = False
        self._last_error: Any = None

    @property
    def latched(self) -> bool:
        """True once an error has been latched; normal delivery is suppressed from then on."""
        return self._latched

    @property
    def last_error(self) -> Any:
        return self._last_error

    def latch(self, error: Any) -> bool:
        """Record error as the store-wide failure. First write wins; returns True if this call latched."""
        if self._latched:
            return False
        self._latched = True
        self._last_error = error
        logger.debug("TopicStore latched on %r", error)
        return True

    def subscribe(self, topic: str, handler: Handler, once: bool = False) -> "TopicStore":
        """Replay history of topic to handler, then register it for future emissions.

        Wildcard subscribers get every recorded emission across all topics, in
        emission order, as TopicEvent. once=True drops the handler after its next
        live delivery; replays always fire.
        """
        if topic not in (Topics.ERROR, Topics.ANY):
            self._resolved.setdefault(topic, False)
        if topic == Topics.ANY:
            for name, value in list(self._journal):
                handler(TopicEvent(name, value))
        else:
            for value in list(self._queue.get(topic, ())):
                handler(value)
        self._listeners[topic].append(_Listener(handler, once))
        return self

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        """Remove every registration of handler on topic."""
        if topic in self._listeners:
            self._listeners[topic] = [
                lst for lst in self._listeners[topic] if lst.handler != handler
            ]

    def emit(self, topic: str, value: Any = None) -> "TopicStore":
        """Record value on topic and deliver it.

        An error emission latches the store, rejects every outstanding future and
        reaches error listeners even if the store was already latched. With no
        error listener and no outstanding future to take it, the failure is
        raised to the caller. Wildcard listeners keep receiving emissions after
        the latch.
        """
        if asyncio.iscoroutine(value):
            # history may be replayed to several consumers; a bare coroutine can be awaited once
            value = asyncio.ensure_future(value)
        self._queue.setdefault(topic, []).append(value)
        self._journal.append((topic, value))

        if topic == Topics.ERROR:
            self.latch(value)
            awaited = self._settle(topic, value)
            rejected = self._reject_pending()
            self._schedule_broadcast(topic, value)
            self._deliver_error(value, consumed=awaited or rejected > 0)
            return self

        self._resolved[topic] = True
        self._schedule_broadcast(topic, value)
        if self._latched:
            logger.debug("TopicStore dropped %r: store is latched", topic)
            return self
        self._dispatch(topic, value)
        self._settle(topic, value)
        return self

    def get_future(self, topic: str) -> asyncio.Future[Any]:
        """Memoized future for topic: first value published, or the latched error."""
        future = self._futures.get(topic)
        if future is not None:
            return future
        future = asyncio.get_running_loop().create_future()
        self._futures[topic] = future
        if topic != Topics.ERROR:
            self._resolved.setdefault(topic, False)
        history = self._queue.get(topic)
        if history:
            self._resolve(future, history[0])
        elif self._queue.get(Topics.ERROR):
            future.set_exception(as_exception(self._last_error))
        return future

    def snapshot(self) -> FlowState:
        """History length per topic (non-empty only) and topics awaited but never published."""
        queue = {name: len(values) for name, values in self._queue.items() if values}
        pending = [name for name, resolved in self._resolved.items() if not resolved]
        return FlowState(queue=queue, pending=pending)

    def _dispatch(self, topic: str, value: Any) -> None:
        for listener in list(self._listeners.get(topic, ())):
            if self._latched and topic not in (Topics.ERROR, Topics.ANY):
                break
            if listener.once:
                self._listeners[topic] = [
                    lst for lst in self._listeners[topic] if lst is not listener
                ]
            listener.handler(value)

    def _deliver_error(self, error: Any, consumed: bool = False) -> None:
        if not self._listeners.get(Topics.ERROR):
            if consumed:
                # an outstanding future took the error
                logger.debug("TopicStore error %r handed to pending futures", error)
                return
            raise as_exception(error)
        self._dispatch(Topics.ERROR, error)

    def _settle(self, topic: str, value: Any) -> bool:
        future = self._futures.get(topic)
        if future is None or future.done():
            return False
        self._resolve(future, value)
        return True

    def _reject_pending(self) -> int:
        error = as_exception(self._last_error)
        rejected = 0
        for name, future in self._futures.items():
            if name != Topics.ERROR and not future.done():
                future.set_exception(error)
                rejected += 1
        return rejected

    def _resolve(self, future: asyncio.Future[Any], value: Any) -> None:
        if inspect.isawaitable(value):
            inner = asyncio.ensure_future(value)
            inner.add_done_callback(lambda done: _copy_outcome(done, future))
            return
        future.set_result(value)

    def _schedule_broadcast(self, topic: str, value: Any) -> None:
        if not self._listeners.get(Topics.ANY):
            return
        asyncio.get_running_loop().call_soon(
            self._dispatch, Topics.ANY, TopicEvent(topic, value)
        )


def _copy_outcome(source: asyncio.Future[Any], target: asyncio.Future[Any]) -> None:
    if target.done():
        return
    if source.cancelled():
        target.cancel()
    elif source.exception() is not None:
        target.set_exception(source.exception())
    else:
        target.set_result(source.result())
