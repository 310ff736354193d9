"""Stream bridge: exposes a topic's pushed values as a pull-based async iterator.

Values published on the topic land in a sink that the consumer reads from. Once
the sink holds high_water_mark unread items the bridge pauses and keeps further
values in its own unbounded buffer until the consumer pulls again. Publishing
None marks the end of the stream.
"""

import asyncio
import logging
from collections import deque
from typing import Any

from topicflow.events.store import TopicStore
from topicflow.events.topics import Topics, end_topic
from topicflow.settings import get_flow_settings

logger = logging.getLogger(__name__)

# sink markers
_END = object()
_FAILED = object()


class TopicStream:
    """Async iterator over the values of one topic, with manual backpressure bookkeeping."""

    def __init__(
        self,
        topic: str,
        store: TopicStore,
        high_water_mark: int | None = None,
    ) -> None:
        self.topic = topic
        self._store = store
        self._high_water_mark = (
            high_water_mark or get_flow_settings().stream.high_water_mark
        )
        self._buffer: deque[Any] = deque()
        self._sink: asyncio.Queue[Any] = asyncio.Queue()
        self._paused = False
        self._stopped = False
        self._ended = False
        self._end_emitted = False
        self._error: BaseException | None = None
        store.subscribe(topic, self._on_item)
        if self._stopped:
            # history already held the end marker
            self._detach()

    @property
    def buffered(self) -> list[Any]:
        """Items held back by the bridge because the sink was saturated."""
        return list(self._buffer)

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def stopped(self) -> bool:
        return self._stopped

    def __aiter__(self) -> "TopicStream":
        return self

    async def __anext__(self) -> Any:
        item = await self.read()
        if item is None:
            raise StopAsyncIteration
        return item

    async def read(self) -> Any:
        """Return the next item, or None once the stream has ended. Raises the failure if the stream failed."""
        if self._error is not None:
            raise self._error
        if self._sink.empty():
            self._pull()
        item = await self._sink.get()
        if item is _END:
            # later reads keep seeing the end
            self._sink.put_nowait(_END)
            return None
        if item is _FAILED:
            raise self._error
        if self._sink.qsize() < self._high_water_mark:
            self._pull()
        return item

    def close(self) -> None:
        """Stop the stream now: drop buffered items and end after what the sink already holds."""
        self._stopped = True
        self._buffer.clear()
        self._end_sink()
        self._detach()
        logger.debug("TopicStream %s closed", self.topic)

    def fail(self, error: BaseException) -> None:
        """Terminate with error: signal <topic>:end and raise error on the store's error channel."""
        logger.debug("TopicStream %s failed: %s", self.topic, error)
        self._stopped = True
        self._buffer.clear()
        self._error = error
        self._sink.put_nowait(_FAILED)
        self._detach()
        self._emit_end()
        self._store.emit(Topics.ERROR, error)

    def _on_item(self, item: Any) -> None:
        if self._stopped:
            return
        try:
            if item is None:
                self._stopped = True
                self._detach()
            if self._paused:
                self._buffer.append(item)
                return
            self._continue(item)
        except Exception as e:
            self.fail(e)

    def _pull(self) -> None:
        """Consumer is ready for more: drain the buffer until empty or saturated again."""
        self._paused = False
        while not self._paused and self._buffer:
            self._continue(self._buffer.popleft())

    def _continue(self, item: Any) -> None:
        if item is None:
            self._stopped = True
            self._end_sink()
            self._emit_end()
            return
        self._sink.put_nowait(item)
        self._paused = self._sink.qsize() >= self._high_water_mark

    def _end_sink(self) -> None:
        if not self._ended:
            self._ended = True
            self._sink.put_nowait(_END)

    def _detach(self) -> None:
        self._store.unsubscribe(self.topic, self._on_item)

    def _emit_end(self) -> None:
        if not self._end_emitted:
            self._end_emitted = True
            self._store.emit(end_topic(self.topic))
