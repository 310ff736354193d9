"""Publisher: write handle bound to one or more topics of a TopicStore."""

import asyncio
import logging
from typing import Any, Iterable

from topicflow.events.models import Outcome
from topicflow.events.store import TopicStore
from topicflow.events.topics import Topics

logger = logging.getLogger(__name__)


class Publisher:
    """Scoped publisher created per define() call. Applies the error-latching policy."""

    def __init__(self, store: TopicStore, topics: Iterable[str] | None = None) -> None:
        self._store = store
        self._topics: tuple[str, ...] = (
            (Topics.DEFAULT,) if topics is None else tuple(topics)
        )

    @property
    def topics(self) -> tuple[str, ...]:
        return self._topics

    def publish(self, value: Any = None) -> None:
        """Publish value to every bound topic; an exception goes to the error topic instead."""
        self.publish_outcome(Outcome.of(value))

    def publish_outcome(self, outcome: Outcome) -> None:
        """Publish an already classified result. No-op once the store is latched."""
        if self._store.latched:
            logger.debug("Publisher %s: store latched, dropping publish", self._topics)
            return
        if outcome.failed:
            self._store.latch(outcome.err)
            self._emit_later(Topics.ERROR, outcome.err)
            return
        for topic in self._topics:
            self._store.emit(topic, outcome.ok)

    def _emit_later(self, topic: str, value: Any) -> None:
        # next loop turn, so error handlers chained after define() are registered first
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._store.emit(topic, value)
            return
        loop.call_soon(self._store.emit, topic, value)
