"""Topic store primitives: store, publisher, reserved topics and value objects."""

from topicflow.events.models import FlowState, Outcome, TopicEvent
from topicflow.events.publisher import Publisher
from topicflow.events.store import TopicStore
from topicflow.events.topics import Topics, end_topic

__all__ = [
    "FlowState",
    "Outcome",
    "Publisher",
    "TopicEvent",
    "TopicStore",
    "Topics",
    "end_topic",
]
