"""topicflow: in-process coordination of producers and consumers over named topics."""

from topicflow.action import Action, FunctionAction
from topicflow.errors import FlowError, FlowTimeoutError, UsageError
from topicflow.events import FlowState, Outcome, Publisher, TopicEvent, TopicStore, Topics
from topicflow.flow import Flow
from topicflow.logging_config import setup_logging
from topicflow.registry import Registry
from topicflow.settings import FlowSettings, load_settings, reload_settings
from topicflow.stream import TopicStream

__all__ = [
    "Action",
    "Flow",
    "FlowError",
    "FlowSettings",
    "FlowState",
    "FlowTimeoutError",
    "FunctionAction",
    "Outcome",
    "Publisher",
    "Registry",
    "TopicEvent",
    "TopicStore",
    "TopicStream",
    "Topics",
    "UsageError",
    "load_settings",
    "reload_settings",
    "setup_logging",
]
