"""Reserved topic names. Every other name is free for application use."""


class Topics:
    """Topics with built-in meaning inside a TopicStore."""

    # Failures; the first one latches the store
    ERROR = "error"

    # Wildcard; listeners receive TopicEvent(topic, value) for every emission
    ANY = "*"

    # Bound by a Publisher created without explicit topics
    DEFAULT = "data"

    # Companion topic emitted when a stream on <topic> ends
    END_SUFFIX = ":end"


def end_topic(topic: str) -> str:
    """Name of the completion topic for a stream on topic."""
    return topic + Topics.END_SUFFIX
