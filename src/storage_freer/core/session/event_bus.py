"""Event bus delivering scan session notifications to observers."""

from __future__ import annotations

import logging
import re
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Final, override

logger = logging.getLogger(__name__)

_TOPIC_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9._-]+$")
_TOPIC_FILTER_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9._*-]+$")


class EventBusError(Exception):
    """Base exception for event bus errors."""


class EventSubscriptionError(EventBusError):
    """Exception raised when event subscription fails."""

    def __init__(self, message: str, topic: str | None = None) -> None:
        """Initialize subscription error.

        Args:
            message: Error message
            topic: Topic name related to the error
        """
        super().__init__(message)
        self.topic: str | None = topic


class EventTopic:
    """Represents an event topic with pattern matching support."""

    def __init__(self, name: str) -> None:
        self.name: str = name

    def is_valid(self) -> bool:
        """Check if topic name is valid.

        Returns:
            True if the name only contains alphanumerics, dots, underscores and hyphens
        """
        return bool(self.name) and bool(_TOPIC_NAME_PATTERN.match(self.name))

    def matches(self, pattern: str) -> bool:
        """Check if topic matches a pattern.

        Args:
            pattern: Pattern to match against (supports * wildcard)

        Returns:
            True if topic matches pattern
        """
        # First escape dots, then replace wildcards
        regex_pattern = pattern.replace(".", r"\.").replace("*", ".*")
        return bool(re.match(f"^{regex_pattern}$", self.name))

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EventTopic):
            return False
        return self.name == other.name

    @override
    def __hash__(self) -> int:
        return hash(self.name)

    @override
    def __repr__(self) -> str:
        return f"EventTopic('{self.name}')"


@dataclass
class Event:
    """Represents an event published on the bus."""

    topic: EventTopic
    data: Mapping[str, object]
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)


type EventHandler = Callable[[Event], None]


@dataclass
class Subscription:
    """A handler registered for a topic pattern."""

    pattern: str
    handler: EventHandler
    subscription_id: str = field(default_factory=lambda: str(uuid.uuid4()))


class EventBus:
    """Synchronous publish/subscribe bus.

    Handlers run in the publisher's thread, in subscription order. A handler
    that raises is logged and skipped; it never interrupts the publisher or
    the remaining handlers.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._lock: threading.RLock = threading.RLock()
        self._published: int = 0
        self._handler_failures: int = 0

    def subscribe(self, pattern: str, handler: EventHandler) -> str:
        """Register ``handler`` for topics matching ``pattern``.

        Args:
            pattern: Topic name or wildcard pattern (``*`` matches anything)
            handler: Callable receiving each matching Event

        Returns:
            Subscription ID for ``unsubscribe``

        Raises:
            EventSubscriptionError: If the pattern is malformed
        """
        if not pattern or not _TOPIC_FILTER_PATTERN.match(pattern):
            raise EventSubscriptionError(f"Invalid topic pattern: {pattern!r}", pattern)
        subscription = Subscription(pattern=pattern, handler=handler)
        with self._lock:
            self._subscriptions[subscription.subscription_id] = subscription
        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription.

        Returns:
            True if the subscription existed
        """
        with self._lock:
            return self._subscriptions.pop(subscription_id, None) is not None

    def publish(self, topic: str, data: Mapping[str, object] | None = None) -> Event:
        """Deliver an event to every matching handler.

        Args:
            topic: Topic name
            data: Event payload

        Returns:
            The published Event

        Raises:
            EventBusError: If the topic name is invalid
        """
        event_topic = EventTopic(topic)
        if not event_topic.is_valid():
            raise EventBusError(f"Invalid topic name: {topic!r}")

        event = Event(topic=event_topic, data=dict(data or {}))
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            self._published += 1

        for subscription in subscriptions:
            if not event_topic.matches(subscription.pattern):
                continue
            try:
                subscription.handler(event)
            except Exception:
                with self._lock:
                    self._handler_failures += 1
                logger.exception(
                    "Event handler failed",
                    extra={"topic": topic, "subscription_id": subscription.subscription_id},
                )
        return event

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def get_statistics(self) -> dict[str, int]:
        with self._lock:
            return {
                "subscriptions": len(self._subscriptions),
                "published": self._published,
                "handler_failures": self._handler_failures,
            }
