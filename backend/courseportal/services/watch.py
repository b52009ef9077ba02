"""
Live read models.

``ChangeFeed`` is an in-process topic publisher; directory writes publish
the topic they touched after committing. ``LiveQuery`` turns a loader
plus a topic into a watchable resource: subscribers get the current
snapshot immediately and a fresh one after every publish.
"""

from threading import RLock
from typing import Callable, Dict, Generic, Hashable, List, Optional, TypeVar
import logging

from fastapi.requests import HTTPConnection


logger = logging.getLogger(__name__)

T = TypeVar("T")

Topic = Hashable
Unsubscribe = Callable[[], None]


class ChangeFeed:
    """Topic-based change notifications, one instance per application."""

    def __init__(self) -> None:
        self._listeners: Dict[Topic, List[Callable[[], None]]] = {}
        self._lock = RLock()

    def subscribe(self, topic: Topic, listener: Callable[[], None]) -> Unsubscribe:
        with self._lock:
            self._listeners.setdefault(topic, []).append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(topic, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(topic, None)

        return unsubscribe

    def publish(self, topic: Topic) -> None:
        with self._lock:
            listeners = list(self._listeners.get(topic, []))
        for listener in listeners:
            listener()

    def listener_count(self, topic: Topic) -> int:
        with self._lock:
            return len(self._listeners.get(topic, []))


class LiveQuery(Generic[T]):
    """
    A query whose result is pushed to subscribers whenever its topic changes.

    Loader failures are reported through ``on_error``; the subscription
    stays open and recovers on the next successful load.
    """

    def __init__(self, feed: ChangeFeed, topic: Topic, loader: Callable[[], T]):
        self.feed = feed
        self.topic = topic
        self.loader = loader

    def subscribe(
        self,
        on_snapshot: Callable[[T], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        def emit() -> None:
            try:
                snapshot = self.loader()
            except Exception as exc:
                logger.error(f"Live query for {self.topic!r} failed: {exc}")
                if on_error is not None:
                    on_error(exc)
                return
            on_snapshot(snapshot)

        unsubscribe = self.feed.subscribe(self.topic, emit)
        emit()
        return unsubscribe


def courses_topic(company_id: str) -> tuple:
    return ("courses", company_id)


def modules_topic(course_id: str) -> tuple:
    return ("modules", course_id)


def customers_topic(company_id: str) -> tuple:
    return ("customers", company_id)


def subunits_topic(parent_customer_id: str) -> tuple:
    return ("subunits", parent_customer_id)


def progress_topic(user_id: str, course_id: str) -> tuple:
    return ("progress", user_id, course_id)


def get_feed(connection: HTTPConnection) -> ChangeFeed:
    """FastAPI dependency returning the application's change feed."""
    return connection.app.state.feed
