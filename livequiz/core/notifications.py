"""Best-effort broadcast of change hints to connected clients.

Delivery is at-most-once and unordered. Listeners treat every message as a
hint to re-fetch, so nothing in the core depends on a notification arriving.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
from threading import Lock
from typing import Protocol

from livequiz.constants.network_constants import LISTENER_QUEUE_SIZE
from livequiz.core.models import LeaderboardRow, Quiz, Response, SessionState, User

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    STATE_CHANGED = "state-changed"
    QUIZ_LIST_CHANGED = "quiz-list-changed"
    RESPONSE_CHANGED = "response-changed"
    USER_JOINED = "user-joined"
    SCORE_CHANGED = "score-changed"


@dataclass(frozen=True, slots=True)
class Notification:
    """A tagged event: one constructor per kind fixes the payload shape."""

    kind: EventKind
    payload: object = None

    @classmethod
    def state_changed(cls, state: SessionState) -> "Notification":
        return cls(EventKind.STATE_CHANGED, state.to_payload())

    @classmethod
    def quiz_list_changed(cls, quiz: Quiz | None = None) -> "Notification":
        return cls(EventKind.QUIZ_LIST_CHANGED, quiz.to_payload() if quiz else None)

    @classmethod
    def response_changed(cls, response: Response) -> "Notification":
        return cls(EventKind.RESPONSE_CHANGED, response.to_payload())

    @classmethod
    def user_joined(cls, user: User) -> "Notification":
        return cls(EventKind.USER_JOINED, user.to_payload())

    @classmethod
    def score_changed(cls, leaderboard: list[LeaderboardRow]) -> "Notification":
        return cls(EventKind.SCORE_CHANGED, [row.to_payload() for row in leaderboard])

    def to_message(self) -> dict[str, object]:
        return {"type": self.kind.value, "payload": self.payload}


class Notifier(Protocol):
    def publish(self, notification: Notification) -> None: ...


class Subscription:
    """One listener's bounded mailbox, owned by the listener's event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, max_pending: int) -> None:
        self.loop = loop
        self._queue: asyncio.Queue[dict[str, object] | None] = asyncio.Queue(maxsize=max_pending)
        self._dropped = False

    @property
    def dropped(self) -> bool:
        return self._dropped

    def offer(self, message: dict[str, object]) -> None:
        """Queue a message; runs on ``self.loop``."""
        if self._dropped:
            return
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Listener fell %d messages behind; dropping it", self._queue.qsize())
            self._dropped = True
            while not self._queue.empty():
                self._queue.get_nowait()
            self._queue.put_nowait(None)

    async def next_message(self) -> dict[str, object] | None:
        """Wait for the next message, or ``None`` once the listener was dropped."""
        return await self._queue.get()


class Broadcaster:
    """Fans notifications out to every subscribed listener without blocking."""

    def __init__(self, max_pending: int = LISTENER_QUEUE_SIZE) -> None:
        self._max_pending = max_pending
        self._lock = Lock()
        self._subscriptions: list[Subscription] = []

    def subscribe(self) -> Subscription:
        """Register a listener; must be called from the listener's running loop."""
        subscription = Subscription(asyncio.get_running_loop(), self._max_pending)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, notification: Notification) -> None:
        """Schedule delivery to all listeners; safe to call from any thread."""
        message = notification.to_message()
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            try:
                subscription.loop.call_soon_threadsafe(subscription.offer, message)
            except RuntimeError:
                # The listener's loop has shut down.
                logger.info("Dropping listener whose event loop is closed")
                self.unsubscribe(subscription)
