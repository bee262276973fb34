"""
Queue Notification Hub
Routes appointment status events to the patients they concern

Subscribers register under their account id and receive only the events
published to that id. Delivery is best-effort and at-most-once: events for
accounts with no live subscriber are dropped, and a full subscriber queue
drops the newest event.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

EVENT_NAME = "appointment_status_update"


@dataclass(frozen=True)
class StatusEvent:
    type: str  # "completed" or "consulting"
    message: str
    appointment_id: int

    def to_payload(self) -> dict:
        return {
            "event": EVENT_NAME,
            "type": self.type,
            "message": self.message,
            "appointmentId": self.appointment_id,
        }


class Subscription:
    """One live delivery channel for an account"""

    def __init__(self, hub: "NotificationHub", account_id: int, loop: asyncio.AbstractEventLoop, max_pending: int):
        self.hub = hub
        self.account_id = account_id
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)

    async def get(self) -> StatusEvent:
        return await self._queue.get()

    def __aiter__(self):
        return self

    async def __anext__(self) -> StatusEvent:
        return await self.get()

    def close(self) -> None:
        self.hub.unsubscribe(self)

    def _offer(self, event: StatusEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"⚠️ Dropping {event.type} event for account {self.account_id}: queue full")

    def deliver(self, event: StatusEvent) -> None:
        # Publishers may run on another thread than the subscriber's loop
        self._loop.call_soon_threadsafe(self._offer, event)


class NotificationHub:
    """Registry mapping account id to its active subscriptions"""

    def __init__(self, max_pending: int = 100):
        self.max_pending = max_pending
        self._subscribers: dict[int, set[Subscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, account_id: int, loop: Optional[asyncio.AbstractEventLoop] = None) -> Subscription:
        subscription = Subscription(self, account_id, loop or asyncio.get_running_loop(), self.max_pending)
        with self._lock:
            self._subscribers.setdefault(account_id, set()).add(subscription)
        logger.info(f"🔔 Account {account_id} subscribed to queue notifications")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscriptions = self._subscribers.get(subscription.account_id)
            if not subscriptions:
                return
            subscriptions.discard(subscription)
            if not subscriptions:
                del self._subscribers[subscription.account_id]
        logger.info(f"🔕 Account {subscription.account_id} unsubscribed from queue notifications")

    def subscriber_count(self, account_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(account_id, ()))

    def publish(self, account_id: int, event: StatusEvent) -> int:
        """Send an event to every subscription of one account. Returns how many were reached."""
        with self._lock:
            targets = list(self._subscribers.get(account_id, ()))

        delivered = 0
        for subscription in targets:
            try:
                subscription.deliver(event)
                delivered += 1
            except RuntimeError as e:
                # Subscriber's event loop is already closed
                logger.warning(f"⚠️ Stale subscription for account {account_id}: {e}")
                self.unsubscribe(subscription)

        if delivered:
            logger.info(f"📨 {event.type} event for appointment {event.appointment_id} sent to account {account_id}")
        else:
            logger.debug(f"No live subscriber for account {account_id}, {event.type} event dropped")
        return delivered


# Process-wide hub shared by the HTTP routes and the WebSocket adapter
hub = NotificationHub()


def get_notification_hub() -> NotificationHub:
    return hub
