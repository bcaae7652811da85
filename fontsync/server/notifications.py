"""
FontSync Server - Notification Hub

Fans change events out to connected WebSocket clients. Each subscriber owns
an independent bounded queue; when a slow client's queue is full the oldest
event is dropped for that client only, so one consumer never stalls the
others. Dropped events are not replayed: clients resynchronize by pulling
the full manifest.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from fontsync.models import ChangeEvent

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 256


@dataclass
class Subscriber:
    """One connected notification client and its private event buffer"""
    client_id: str
    queue: asyncio.Queue
    dropped: int = 0
    delivered: int = 0

    def Offer(self, event: Optional[ChangeEvent]) -> None:
        """Enqueue without waiting, dropping the oldest event on overflow"""
        if self.queue.full():
            try:
                self.queue.get_nowait()
                self.dropped += 1
            except asyncio.QueueEmpty:
                pass
            if self.dropped == 1 or self.dropped % 100 == 0:
                logger.warning(f"Client {self.client_id} is lagging, {self.dropped} event(s) dropped so far")
        self.queue.put_nowait(event)


@dataclass
class NotificationHub:
    """
    Broadcast set of connected notification clients
    """
    buffer_size: int = DEFAULT_BUFFER_SIZE
    subscribers: Dict[str, Subscriber] = field(default_factory=dict)
    closed: bool = False

    def Subscribe(self) -> Subscriber:
        client_id = f"client_{uuid.uuid4().hex}"
        subscriber = Subscriber(client_id=client_id, queue=asyncio.Queue(maxsize=self.buffer_size))
        self.subscribers[client_id] = subscriber
        logger.info(f"Registered notification client {client_id} ({len(self.subscribers)} connected)")
        return subscriber

    def Unsubscribe(self, subscriber: Subscriber) -> None:
        if self.subscribers.pop(subscriber.client_id, None) is not None:
            logger.info(f"Notification client {subscriber.client_id} disconnected "
                        f"({subscriber.delivered} delivered, {subscriber.dropped} dropped)")

    def Broadcast(self, events: Iterable[ChangeEvent]) -> int:
        """
        Push events to every connected client, best-effort

        Returns:
            int: Number of events offered
        """
        events = list(events)
        if not events or self.closed:
            return 0

        for subscriber in list(self.subscribers.values()):
            for event in events:
                subscriber.Offer(event)

        logger.debug(f"Broadcast {len(events)} event(s) to {len(self.subscribers)} client(s)")
        return len(events)

    def ClientCount(self) -> int:
        return len(self.subscribers)

    def Close(self) -> None:
        """Wake every subscriber with the end-of-stream marker (None)"""
        self.closed = True
        for subscriber in list(self.subscribers.values()):
            subscriber.Offer(None)
