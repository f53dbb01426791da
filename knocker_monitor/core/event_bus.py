"""
Event bus module for knocker-monitor.

This module provides the subscription registry that fans parsed Knocker
events out to interested components.
"""

import asyncio
import inspect
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from .events import Event, EventKind


EventHandler = Callable[[Event], Any]

_subscription_ids = itertools.count(1)


@dataclass(frozen=True, eq=False)
class Subscription:
    """
    Handle returned by :meth:`EventBus.subscribe`.

    Handles compare by identity, so subscribing the same callback twice
    yields two independent subscriptions.
    """
    kind: Optional[EventKind]
    handler: EventHandler
    id: int


class EventBus:
    """
    Typed publish/subscribe registry for Knocker events.
    """

    def __init__(self):
        """Initialize the event bus."""
        self._handlers: Dict[EventKind, List[Subscription]] = {}
        self._wildcard_handlers: List[Subscription] = []
        self._lock = threading.RLock()
        self._pending: Set[asyncio.Future] = set()
        self.logger = logging.getLogger(__name__)

    def subscribe(self, kind: EventKind, handler: EventHandler) -> Subscription:
        """
        Subscribe to an event kind.

        Args:
            kind: Event kind to subscribe to
            handler: Function to call with each matching event

        Returns:
            Subscription handle for :meth:`unsubscribe`
        """
        kind = EventKind(kind)
        subscription = Subscription(kind=kind, handler=handler, id=next(_subscription_ids))
        with self._lock:
            # Replace rather than append so a dispatch in progress keeps its list
            self._handlers[kind] = self._handlers.get(kind, []) + [subscription]
        self.logger.debug(f"Subscribed to event kind: {kind.value}")
        return subscription

    def subscribe_all(self, handler: EventHandler) -> Subscription:
        """
        Subscribe to every event kind.

        Args:
            handler: Function to call with each event

        Returns:
            Subscription handle for :meth:`unsubscribe`
        """
        subscription = Subscription(kind=None, handler=handler, id=next(_subscription_ids))
        with self._lock:
            self._wildcard_handlers = self._wildcard_handlers + [subscription]
        self.logger.debug("Subscribed to all event kinds")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """
        Remove a subscription.

        Safe to call from inside a handler; the publish in progress still
        completes with the handlers it started with.

        Args:
            subscription: Handle returned by subscribe

        Returns:
            True if the subscription was registered, False otherwise
        """
        with self._lock:
            if subscription.kind is None:
                handlers = self._wildcard_handlers
            else:
                handlers = self._handlers.get(subscription.kind, [])

            remaining = [s for s in handlers if s is not subscription]
            if len(remaining) == len(handlers):
                return False

            if subscription.kind is None:
                self._wildcard_handlers = remaining
            else:
                self._handlers[subscription.kind] = remaining

        self.logger.debug(f"Unsubscribed subscription {subscription.id}")
        return True

    def publish(self, event: Event) -> int:
        """
        Publish an event to all subscribed handlers, in registration order.

        A failing handler is logged and skipped; it never stops the others.

        Args:
            event: Event to publish

        Returns:
            Number of handlers invoked
        """
        with self._lock:
            handlers = self._handlers.get(event.kind, []) + self._wildcard_handlers

        self.logger.debug(f"Publishing event: {event.kind.value} to {len(handlers)} handler(s)")

        for subscription in handlers:
            try:
                result = subscription.handler(event)
                if inspect.isawaitable(result):
                    self._schedule(result, event)
            except Exception:
                self.logger.exception(f"Error in event handler for {event.kind.value}")

        return len(handlers)

    def _schedule(self, awaitable, event: Event):
        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)

        def _done(fut: asyncio.Future):
            self._pending.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                self.logger.error(f"Error in async event handler for {event.kind.value}: {exc!r}")

        future.add_done_callback(_done)

    def subscriber_count(self, kind: Optional[EventKind] = None) -> int:
        """Number of handlers that would receive an event of ``kind``."""
        with self._lock:
            if kind is None:
                return sum(len(h) for h in self._handlers.values()) + len(self._wildcard_handlers)
            return len(self._handlers.get(EventKind(kind), [])) + len(self._wildcard_handlers)

    def clear_subscribers(self, kind: Optional[EventKind] = None):
        """
        Clear subscribers for a specific event kind or all kinds.

        Args:
            kind: Event kind to clear, or None to clear all
        """
        with self._lock:
            if kind is not None:
                self._handlers.pop(EventKind(kind), None)
                self.logger.debug(f"Cleared subscribers for event kind: {EventKind(kind).value}")
            else:
                self._handlers.clear()
                self._wildcard_handlers = []
                self.logger.debug("Cleared all subscribers")
