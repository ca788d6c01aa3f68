"""
Event Bus - Observer interface for plan runs

Implements the pub-sub side of the observer contract: callers subscribe to
task state changes (to render a progress view) and to shared result updates
(to render partial results as they arrive). Polling ``ExecutionEngine.snapshot``
is the other side of the same contract.

Features:
- Subscription by event type or "*" for every event
- Event filtering
- Sync and async handlers
- Event history
- Dead letter queue for handlers that keep failing and filters that raise
"""

import asyncio
import inspect
import traceback
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Any, Dict, List, Set

from task_orchestrator.models.messages import SystemEvent
from task_orchestrator.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EventSubscription:
    """Represents a subscription to an event type."""
    subscription_id: str
    event_type: str
    handler: Callable[[SystemEvent], Any]
    filter_func: Optional[Callable[[SystemEvent], bool]] = None
    max_retries: int = 1
    active: bool = True
    subscriber_name: str = "unknown"
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.handler)


@dataclass
class EventRecord:
    """Record of an event that was published."""
    event: SystemEvent
    published_at: str
    handlers_notified: List[str]
    handlers_failed: List[str]


class EventBus:
    """
    Pub-sub event bus for run observers.

    Usage:
        event_bus = EventBus()

        def on_task_done(event: SystemEvent):
            print(f"{event['task_name']} -> {event['payload']['status']}")

        event_bus.subscribe("task_completed", on_task_done, subscriber_name="progress_view")
        event_bus.subscribe("*", audit_handler, subscriber_name="audit")

        engine = ExecutionEngine(event_bus=event_bus)
    """

    def __init__(self, enable_history: bool = True, history_max_size: int = 1000):
        """
        Initialize the event bus.

        Args:
            enable_history: Whether to keep event history
            history_max_size: Maximum number of events to keep in history
        """
        self.subscriptions: Dict[str, List[EventSubscription]] = defaultdict(list)
        self.wildcard_subscriptions: List[EventSubscription] = []

        self.enable_history = enable_history
        self.history_max_size = history_max_size
        self.event_history: List[EventRecord] = []

        # Events whose handlers failed on every attempt
        self.dead_letter_queue: List[tuple[SystemEvent, str]] = []

        # Keeps scheduled async handlers referenced until they finish
        self._pending_handlers: Set[asyncio.Task] = set()

        self.stats = {
            "events_published": 0,
            "handlers_executed": 0,
            "handlers_failed": 0
        }

    def subscribe(
        self,
        event_type: str,
        handler: Callable[[SystemEvent], Any],
        subscriber_name: str = "unknown",
        filter_func: Optional[Callable[[SystemEvent], bool]] = None,
        max_retries: int = 1
    ) -> str:
        """
        Subscribe to an event type.

        Args:
            event_type: Type of event to subscribe to (or "*" for all events)
            handler: Function or coroutine function called with each event
            subscriber_name: Name of the subscriber (for logging)
            filter_func: Optional filter function (return True to receive event)
            max_retries: Retry attempts for a failing sync handler

        Returns:
            subscription_id: Unique subscription ID (for unsubscribing)
        """
        subscription = EventSubscription(
            subscription_id=str(uuid.uuid4()),
            event_type=event_type,
            handler=handler,
            filter_func=filter_func,
            max_retries=max_retries,
            subscriber_name=subscriber_name
        )

        if event_type == "*":
            self.wildcard_subscriptions.append(subscription)
            logger.debug(f"Wildcard subscription added: {subscriber_name}")
        else:
            self.subscriptions[event_type].append(subscription)
            logger.debug(f"Subscription added: {subscriber_name} -> {event_type}")

        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Unsubscribe from events.

        Args:
            subscription_id: ID returned from subscribe()

        Returns:
            True if subscription was found and removed
        """
        for i, sub in enumerate(self.wildcard_subscriptions):
            if sub.subscription_id == subscription_id:
                self.wildcard_subscriptions.pop(i)
                logger.debug(f"Wildcard subscription removed: {sub.subscriber_name}")
                return True

        for event_type, subs in self.subscriptions.items():
            for i, sub in enumerate(subs):
                if sub.subscription_id == subscription_id:
                    subs.pop(i)
                    logger.debug(f"Subscription removed: {sub.subscriber_name} -> {event_type}")
                    return True

        return False

    def publish(self, event: SystemEvent) -> None:
        """
        Publish an event to all subscribers.

        Handler and filter failures are logged and never propagate to the publisher.

        Args:
            event: Event to publish
        """
        event_type = event['event_type']
        logger.debug(f"Event published: {event_type} (run {event['run_id']})")
        self.stats["events_published"] += 1

        handlers_notified = []
        handlers_failed = []

        for subscription in self.subscriptions.get(event_type, []) + self.wildcard_subscriptions:
            if not subscription.active:
                continue
            if subscription.filter_func:
                try:
                    wanted = subscription.filter_func(event)
                except Exception as e:
                    self._record_filter_failure(event, subscription, e)
                    handlers_failed.append(subscription.subscriber_name)
                    continue
                if not wanted:
                    continue

            handlers_notified.append(subscription.subscriber_name)
            if subscription.is_async:
                if not self._schedule_async(event, subscription):
                    handlers_failed.append(subscription.subscriber_name)
            elif not self._execute_handler(event, subscription):
                handlers_failed.append(subscription.subscriber_name)

        if self.enable_history:
            self.event_history.append(EventRecord(
                event=event,
                published_at=datetime.now().isoformat(),
                handlers_notified=handlers_notified,
                handlers_failed=handlers_failed,
            ))
            if len(self.event_history) > self.history_max_size:
                self.event_history = self.event_history[-self.history_max_size:]

    def _record_filter_failure(self, event: SystemEvent, subscription: EventSubscription,
                               error: Exception):
        """A filter that raises skips its handler for this event."""
        self.stats["handlers_failed"] += 1
        self.dead_letter_queue.append((event, f"filter failed: {error}"))
        logger.error(
            f"Filter of {subscription.subscriber_name} failed for event "
            f"{event['event_type']}: {error}"
        )
        logger.debug(traceback.format_exc())

    def _execute_handler(self, event: SystemEvent, subscription: EventSubscription) -> bool:
        """Run a sync handler, retrying up to max_retries times."""
        last_error: Optional[Exception] = None
        for attempt in range(subscription.max_retries + 1):
            try:
                subscription.handler(event)
                self.stats["handlers_executed"] += 1
                return True
            except Exception as e:
                last_error = e
                self.stats["handlers_failed"] += 1
                logger.error(
                    f"Handler {subscription.subscriber_name} failed for event "
                    f"{event['event_type']} (attempt {attempt + 1}): {e}"
                )
                logger.debug(traceback.format_exc())

        self.dead_letter_queue.append((event, str(last_error)))
        logger.warning(f"Event added to dead letter queue: {event['event_type']}")
        return False

    def _schedule_async(self, event: SystemEvent, subscription: EventSubscription) -> bool:
        """Schedule an async handler on the running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.stats["handlers_failed"] += 1
            self.dead_letter_queue.append((event, "no running event loop for async handler"))
            logger.warning(
                f"Async handler {subscription.subscriber_name} skipped: no running event loop"
            )
            return False

        task = loop.create_task(self._async_handler_wrapper(event, subscription))
        self._pending_handlers.add(task)
        task.add_done_callback(self._pending_handlers.discard)
        return True

    async def _async_handler_wrapper(self, event: SystemEvent, subscription: EventSubscription):
        """Wrapper for async event handlers."""
        try:
            await subscription.handler(event)
            self.stats["handlers_executed"] += 1
        except Exception as e:
            self.stats["handlers_failed"] += 1
            self.dead_letter_queue.append((event, str(e)))
            logger.error(f"Async handler {subscription.subscriber_name} failed: {e}")
            logger.debug(traceback.format_exc())

    async def flush(self) -> None:
        """Wait for scheduled async handlers to finish."""
        while self._pending_handlers:
            await asyncio.gather(*list(self._pending_handlers), return_exceptions=True)

    def get_event_history(
        self,
        event_type: Optional[str] = None,
        run_id: Optional[str] = None,
        limit: int = 100
    ) -> List[EventRecord]:
        """
        Get event history, optionally filtered.

        Args:
            event_type: Optional event type to filter by
            run_id: Optional run to filter by
            limit: Maximum number of records to return

        Returns:
            List of event records (most recent first)
        """
        if not self.enable_history:
            return []

        history = self.event_history[::-1]
        if event_type:
            history = [r for r in history if r.event['event_type'] == event_type]
        if run_id:
            history = [r for r in history if r.event['run_id'] == run_id]
        return history[:limit]

    def get_statistics(self) -> Dict[str, Any]:
        """Get event bus statistics."""
        return {
            **self.stats,
            "active_subscriptions": sum(len(subs) for subs in self.subscriptions.values()),
            "wildcard_subscriptions": len(self.wildcard_subscriptions),
            "dead_letter_queue_size": len(self.dead_letter_queue),
            "history_size": len(self.event_history)
        }

    def clear_dead_letter_queue(self) -> int:
        """Clear the dead letter queue."""
        cleared = len(self.dead_letter_queue)
        self.dead_letter_queue.clear()
        logger.info(f"Dead letter queue cleared ({cleared} events)")
        return cleared
