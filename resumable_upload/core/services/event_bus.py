"""
Event bus implementation for publish-subscribe messaging.

Upload lifecycle events are queued and dispatched to subscribers by a small
pool of worker tasks, so slow subscribers never delay a chunk write.
"""

import asyncio
import fnmatch
import logging
import time
import uuid
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Union

from ..domain.events import Event, EventPriority
from ..interfaces.lifecycle import IComponent
from ..interfaces.messaging import IEventBus

logger = logging.getLogger(__name__)


class EventSubscription:
    """Represents an event subscription."""

    def __init__(self, subscription_id: str, event_pattern: str,
                 handler: Callable[[Event], Any], priority: EventPriority):
        self.subscription_id = subscription_id
        self.event_pattern = event_pattern
        self.handler = handler
        self.priority = priority
        self.call_count = 0
        self.error_count = 0
        self.last_called: Optional[float] = None

    @property
    def is_wildcard(self) -> bool:
        return '*' in self.event_pattern or '?' in self.event_pattern


class EventBus(IComponent, IEventBus):
    """
    Asynchronous event bus.

    Supports exact and wildcard subscriptions, priority ordering of
    handlers and a bounded event queue.
    """

    def __init__(self, max_workers: int = 2, queue_size: int = 1000):
        self._subscriptions: Dict[str, List[EventSubscription]] = defaultdict(list)
        self._wildcard_subscriptions: List[EventSubscription] = []
        self._queue_size = queue_size
        self._event_queue: Optional[asyncio.PriorityQueue[Event]] = None
        self._workers: List[asyncio.Task[None]] = []
        self._max_workers = max_workers
        self._running = False

        self._metrics: Dict[str, Any] = {
            'events_published': 0,
            'events_processed': 0,
            'events_failed': 0,
            'processing_times': [],
        }

    @property
    def name(self) -> str:
        return "EventBus"

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the event bus and its worker tasks."""
        if self._running:
            return

        logger.info(f"Starting event bus with {self._max_workers} workers")

        # Created here so the queue belongs to the loop that serves requests
        self._event_queue = asyncio.PriorityQueue(maxsize=self._queue_size)
        self._running = True
        self._workers = [
            asyncio.create_task(self._worker_process(self._event_queue))
            for _ in range(self._max_workers)
        ]

    async def stop(self) -> None:
        """Stop the workers; pending events are dropped."""
        if not self._running:
            return

        logger.info("Stopping event bus...")
        self._running = False

        for worker in self._workers:
            worker.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

        logger.info("Event bus stopped")

    async def configure(self, config: Dict[str, Any]) -> None:
        """Apply ``max_workers`` / ``queue_size``; restarts workers if running."""
        max_workers = config.get('max_workers', self._max_workers)
        queue_size = config.get('queue_size', self._queue_size)

        if max_workers != self._max_workers or queue_size != self._queue_size:
            self._max_workers = max_workers
            self._queue_size = queue_size
            if self._running:
                await self.stop()
                await self.start()

    async def check_health(self) -> Dict[str, Any]:
        return {
            'healthy': True,
            'status': 'running' if self._running else 'stopped',
            'details': {
                'workers_count': len(self._workers),
                'subscriptions_count': self._subscription_count(),
                'queue_size': self._event_queue.qsize() if self._event_queue else 0,
                'events_published': self._metrics['events_published'],
                'events_processed': self._metrics['events_processed'],
                'events_failed': self._metrics['events_failed']
            }
        }

    async def publish(self, event: Union[Event, str], data: Any = None,
                      priority: EventPriority = EventPriority.NORMAL) -> str:
        """Queue an event for delivery."""
        if not self._running or self._event_queue is None:
            raise RuntimeError("Event bus is not running")

        if isinstance(event, str):
            event = Event(name=event, data=data, priority=priority)

        try:
            self._event_queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.error(f"Event queue full, dropping event: {event.name}")
            raise RuntimeError("Event queue is full")

        self._metrics['events_published'] += 1
        logger.debug(f"Published event: {event.name} (ID: {event.event_id})")
        return event.event_id

    async def subscribe(self, event_name: str, handler: Callable[[Event], Any],
                        priority: EventPriority = EventPriority.NORMAL) -> str:
        subscription = EventSubscription(
            subscription_id=str(uuid.uuid4()),
            event_pattern=event_name,
            handler=handler,
            priority=priority
        )

        if subscription.is_wildcard:
            self._wildcard_subscriptions.append(subscription)
            self._wildcard_subscriptions.sort(key=lambda s: s.priority.value, reverse=True)
        else:
            self._subscriptions[event_name].append(subscription)
            self._subscriptions[event_name].sort(key=lambda s: s.priority.value, reverse=True)

        logger.debug(f"Added subscription for '{event_name}' (ID: {subscription.subscription_id})")
        return subscription.subscription_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        for subscriptions in list(self._subscriptions.values()) + [self._wildcard_subscriptions]:
            for i, subscription in enumerate(subscriptions):
                if subscription.subscription_id == subscription_id:
                    subscriptions.pop(i)
                    logger.debug(f"Removed subscription {subscription_id}")
                    return True
        return False

    async def get_metrics(self) -> Dict[str, Any]:
        times = self._metrics['processing_times']
        return {
            'events_published': self._metrics['events_published'],
            'events_processed': self._metrics['events_processed'],
            'events_failed': self._metrics['events_failed'],
            'subscriptions_count': self._subscription_count(),
            'avg_processing_time': sum(times) / len(times) if times else 0.0,
        }

    async def wait_until_idle(self) -> None:
        """Block until every queued event has been dispatched."""
        if self._event_queue is not None:
            await self._event_queue.join()

    def _subscription_count(self) -> int:
        return sum(len(subs) for subs in self._subscriptions.values()) + len(self._wildcard_subscriptions)

    async def _worker_process(self, queue: "asyncio.PriorityQueue[Event]") -> None:
        while self._running:
            event = await queue.get()
            try:
                await self._process_event(event)
            finally:
                queue.task_done()

    async def _process_event(self, event: Event) -> None:
        """Call every handler matching the event, highest priority first."""
        start_time = time.time()

        matching = list(self._subscriptions.get(event.name, []))
        matching.extend(
            s for s in self._wildcard_subscriptions
            if fnmatch.fnmatch(event.name, s.event_pattern)
        )
        matching.sort(key=lambda s: s.priority.value, reverse=True)

        for subscription in matching:
            try:
                result = subscription.handler(event)
                if asyncio.iscoroutine(result):
                    await result
                subscription.call_count += 1
                subscription.last_called = time.time()
            except Exception as e:
                subscription.error_count += 1
                self._metrics['events_failed'] += 1
                logger.error(f"Handler error for event {event.name}: {e}")

        self._metrics['events_processed'] += 1
        self._metrics['processing_times'].append(time.time() - start_time)
        if len(self._metrics['processing_times']) > 1000:
            self._metrics['processing_times'] = self._metrics['processing_times'][-1000:]
