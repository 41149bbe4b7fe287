"""
Booking Submission Queue

Buffers public booking submissions and hands them to the create-appointment
operation one at a time:
- strict FIFO: the head is retried until it commits or runs out of attempts
- one drain at a time, guarded by a lock; the next tick is scheduled only
  after the previous drain finished
- a fixed interval between ticks, no backoff

The queue lives in memory only. Closing it (the owning page going away)
abandons whatever is still pending.
"""

import asyncio
import contextlib
import logging
import secrets
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Awaitable, Callable

from agenda.core import config
from agenda.notifications import NotificationService, NotificationVariant

logger = logging.getLogger(__name__)

SubmitBooking = Callable[[Any], Awaitable[Any]]
RefreshCallback = Callable[[], Awaitable[None]]


def new_booking_id() -> str:
    return f'{int(time.time() * 1000)}-{secrets.token_hex(4)}'


@dataclass
class QueuedBooking:
    id: str
    payload: Any
    enqueued_at: datetime
    attempts: int = 0


class DrainOutcome(StrEnum):
    EMPTY = 'empty'
    COMMITTED = 'committed'
    RETRYING = 'retrying'
    DROPPED = 'dropped'


@dataclass(frozen=True)
class DrainResult:
    outcome: DrainOutcome
    booking: QueuedBooking | None = None
    result: Any = None
    error: Exception | None = None


class BookingQueue:
    def __init__(
        self,
        submit: SubmitBooking,
        notifier: NotificationService,
        on_committed: RefreshCallback | None = None,
        interval_seconds: float = config.BOOKING_QUEUE_INTERVAL_SECONDS,
        max_attempts: int = config.BOOKING_QUEUE_MAX_ATTEMPTS,
    ):
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')

        self._submit = submit
        self._notifier = notifier
        self._on_committed = on_committed
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts

        self._items: deque[QueuedBooking] = deque()
        self._lock = asyncio.Lock()
        self._worker: asyncio.Task | None = None
        self._closed = False

    def __len__(self) -> int:
        return len(self._items)

    @property
    def pending(self) -> list[QueuedBooking]:
        return list(self._items)

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, payload: Any) -> QueuedBooking:
        if self._closed:
            raise RuntimeError('Booking queue is closed.')

        booking = QueuedBooking(id=new_booking_id(), payload=payload, enqueued_at=datetime.now())
        self._items.append(booking)

        logger.info('Queued booking %s (%s pending)', booking.id, len(self._items))
        self._notifier.notify(
            'Booking queued',
            'Your booking is queued and will be confirmed shortly.',
        )

        self.start()
        return booking

    def start(self) -> None:
        """Arm the worker if there is work and it is not already running."""
        if self._closed or not self._items or self.is_running:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug('No running event loop; booking queue worker not started yet')
            return

        self._worker = loop.create_task(self._run())

    async def _run(self) -> None:
        while self._items and not self._closed:
            await asyncio.sleep(self.interval_seconds)
            await self.drain_once()

    async def drain_once(self) -> DrainResult:
        """Attempt the head of the queue once."""
        async with self._lock:
            if not self._items:
                return DrainResult(DrainOutcome.EMPTY)

            booking = self._items[0]
            try:
                result = await self._submit(booking.payload)
            except Exception as exc:
                return self._record_failure(booking, exc)

            self._items.popleft()
            logger.info('Booking %s committed after %s failed attempt(s)', booking.id, booking.attempts)
            self._notifier.notify(
                'Booking confirmed!',
                'Your appointment has been saved.',
                NotificationVariant.SUCCESS,
            )

            if self._on_committed is not None:
                try:
                    await self._on_committed()
                except Exception:
                    logger.exception('Refreshing appointments after booking %s failed', booking.id)

            return DrainResult(DrainOutcome.COMMITTED, booking, result=result)

    def _record_failure(self, booking: QueuedBooking, exc: Exception) -> DrainResult:
        booking.attempts += 1

        if booking.attempts < self.max_attempts:
            logger.warning(
                'Booking %s failed (attempt %s/%s): %s',
                booking.id,
                booking.attempts,
                self.max_attempts,
                exc,
            )
            return DrainResult(DrainOutcome.RETRYING, booking, error=exc)

        self._items.popleft()
        logger.error('Booking %s dropped after %s attempts: %s', booking.id, booking.attempts, exc)
        self._notifier.notify(
            'Booking failed',
            'We could not save your booking. Please choose a time and try again.',
            NotificationVariant.DESTRUCTIVE,
        )
        return DrainResult(DrainOutcome.DROPPED, booking, error=exc)

    async def join(self) -> None:
        """Wait until the worker has emptied the queue."""
        while self.is_running:
            await asyncio.shield(self._worker)

    async def aclose(self) -> None:
        self._closed = True
        worker, self._worker = self._worker, None

        if worker is not None and not worker.done():
            worker.cancel()
            if worker is not asyncio.current_task():
                with contextlib.suppress(asyncio.CancelledError):
                    await worker

        if self._items:
            logger.warning('Booking queue closed with %s pending booking(s); they are abandoned', len(self._items))
            self._items.clear()

    async def __aenter__(self) -> 'BookingQueue':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
