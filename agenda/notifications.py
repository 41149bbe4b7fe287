"""
User-facing notifications (toasts).

A NotificationService is created by whoever owns the booking page and handed
to the components that report to the user, instead of living in a module-level
singleton.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Callable

logger = logging.getLogger(__name__)


class NotificationVariant(StrEnum):
    DEFAULT = 'default'
    SUCCESS = 'success'
    DESTRUCTIVE = 'destructive'


@dataclass(frozen=True)
class Notification:
    title: str
    description: str = ''
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: datetime = field(default_factory=datetime.now)


class NotificationService:
    """Keeps recent notifications and forwards each one to optional listeners."""

    def __init__(self, history_size: int = 50):
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._listeners: list[Callable[[Notification], None]] = []

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    def subscribe(self, listener: Callable[[Notification], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(
        self,
        title: str,
        description: str = '',
        variant: NotificationVariant = NotificationVariant.DEFAULT,
    ) -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self._history.append(notification)

        if variant == NotificationVariant.DESTRUCTIVE:
            logger.warning('%s: %s', title, description)
        else:
            logger.info('%s: %s', title, description)

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception('Notification listener failed for %r', title)

        return notification

    def clear(self) -> None:
        self._history.clear()
