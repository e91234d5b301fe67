"""Transient user-facing messages (toasts)."""

import logging
from collections import deque
from datetime import datetime
from enum import Enum
from typing import List, Protocol

from pydantic import BaseModel, ConfigDict, Field

from app.models.base import utcnow

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    SUCCESS = "success"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str
    description: str
    kind: NotificationKind = NotificationKind.SUCCESS
    created_at: datetime = Field(default_factory=utcnow)


class NotificationSink(Protocol):
    def notify(self, notification: Notification) -> None:
        ...


class NotificationBuffer:
    """Keeps the latest notifications until a client drains them."""

    def __init__(self, maxlen: int = 50):
        self._items: deque = deque(maxlen=maxlen)

    def notify(self, notification: Notification) -> None:
        if notification.kind == NotificationKind.DESTRUCTIVE:
            logger.warning("%s: %s", notification.title, notification.description)
        else:
            logger.info("%s: %s", notification.title, notification.description)
        self._items.append(notification)

    def drain(self) -> List[Notification]:
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)


def success(description: str, title: str = "Success") -> Notification:
    return Notification(title=title, description=description, kind=NotificationKind.SUCCESS)


def failure(description: str, title: str = "Error") -> Notification:
    return Notification(title=title, description=description, kind=NotificationKind.DESTRUCTIVE)
