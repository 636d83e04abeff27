# backend/backoffice/notifications/queue.py
from __future__ import annotations

import asyncio
from typing import Protocol

from backoffice.core.errors import NotificationFailure
from backoffice.notifications.salary_report import SalaryNotification


class NotificationQueue(Protocol):
    def enqueue(self, message: SalaryNotification) -> None:
        """Accept a message for later delivery or raise NotificationFailure. Must not block."""


class InMemoryNotificationQueue:
    """
    Process-local outbound queue.

    The API process and the CLI each own one; a SalaryReportDispatcher drains it.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue[SalaryNotification] = asyncio.Queue(maxsize=maxsize)

    def enqueue(self, message: SalaryNotification) -> None:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull as exc:
            raise NotificationFailure(
                f"notification queue full; salary {message.salary_record_id} not queued"
            ) from exc

    async def get(self) -> SalaryNotification:
        return await self._queue.get()

    def get_nowait(self) -> SalaryNotification:
        return self._queue.get_nowait()

    def task_done(self) -> None:
        self._queue.task_done()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()
