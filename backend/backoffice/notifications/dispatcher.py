# backend/backoffice/notifications/dispatcher.py
from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from backoffice.core.errors import NotificationFailure
from backoffice.notifications.queue import InMemoryNotificationQueue
from backoffice.notifications.salary_report import SalaryNotification, SalaryStatement, render_salary_statement

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    async def send(self, statement: SalaryStatement) -> None:
        """Deliver one statement. Raise NotificationFailure on a delivery error."""


class LoggingMailer:
    """Default mailer: writes the statement to the log instead of an SMTP relay."""

    async def send(self, statement: SalaryStatement) -> None:
        logger.info("Salary statement to %s: %s\n%s", statement.recipient, statement.subject, statement.text)


class SalaryReportDispatcher:
    """
    Drains the notification queue into a Mailer.

    Delivery failures re-queue the message until max_attempts; after that the
    message is dropped with an error log. The committed salary is unaffected
    either way and can be re-sent from the API.
    """

    def __init__(self, queue: InMemoryNotificationQueue, mailer: Mailer, max_attempts: int = 5):
        self.queue = queue
        self.mailer = mailer
        self.max_attempts = max_attempts

    async def _deliver(self, message: SalaryNotification) -> bool:
        if not message.recipient:
            logger.warning(
                "No email for employee %s; salary statement %s not sent",
                message.employee_id,
                message.period,
            )
            return True

        try:
            await self.mailer.send(render_salary_statement(message))
            return True
        except NotificationFailure as exc:
            return self._retry_later(message, exc)
        except Exception as exc:
            # SMTP/socket errors from a real mailer count as a failed attempt.
            logger.exception("Mailer error sending salary statement %s", message.salary_record_id)
            return self._retry_later(message, exc)

    def _retry_later(self, message: SalaryNotification, exc: Exception) -> bool:
        """Re-queue with attempts bumped. Returns True when the message is finished with (dropped)."""
        attempts = message.attempts + 1
        if attempts >= self.max_attempts:
            logger.error(
                "Giving up on salary statement %s after %d attempts: %s",
                message.salary_record_id,
                attempts,
                exc,
            )
            return True
        logger.warning("Salary statement %s failed (attempt %d): %s", message.salary_record_id, attempts, exc)
        try:
            self.queue.enqueue(message.model_copy(update={"attempts": attempts}))
        except NotificationFailure as requeue_exc:
            logger.error("Could not re-queue salary statement %s: %s", message.salary_record_id, requeue_exc)
            return True
        return False

    async def dispatch_pending(self) -> int:
        """
        One pass over what is queued right now. Returns the number delivered
        (or permanently dropped). Retries land behind this pass.
        """
        handled = 0
        for _ in range(self.queue.qsize()):
            message = self.queue.get_nowait()
            try:
                if await self._deliver(message):
                    handled += 1
            finally:
                self.queue.task_done()
        return handled

    async def run_forever(self, idle_seconds: float = 1.0) -> None:
        while True:
            message = await self.queue.get()
            try:
                done = await self._deliver(message)
            finally:
                self.queue.task_done()
            if not done:
                await asyncio.sleep(idle_seconds)
