from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.db.session import AsyncSessionLocal
from backoffice.notifications.queue import InMemoryNotificationQueue
from backoffice.payroll.routine import PayrollRoutine, build_payroll_routine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    The routine opens one session per employee, so it needs the factory,
    not the request-scoped session from get_db. Tests override this.
    """
    return AsyncSessionLocal


def get_notification_queue(request: Request) -> InMemoryNotificationQueue:
    return request.app.state.notification_queue


def get_payroll_routine(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    queue: InMemoryNotificationQueue = Depends(get_notification_queue),
) -> PayrollRoutine:
    return build_payroll_routine(session_factory, queue)
