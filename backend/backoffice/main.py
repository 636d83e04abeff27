import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice.core.config import settings
from backoffice.core.logging_config import configure_logging
import backoffice.models  # noqa: F401  # force model registration

from backoffice.api.v1.payroll import router as payroll_router
from backoffice.notifications.dispatcher import LoggingMailer, SalaryReportDispatcher
from backoffice.notifications.queue import InMemoryNotificationQueue


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Salary statements are delivered in the background; the payroll
    # commit path only ever enqueues.
    dispatcher = SalaryReportDispatcher(
        app.state.notification_queue,
        LoggingMailer(),
        max_attempts=settings.NOTIFICATION_MAX_ATTEMPTS,
    )
    task = asyncio.create_task(dispatcher.run_forever())
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def create_application() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Back Office Payroll API", lifespan=lifespan)
    app.state.notification_queue = InMemoryNotificationQueue(maxsize=settings.NOTIFICATION_QUEUE_MAXSIZE)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"status": "ok", "service": "backoffice-payroll"}

    # Routers
    app.include_router(payroll_router, prefix="/api/v1")

    return app


app = create_application()
