"""Back office command-line interface.

Usage:
    backoffice salary-generate                 # month just completed (cron, monthly)
    backoffice salary-generate --period 2026-09

Crontab (01:00 on the first of each month):
    0 1 1 * *  backoffice salary-generate
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from backoffice.core.config import settings
from backoffice.core.errors import EmployeeEnumerationFailed
from backoffice.core.logging_config import configure_logging
from backoffice.db.session import AsyncSessionLocal, engine
from backoffice.notifications.dispatcher import LoggingMailer, SalaryReportDispatcher
from backoffice.notifications.queue import InMemoryNotificationQueue
from backoffice.payroll.period import PayPeriod
from backoffice.payroll.routine import build_payroll_routine
from backoffice.schemas.payroll import RunReportOut

import backoffice.models  # noqa: F401  # force model registration

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SOME_FAILED = 1
EXIT_ABORTED = 2


async def _generate(period: PayPeriod | None) -> RunReportOut:
    queue = InMemoryNotificationQueue(maxsize=settings.NOTIFICATION_QUEUE_MAXSIZE)
    routine = build_payroll_routine(AsyncSessionLocal, queue)
    try:
        report = await routine.run(period)
    finally:
        await engine.dispose()

    # One-shot process: flush statements before exiting.
    dispatcher = SalaryReportDispatcher(queue, LoggingMailer(), max_attempts=settings.NOTIFICATION_MAX_ATTEMPTS)
    while not queue.empty():
        await dispatcher.dispatch_pending()

    return RunReportOut.from_report(report)


def cmd_salary_generate(args: argparse.Namespace) -> int:
    period = PayPeriod.parse(args.period) if args.period else None
    try:
        out = asyncio.run(_generate(period))
    except EmployeeEnumerationFailed as e:
        print(json.dumps({"status": "aborted", "error": str(e)}), file=sys.stderr)
        return EXIT_ABORTED

    print(out.model_dump_json(indent=2))
    return EXIT_SOME_FAILED if out.failed else EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="backoffice", description="Retail back office jobs")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("salary-generate", help="Calculate and store salary of every active employee")
    p.add_argument("--period", default=None, help="YYYY-MM (default: the month just completed)")
    p.set_defaults(func=cmd_salary_generate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if getattr(args, "period", None):
        try:
            PayPeriod.parse(args.period)
        except ValueError as e:
            parser.error(str(e))

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
