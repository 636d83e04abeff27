# backend/backoffice/payroll/period.py
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(moment: datetime) -> datetime:
    # Naive datetimes are treated as UTC (that's what the DB hands back on SQLite).
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True, order=True)
class PayPeriod:
    """
    A calendar month of payroll.

    Bounds are half-open: a sale at exactly `end` belongs to the next period.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1..12, got {self.month}")
        if not 1 <= self.year <= 9998:
            raise ValueError(f"year out of range: {self.year}")

    @classmethod
    def parse(cls, value: str) -> "PayPeriod":
        m = _PERIOD_RE.match((value or "").strip())
        if not m:
            raise ValueError(f"period must look like YYYY-MM, got {value!r}")
        return cls(int(m.group(1)), int(m.group(2)))

    @classmethod
    def containing(cls, moment: datetime, tz: tzinfo = timezone.utc) -> "PayPeriod":
        local = _as_aware(moment).astimezone(tz)
        return cls(local.year, local.month)

    @classmethod
    def previous(cls, moment: datetime, tz: tzinfo = timezone.utc) -> "PayPeriod":
        """The month just completed at `moment`. Default period of a payroll run."""
        return cls.containing(moment, tz).prev()

    def prev(self) -> "PayPeriod":
        if self.month == 1:
            return PayPeriod(self.year - 1, 12)
        return PayPeriod(self.year, self.month - 1)

    def next(self) -> "PayPeriod":
        if self.month == 12:
            return PayPeriod(self.year + 1, 1)
        return PayPeriod(self.year, self.month + 1)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def bounds(self, tz: tzinfo = timezone.utc) -> tuple[datetime, datetime]:
        """[start, end) in UTC for the month as observed in `tz`."""
        following = self.next()
        start = datetime(self.year, self.month, 1, tzinfo=tz)
        end = datetime(following.year, following.month, 1, tzinfo=tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    def contains(self, moment: datetime, tz: tzinfo = timezone.utc) -> bool:
        start, end = self.bounds(tz)
        return start <= _as_aware(moment) < end

    def __str__(self) -> str:
        return self.label
