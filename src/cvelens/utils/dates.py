"""Date helpers for NVD publication-date windows.

The NVD API rejects ``pubStartDate``/``pubEndDate`` windows wider than 120
days, so wide ranges are split into consecutive day-aligned chunks.
"""

import calendar
from datetime import date, datetime, timedelta

from pydantic import BaseModel, ConfigDict, model_validator

DEFAULT_MAX_RANGE_DAYS = 119


class DateRange(BaseModel):
    """Inclusive range of calendar days."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        """Reject ranges that end before they start."""
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    @property
    def days(self) -> int:
        """Span in days (0 for a single-day range)."""
        return (self.end - self.start).days

    def nvd_params(self) -> dict[str, str]:
        """Publication window parameters in the format NVD expects."""
        return {
            "pubStartDate": f"{self.start.isoformat()}T00:00:00.000",
            "pubEndDate": f"{self.end.isoformat()}T23:59:59.999",
        }


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def split_date_range(
    start: date | datetime,
    end: date | datetime,
    max_days: int = DEFAULT_MAX_RANGE_DAYS,
) -> list[DateRange]:
    """Split ``[start, end]`` into contiguous chunks of at most ``max_days``.

    Each chunk starts the day after the previous one ends, so the chunks
    cover the range exactly once. A range no wider than ``max_days`` comes
    back as a single chunk, including ``start == end``.

    Args:
        start: First day of the range.
        end: Last day of the range (inclusive).
        max_days: Largest allowed ``end - start`` per chunk.

    Returns:
        Ordered list of DateRange chunks.

    Raises:
        ValueError: If start is after end or max_days is negative.
    """
    if max_days < 0:
        raise ValueError("max_days must not be negative")

    first, last = _as_date(start), _as_date(end)
    if first > last:
        raise ValueError(f"start {first} is after end {last}")

    chunks: list[DateRange] = []
    current = first
    while current <= last:
        chunk_end = min(current + timedelta(days=max_days), last)
        chunks.append(DateRange(start=current, end=chunk_end))
        current = chunk_end + timedelta(days=1)

    return chunks


def subtract_months(value: datetime, months: int) -> datetime:
    """Move a datetime back by whole calendar months.

    The day is clamped to the length of the target month, so March 31
    minus one month is the last day of February.
    """
    if months < 0:
        raise ValueError("months must not be negative")

    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
