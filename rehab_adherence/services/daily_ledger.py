"""
Daily Ledger

One DailyEntry per calendar day per plan, kept in ascending date order.
Dates are normalized to the configured timezone before they are used as keys.
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Callable, Iterable, List, Optional, Union
from zoneinfo import ZoneInfo
import logging

from rehab_adherence.core.config import settings
from rehab_adherence.core.exceptions import ComputationError, ValidationError
from rehab_adherence.schemas import DailyEntry

logger = logging.getLogger(__name__)


DateLike = Union[date, datetime, str]


def _local_zone() -> tzinfo:
    if settings.TIMEZONE.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.TIMEZONE)


def normalize_date(value: DateLike) -> date:
    """
    Reduce a date, datetime or ISO-8601 string to a calendar day.

    Aware datetimes are converted to the configured timezone first, so an
    event at 23:30 UTC can land on the next local day. Naive datetimes are
    taken as local wall time.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(_local_zone())
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Unparseable date: {value!r}", field="date")
        return normalize_date(parsed)
    raise ValidationError(f"Unsupported date value: {value!r}", field="date")


def today(now: Optional[datetime] = None) -> date:
    """The current local calendar day."""
    return normalize_date(now or datetime.now(timezone.utc))


def find_entry(ledger: List[DailyEntry], day: DateLike) -> Optional[DailyEntry]:
    key = normalize_date(day)
    for entry in ledger:
        if entry.date == key:
            return entry
    return None


def get_or_create_entry(ledger: List[DailyEntry], day: DateLike) -> DailyEntry:
    """
    Return the entry for `day`, creating an empty one if absent.

    The new entry is inserted in place and the ledger re-sorted ascending.
    """
    key = normalize_date(day)
    entry = find_entry(ledger, key)
    if entry is not None:
        return entry

    entry = DailyEntry(date=key)
    ledger.append(entry)
    ledger.sort(key=lambda e: e.date)
    logger.debug(f"Created ledger entry for {key.isoformat()}")
    return entry


def sorted_entries(ledger: Iterable[DailyEntry]) -> List[DailyEntry]:
    """Ascending copy of the ledger. Raises if two entries share a date."""
    entries = sorted(ledger, key=lambda e: e.date)
    for previous, current in zip(entries, entries[1:]):
        if previous.date == current.date:
            raise ComputationError(
                f"Ledger holds more than one entry for {current.date.isoformat()}"
            )
    return entries


def count_trailing_run(
    entries: List[DailyEntry],
    predicate: Callable[[DailyEntry], bool]
) -> int:
    """
    Count entries from the most recent backward while `predicate` holds.

    `entries` must already be in ascending date order.
    """
    run = 0
    for entry in reversed(entries):
        if not predicate(entry):
            break
        run += 1
    return run
