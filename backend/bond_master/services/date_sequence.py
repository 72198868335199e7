"""Chronological placement rules for cashflow dates."""

import datetime as dt
from typing import Any, NamedTuple, Optional, Sequence

from bond_master.core.exceptions import DateOrderingError, InvalidDateError


class ScheduledDate(NamedTuple):
    """Date of an existing cashflow, in schedule order."""
    cashflow_id: int
    date: dt.date


def parse_cashflow_date(value: Any) -> dt.date:
    """Coerce user input into a calendar date.

    Accepts date objects, datetimes (the time part is dropped) and ISO
    strings, optionally carrying a time component.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return dt.date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            raise InvalidDateError(value) from None
    raise InvalidDateError(value)


def validate_cashflow_date(
    schedule: Sequence[ScheduledDate],
    candidate: dt.date,
    exclude_id: Optional[int] = None,
) -> None:
    """Check that a candidate date fits the schedule.

    Without ``exclude_id`` the candidate is an insert and must come after
    every existing date. With ``exclude_id`` it replaces the date of that
    cashflow and must fall strictly between the dates of the rows before and
    after it.

    Args:
        schedule: Existing cashflows in ascending schedule order
        candidate: Proposed date
        exclude_id: Identifier of the cashflow being edited, if any

    Raises:
        DateOrderingError: If the candidate breaks the chronological order
    """
    if exclude_id is None:
        _validate_append(schedule, candidate)
        return

    position = next(
        (i for i, item in enumerate(schedule) if item.cashflow_id == exclude_id),
        None,
    )
    if position is None:
        raise ValueError(f"Cashflow {exclude_id} is not part of the schedule")

    if position > 0:
        preceding = schedule[position - 1].date
        if candidate <= preceding:
            raise DateOrderingError(
                f"Date {candidate.isoformat()} must be after the preceding "
                f"cashflow date {preceding.isoformat()}",
                conflicting_date=preceding,
            )

    if position < len(schedule) - 1:
        following = schedule[position + 1].date
        if candidate >= following:
            raise DateOrderingError(
                f"Date {candidate.isoformat()} must be before the following "
                f"cashflow date {following.isoformat()}",
                conflicting_date=following,
            )


def _validate_append(schedule: Sequence[ScheduledDate], candidate: dt.date) -> None:
    # Inserts are append-only: nothing may sit on or after the new date.
    if not schedule:
        return
    latest = max(item.date for item in schedule)
    if latest >= candidate:
        raise DateOrderingError(
            f"Date {candidate.isoformat()} must be after the last "
            f"cashflow date {latest.isoformat()}",
            conflicting_date=latest,
        )
