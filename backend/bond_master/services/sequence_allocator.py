"""Sequence number allocation for cashflow schedules."""

from typing import Iterable, NamedTuple, Sequence

from bond_master.core.exceptions import SequenceConflictError


class ScheduledSeq(NamedTuple):
    """Sequence number held by an existing cashflow."""
    cashflow_id: int
    seq: int


def next_sequence(existing: Iterable[int]) -> int:
    """Next sequence number after the current maximum (1 for an empty schedule)."""
    return max(existing, default=0) + 1


def check_sequence(
    schedule: Sequence[ScheduledSeq], cashflow_id: int, seq: int
) -> None:
    """Validate a sequence number supplied on edit.

    The number must not be held by another cashflow of the bond, and it must
    stay inside 1..N so the run remains gapless.

    Raises:
        SequenceConflictError: On collision or out-of-range value
    """
    for item in schedule:
        if item.cashflow_id != cashflow_id and item.seq == seq:
            raise SequenceConflictError(
                f"Sequence {seq} is already used by cashflow {item.cashflow_id}",
                seq=seq,
                cashflow_id=item.cashflow_id,
            )

    if seq < 1 or seq > len(schedule):
        raise SequenceConflictError(
            f"Sequence {seq} is outside 1..{len(schedule)}",
            seq=seq,
        )
