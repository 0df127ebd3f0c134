"""Status transition rules for bonuses.

This module is the only place that changes ``status``, ``requirements_met``
and ``received_date``. All functions are pure: they return new records and
never touch storage.

Allowed transitions:
    pending  -> earned    requirements met
    earned   -> received  bonus paid out
    pending  -> expired   deadline passed, or given up
"""

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from bonustrack.errors import IllegalTransitionError
from bonustrack.models import BonusRecord, BonusStatus
from bonustrack.progress import days_until_deadline

ALLOWED_TRANSITIONS: frozenset[tuple[BonusStatus, BonusStatus]] = frozenset({
    (BonusStatus.PENDING, BonusStatus.EARNED),
    (BonusStatus.EARNED, BonusStatus.RECEIVED),
    (BonusStatus.PENDING, BonusStatus.EXPIRED),
})

TERMINAL_STATUSES = frozenset({BonusStatus.RECEIVED, BonusStatus.EXPIRED})


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of applying a transition: the new record, or the error."""

    record: BonusRecord | None = None
    error: IllegalTransitionError | None = None

    def __post_init__(self) -> None:
        if (self.record is None) == (self.error is None):
            raise ValueError("TransitionResult needs exactly one of record or error")

    @property
    def ok(self) -> bool:
        """True if the transition was applied."""
        return self.error is None

    def unwrap(self) -> BonusRecord:
        """Return the new record, raising the error if the transition failed."""
        if self.record is None:
            raise self.error or ValueError("TransitionResult has no record")
        return self.record


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def is_allowed(current: BonusStatus | str, target: BonusStatus | str) -> bool:
    """Check whether the table allows moving from current to target."""
    return (BonusStatus.parse(current), BonusStatus.parse(target)) in ALLOWED_TRANSITIONS


def _with_status(
    record: BonusRecord, target: BonusStatus, now: date | datetime
) -> BonusRecord:
    """Return a copy in the target status with the record invariants applied."""
    changes: dict[str, Any] = {"status": target}

    if target is BonusStatus.RECEIVED:
        changes["requirements_met"] = True
        changes["received_date"] = record.received_date or _as_date(now)
    else:
        changes["received_date"] = None
        if target is BonusStatus.EARNED:
            changes["requirements_met"] = True
        elif target is BonusStatus.EXPIRED:
            changes["requirements_met"] = False

    return dataclasses.replace(record, **changes)


def apply_transition(
    record: BonusRecord,
    target: BonusStatus | str,
    now: date | datetime,
) -> TransitionResult:
    """
    Apply a status change allowed by the transition table.

    Re-applying the record's current status is a no-op and succeeds, so
    repeated sweeps and double clicks are harmless.

    Args:
        record: Record to transition
        target: Requested status
        now: Current time, used as the received date

    Returns:
        TransitionResult holding either the new record or an
        IllegalTransitionError naming the (from, to) pair
    """
    target = BonusStatus.parse(target)

    if record.status is target:
        return TransitionResult(record=record)

    if (record.status, target) not in ALLOWED_TRANSITIONS:
        return TransitionResult(error=IllegalTransitionError(record.status, target))

    if target is BonusStatus.RECEIVED:
        # received_date is set exactly when the bonus is received
        record = dataclasses.replace(record, received_date=None)

    return TransitionResult(record=_with_status(record, target, now))


def override_status(
    record: BonusRecord,
    target: BonusStatus | str,
    now: date | datetime,
) -> BonusRecord:
    """
    Force a record into any status, bypassing the transition table.

    Used for manual corrections. The record invariants still hold
    afterwards: received implies a received date and requirements met,
    earned implies requirements met, expired clears requirements met.
    """
    return _with_status(record, BonusStatus.parse(target), now)


def find_overdue(records: Iterable[BonusRecord], now: date | datetime) -> list[BonusRecord]:
    """Return pending records whose deadline has already passed."""
    overdue: list[BonusRecord] = []
    for record in records:
        days = days_until_deadline(record, now)
        if days is not None and days < 0:
            overdue.append(record)
    return overdue


def sweep_expired(records: Iterable[BonusRecord], now: date | datetime) -> list[BonusRecord]:
    """
    Expire every pending record whose deadline has passed.

    Returns a new list in the same order; records that are not overdue are
    passed through unchanged. Running the sweep on its own output changes
    nothing.
    """
    records = list(records)
    overdue_ids = {record.id for record in find_overdue(records, now)}
    swept: list[BonusRecord] = []
    for record in records:
        if record.id in overdue_ids:
            record = apply_transition(record, BonusStatus.EXPIRED, now).unwrap()
        swept.append(record)
    return swept


def status_fields(record: BonusRecord) -> dict[str, Any]:
    """Fields written alongside a status change."""
    return {
        "requirements_met": record.requirements_met,
        "received_date": record.received_date,
    }
