"""Deadline and spend progress for a single bonus.

Every function here takes the current time as an argument; nothing reads
the system clock.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from bonustrack.models import BonusRecord, BonusStatus

URGENT_DAYS = 7
WARNING_DAYS = 30


class Urgency(str, Enum):
    """How close a pending bonus is to its deadline."""

    NONE = "none"
    WARNING = "warning"
    URGENT = "urgent"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SpendProgress:
    """Progress toward a credit card minimum spend."""

    current: Decimal
    required: Decimal
    percentage: Decimal

    @property
    def remaining(self) -> Decimal:
        """Spend still needed to meet the requirement."""
        return self.required - self.current


@dataclass(frozen=True)
class DeadlineWarning:
    """Badge data for a pending bonus with an approaching or passed deadline."""

    urgency: Urgency
    days: int  # absolute days left, or days overdue when expired

    @property
    def label(self) -> str:
        """Short text for display, e.g. '3d left' or 'Expired 5d ago'."""
        if self.urgency is Urgency.EXPIRED:
            return f"Expired {self.days}d ago"
        return f"{self.days}d left"


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until_deadline(record: BonusRecord, now: date | datetime) -> int | None:
    """
    Whole calendar days from now until the bonus deadline.

    Negative values mean the deadline has passed.

    Args:
        record: Bonus to inspect
        now: Current date or datetime

    Returns:
        Signed day count, or None if there is no deadline or the bonus
        is no longer pending
    """
    if record.deadline is None or record.status is not BonusStatus.PENDING:
        return None
    return (_as_date(record.deadline) - _as_date(now)).days


def deadline_urgency(
    record: BonusRecord,
    now: date | datetime,
    urgent_days: int = URGENT_DAYS,
    warning_days: int = WARNING_DAYS,
) -> Urgency:
    """Classify how urgent the bonus deadline is."""
    days = days_until_deadline(record, now)
    if days is None:
        return Urgency.NONE
    return _classify(days, urgent_days, warning_days)


def _classify(days: int, urgent_days: int, warning_days: int) -> Urgency:
    if days < 0:
        return Urgency.EXPIRED
    if days <= urgent_days:
        return Urgency.URGENT
    if days <= warning_days:
        return Urgency.WARNING
    return Urgency.NONE


def deadline_warning(
    record: BonusRecord,
    now: date | datetime,
    urgent_days: int = URGENT_DAYS,
    warning_days: int = WARNING_DAYS,
) -> DeadlineWarning | None:
    """Return badge data for the deadline, or None when nothing to show."""
    days = days_until_deadline(record, now)
    if days is None:
        return None
    urgency = _classify(days, urgent_days, warning_days)
    if urgency is Urgency.NONE:
        return None
    return DeadlineWarning(urgency=urgency, days=abs(days))


def spend_progress(record: BonusRecord) -> SpendProgress | None:
    """
    Progress toward the minimum spend of a credit card bonus.

    Over-spend is allowed in storage, but the reported current spend is
    clamped to the requirement and the percentage caps at 100.

    Args:
        record: Bonus to inspect

    Returns:
        SpendProgress, or None for bank bonuses and cards without a
        positive spend requirement
    """
    if not record.is_credit_card:
        return None
    required = record.spend_requirement
    if required is None or required <= 0:
        return None

    raw = record.current_spend if record.current_spend is not None else Decimal("0")
    current = min(max(raw, Decimal("0")), required)
    percentage = min(Decimal("100"), current * 100 / required)
    return SpendProgress(current=current, required=required, percentage=percentage)
