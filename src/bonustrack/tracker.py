"""Lifecycle service that applies the transition rules against storage."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from bonustrack.errors import BonusNotFoundError, ConflictError
from bonustrack.models import BonusRecord, BonusStatus
from bonustrack.progress import URGENT_DAYS, WARNING_DAYS
from bonustrack.reporter import BonusReport, build_report
from bonustrack.storage import BonusRepository
from bonustrack.transitions import (
    apply_transition,
    find_overdue,
    override_status,
    status_fields,
)

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Result of a deadline sweep."""

    expired: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Overdue bonuses the sweep tried to expire."""
        return len(self.expired) + len(self.conflicts)


class BonusTracker:
    """
    Runs bonus status changes against a repository.

    Usage:
        tracker = BonusTracker(BonusStore(path))
        report = tracker.run_sweep("local")
        tracker.transition(bonus_id, BonusStatus.EARNED)
    """

    def __init__(
        self,
        repository: BonusRepository,
        clock: Callable[[], datetime] = datetime.now,
        urgent_days: int = URGENT_DAYS,
        warning_days: int = WARNING_DAYS,
    ) -> None:
        """
        Initialize tracker.

        Args:
            repository: Storage for bonus records
            clock: Returns the current time
            urgent_days: Days before a deadline that count as urgent
            warning_days: Days before a deadline that count as a warning
        """
        self.repository = repository
        self.clock = clock
        self.urgent_days = urgent_days
        self.warning_days = warning_days

    def _require(self, bonus_id: str) -> BonusRecord:
        record = self.repository.get_bonus(bonus_id)
        if record is None:
            raise BonusNotFoundError(bonus_id)
        return record

    def _expire(self, records: list[BonusRecord], now: datetime) -> tuple[list[str], list[str]]:
        expired: list[str] = []
        conflicts: list[str] = []
        for record in find_overdue(records, now):
            updated = apply_transition(record, BonusStatus.EXPIRED, now).unwrap()
            try:
                self.repository.save_bonus_status(
                    record.id,
                    BonusStatus.PENDING,
                    BonusStatus.EXPIRED,
                    status_fields(updated),
                )
            except ConflictError as e:
                logger.debug("Sweep conflict: %s", e)
                conflicts.append(record.id)
            except BonusNotFoundError:
                logger.debug("Bonus %s deleted during sweep", record.id)
            else:
                logger.info("Expired bonus %s (%s)", record.id, record.display_name)
                expired.append(record.id)
        return expired, conflicts

    def run_sweep(self, user_id: str) -> SweepReport:
        """
        Expire every pending bonus of the user whose deadline has passed.

        Writes are conditional on the bonus still being pending. Bonuses
        that lose that race are reloaded and retried once; any still in
        conflict are reported rather than raised.
        """
        now = self.clock()
        expired, conflicts = self._expire(self.repository.load_bonus_records(user_id), now)

        if conflicts:
            retry_ids = set(conflicts)
            reloaded = [
                r for r in self.repository.load_bonus_records(user_id) if r.id in retry_ids
            ]
            retried, conflicts = self._expire(reloaded, now)
            expired.extend(retried)

        return SweepReport(expired=expired, conflicts=conflicts)

    def transition(self, bonus_id: str, target: BonusStatus | str) -> BonusRecord:
        """
        Move a bonus to a new status through the transition table.

        Raises:
            IllegalTransitionError: The table does not allow the change
            BonusNotFoundError: No such bonus
            ConflictError: The bonus changed while being updated
        """
        record = self._require(bonus_id)
        updated = apply_transition(record, target, self.clock()).unwrap()
        if updated is record:
            return record
        return self.repository.save_bonus_status(
            bonus_id, record.status, updated.status, status_fields(updated)
        )

    def override(
        self,
        bonus_id: str,
        target: BonusStatus | str,
        reason: str | None = None,
    ) -> BonusRecord:
        """Force a bonus into any status. The change is logged and audited."""
        record = self._require(bonus_id)
        updated = override_status(record, target, self.clock())

        logger.warning(
            "Manual status override for bonus %s: %s -> %s%s",
            bonus_id,
            record.status.value,
            updated.status.value,
            f" ({reason})" if reason else "",
        )
        saved = self.repository.save_bonus_status(
            bonus_id, record.status, updated.status, status_fields(updated)
        )
        if hasattr(self.repository, "log_override"):
            self.repository.log_override(bonus_id, record.status, updated.status, reason)
        return saved

    def record_spend(self, bonus_id: str, amount: Decimal) -> BonusRecord:
        """Set the current spend of a credit card bonus."""
        record = self._require(bonus_id)
        if not record.is_credit_card:
            raise ValueError(f"Bonus {bonus_id} is not a credit card bonus")
        if amount < 0:
            raise ValueError("Spend cannot be negative")
        return self.repository.update_bonus(bonus_id, current_spend=amount)

    def report(
        self,
        user_id: str,
        search: str | None = None,
        status: BonusStatus | str | None = None,
        category: str | None = None,
    ) -> BonusReport:
        """Build dashboard statistics for the user's bonuses as of now."""
        records = self.repository.load_bonus_records(user_id)
        return build_report(
            records,
            self.clock(),
            search=search,
            status=status,
            category=category,
            urgent_days=self.urgent_days,
            warning_days=self.warning_days,
        )
