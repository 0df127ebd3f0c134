"""Tests for deadline and spend progress calculations."""

from collections.abc import Callable
from datetime import date, datetime, timedelta
from decimal import Decimal

from bonustrack.models import BonusRecord
from bonustrack.progress import (
    Urgency,
    days_until_deadline,
    deadline_urgency,
    deadline_warning,
    spend_progress,
)

RecordFactory = Callable[..., BonusRecord]


class TestDaysUntilDeadline:
    """Tests for days_until_deadline."""

    def test_future_deadline(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test days left for a future deadline."""
        record = make_bank(deadline=now.date() + timedelta(days=10))
        assert days_until_deadline(record, now) == 10

    def test_overdue_is_negative(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test overdue deadlines give negative values."""
        record = make_bank(deadline=now.date() - timedelta(days=5))
        assert days_until_deadline(record, now) == -5

    def test_deadline_today(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test a deadline later today counts as zero days, not overdue."""
        record = make_bank(deadline=now.date())
        assert days_until_deadline(record, now) == 0

    def test_time_of_day_ignored(self, make_bank: RecordFactory) -> None:
        """Test whole calendar days are counted regardless of the hour."""
        record = make_bank(deadline=date(2026, 3, 16))
        assert days_until_deadline(record, datetime(2026, 3, 15, 0, 1)) == 1
        assert days_until_deadline(record, datetime(2026, 3, 15, 23, 59)) == 1

    def test_accepts_date(self, make_bank: RecordFactory) -> None:
        """Test now may be a plain date."""
        record = make_bank(deadline=date(2026, 3, 20))
        assert days_until_deadline(record, date(2026, 3, 15)) == 5

    def test_no_deadline(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test None without a deadline."""
        assert days_until_deadline(make_bank(), now) is None

    def test_not_pending(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test None once the bonus is no longer pending."""
        deadline = now.date() - timedelta(days=3)
        for status in ("earned", "expired"):
            record = make_bank(status=status, deadline=deadline)
            assert days_until_deadline(record, now) is None


class TestDeadlineUrgency:
    """Tests for deadline_urgency."""

    def _urgency(self, make_bank: RecordFactory, now: datetime, days: int) -> Urgency:
        record = make_bank(deadline=now.date() + timedelta(days=days))
        return deadline_urgency(record, now)

    def test_expired(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test overdue deadlines are expired."""
        assert self._urgency(make_bank, now, -1) is Urgency.EXPIRED

    def test_urgent_boundaries(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test 0 through 7 days are urgent."""
        assert self._urgency(make_bank, now, 0) is Urgency.URGENT
        assert self._urgency(make_bank, now, 7) is Urgency.URGENT

    def test_warning_boundaries(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test 8 through 30 days are a warning."""
        assert self._urgency(make_bank, now, 8) is Urgency.WARNING
        assert self._urgency(make_bank, now, 30) is Urgency.WARNING

    def test_far_deadline(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test deadlines beyond 30 days need no attention."""
        assert self._urgency(make_bank, now, 31) is Urgency.NONE

    def test_no_deadline(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test no deadline means no urgency."""
        assert deadline_urgency(make_bank(), now) is Urgency.NONE

    def test_custom_thresholds(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test thresholds can be overridden."""
        record = make_bank(deadline=now.date() + timedelta(days=10))
        assert deadline_urgency(record, now, urgent_days=14, warning_days=60) is Urgency.URGENT


class TestDeadlineWarning:
    """Tests for deadline badge data."""

    def test_days_left_label(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test label for an upcoming deadline."""
        record = make_bank(deadline=now.date() + timedelta(days=3))
        warning = deadline_warning(record, now)
        assert warning is not None
        assert warning.urgency is Urgency.URGENT
        assert warning.label == "3d left"

    def test_expired_label(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test label for an overdue deadline uses absolute days."""
        record = make_bank(deadline=now.date() - timedelta(days=5))
        warning = deadline_warning(record, now)
        assert warning is not None
        assert warning.days == 5
        assert warning.label == "Expired 5d ago"

    def test_nothing_to_show(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test no warning for distant deadlines."""
        record = make_bank(deadline=now.date() + timedelta(days=90))
        assert deadline_warning(record, now) is None

    def test_no_deadline_or_not_pending(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test no warning without a deadline or once the bonus has settled."""
        assert deadline_warning(make_bank(), now) is None
        earned = make_bank(
            status="earned",
            requirements_met=True,
            deadline=now.date() - timedelta(days=2),
        )
        assert deadline_warning(earned, now) is None

    def test_badge_uses_thresholds(self, make_bank: RecordFactory, now: datetime) -> None:
        """Test thresholds are applied to the badge."""
        record = make_bank(deadline=now.date() + timedelta(days=10))
        warning = deadline_warning(record, now, urgent_days=14, warning_days=60)
        assert warning is not None
        assert warning.urgency is Urgency.URGENT
        assert warning.days == 10


class TestSpendProgress:
    """Tests for spend_progress."""

    def test_partial_progress(self, make_card: RecordFactory) -> None:
        """Test percentage of the requirement spent."""
        record = make_card(spend_requirement=Decimal("4000"), current_spend=Decimal("1000"))
        progress = spend_progress(record)
        assert progress is not None
        assert progress.percentage == 25
        assert progress.remaining == Decimal("3000")

    def test_overspend_caps_at_100(self, make_card: RecordFactory) -> None:
        """Test over-spend reports 100 percent, not 150."""
        record = make_card(spend_requirement=Decimal("1000"), current_spend=Decimal("1500"))
        progress = spend_progress(record)
        assert progress is not None
        assert progress.percentage == 100
        assert progress.current == Decimal("1000")

    def test_current_defaults_to_zero(self, make_card: RecordFactory) -> None:
        """Test missing current spend counts as zero."""
        progress = spend_progress(make_card(spend_requirement=Decimal("500")))
        assert progress is not None
        assert progress.current == 0
        assert progress.percentage == 0

    def test_negative_spend_clamped(self, make_card: RecordFactory) -> None:
        """Test refunds below zero don't give negative progress."""
        record = make_card(spend_requirement=Decimal("500"), current_spend=Decimal("-20"))
        progress = spend_progress(record)
        assert progress is not None
        assert progress.percentage == 0

    def test_bank_bonus_has_no_progress(self, make_bank: RecordFactory) -> None:
        """Test bank bonuses have no spend progress."""
        assert spend_progress(make_bank()) is None

    def test_zero_requirement(self, make_card: RecordFactory) -> None:
        """Test no progress without a positive requirement."""
        assert spend_progress(make_card()) is None
        assert spend_progress(make_card(spend_requirement=Decimal("0"))) is None
