"""Dashboard and tax-year statistics over a collection of bonuses."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from bonustrack.models import BonusCategory, BonusRecord, BonusStatus
from bonustrack.progress import URGENT_DAYS, WARNING_DAYS, Urgency, deadline_urgency


@dataclass(frozen=True)
class TaxSummary:
    """Received bonuses for one tax year, split by taxability."""

    taxable_total: Decimal = Decimal("0")
    non_taxable_total: Decimal = Decimal("0")
    form_1099_pending: int = 0
    form_1099_received: int = 0
    taxable_count: int = 0
    non_taxable_count: int = 0

    @property
    def total_bonuses(self) -> int:
        """Number of received bonuses in the year."""
        return self.taxable_count + self.non_taxable_count

    def to_dict(self) -> dict[str, str | int]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "taxable_total": str(self.taxable_total),
            "non_taxable_total": str(self.non_taxable_total),
            "form_1099_pending": self.form_1099_pending,
            "form_1099_received": self.form_1099_received,
            "taxable_count": self.taxable_count,
            "non_taxable_count": self.non_taxable_count,
            "total_bonuses": self.total_bonuses,
        }


@dataclass(frozen=True)
class BonusReport:
    """Dashboard roll-up of a set of bonuses."""

    as_of: date
    total: int
    counts: dict[BonusStatus, int]
    total_received_value: Decimal
    alerts: list[BonusRecord] = field(default_factory=list)


def counts_by_status(records: Iterable[BonusRecord]) -> dict[BonusStatus, int]:
    """Count records per status, including statuses with no records."""
    counts = {status: 0 for status in BonusStatus}
    for record in records:
        counts[record.status] += 1
    return counts


def total_received_value(records: Iterable[BonusRecord]) -> Decimal:
    """Sum the cash value of received bonuses.

    Credit card bonuses count their cash-equivalent value when known, so
    30000 points worth $200 add 200, not 30000.
    """
    return sum(
        (r.cash_value for r in records if r.status is BonusStatus.RECEIVED),
        Decimal("0"),
    )


def urgent_alerts(
    records: Iterable[BonusRecord],
    now: date | datetime,
    urgent_days: int = URGENT_DAYS,
    warning_days: int = WARNING_DAYS,
) -> list[BonusRecord]:
    """Pending bonuses that are due within the urgent window or overdue."""
    alerts: list[BonusRecord] = []
    for record in records:
        if record.status is not BonusStatus.PENDING:
            continue
        urgency = deadline_urgency(record, now, urgent_days, warning_days)
        if urgency in (Urgency.URGENT, Urgency.EXPIRED):
            alerts.append(record)
    return alerts


def received_for_year(records: Iterable[BonusRecord], tax_year: int) -> list[BonusRecord]:
    """Received bonuses whose received date falls in the given year."""
    return [
        r
        for r in records
        if r.status is BonusStatus.RECEIVED
        and r.received_date is not None
        and r.received_date.year == tax_year
    ]


def tax_summary(records: Iterable[BonusRecord], tax_year: int) -> TaxSummary:
    """
    Summarize received bonuses for a tax year.

    Taxable bonuses use their taxable amount (falling back to the bonus
    amount); non-taxable bonuses use the bonus amount. 1099 counts cover
    taxable bonuses only.
    """
    taxable_total = Decimal("0")
    non_taxable_total = Decimal("0")
    form_pending = 0
    form_received = 0
    taxable_count = 0
    non_taxable_count = 0

    for record in received_for_year(records, tax_year):
        if record.is_taxable:
            taxable_total += record.effective_taxable_amount
            taxable_count += 1
            if record.form_1099_received:
                form_received += 1
            else:
                form_pending += 1
        else:
            non_taxable_total += record.bonus_amount
            non_taxable_count += 1

    return TaxSummary(
        taxable_total=taxable_total,
        non_taxable_total=non_taxable_total,
        form_1099_pending=form_pending,
        form_1099_received=form_received,
        taxable_count=taxable_count,
        non_taxable_count=non_taxable_count,
    )


def available_tax_years(records: Iterable[BonusRecord], now: date | datetime) -> list[int]:
    """Years with received bonuses plus the current year, newest first."""
    years = {r.received_date.year for r in records if r.received_date is not None}
    years.add(now.year)
    return sorted(years, reverse=True)


def filter_bonuses(
    records: Iterable[BonusRecord],
    search: str | None = None,
    status: BonusStatus | str | None = None,
    category: BonusCategory | str | None = None,
) -> list[BonusRecord]:
    """
    Filter bonuses the way the dashboard list does.

    Args:
        records: Bonuses to filter
        search: Case-insensitive substring of the institution or card name
        status: Only keep this status
        category: Only keep this category

    Returns:
        Matching records in their original order
    """
    wanted_status = BonusStatus.parse(status) if status else None
    wanted_category = BonusCategory(category) if category else None
    needle = search.strip().lower() if search else ""

    matches: list[BonusRecord] = []
    for record in records:
        if wanted_status is not None and record.status is not wanted_status:
            continue
        if wanted_category is not None and record.category is not wanted_category:
            continue
        if needle:
            names = [record.institution_name, record.card_name or ""]
            if not any(needle in name.lower() for name in names):
                continue
        matches.append(record)
    return matches


def build_report(
    records: Iterable[BonusRecord],
    as_of: date | datetime,
    search: str | None = None,
    status: BonusStatus | str | None = None,
    category: BonusCategory | str | None = None,
    urgent_days: int = URGENT_DAYS,
    warning_days: int = WARNING_DAYS,
) -> BonusReport:
    """Build the dashboard statistics for the (optionally filtered) records."""
    selected = filter_bonuses(records, search=search, status=status, category=category)
    as_of_date = as_of.date() if isinstance(as_of, datetime) else as_of
    return BonusReport(
        as_of=as_of_date,
        total=len(selected),
        counts=counts_by_status(selected),
        total_received_value=total_received_value(selected),
        alerts=urgent_alerts(selected, as_of, urgent_days, warning_days),
    )
