"""Data models for bank and credit card signup bonuses."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from bonustrack.errors import UnknownStatusError


class BonusCategory(str, Enum):
    """Which kind of account the bonus belongs to."""

    BANK = "bank"
    CREDIT_CARD = "creditCard"

    def __str__(self) -> str:
        return self.value


class BonusStatus(str, Enum):
    """Lifecycle status of a bonus."""

    PENDING = "pending"
    EARNED = "earned"
    RECEIVED = "received"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | BonusStatus") -> "BonusStatus":
        """Convert a stored status string, raising UnknownStatusError if invalid."""
        try:
            return cls(value)
        except ValueError:
            raise UnknownStatusError(value) from None


# Fields that only make sense for credit card bonuses
CREDIT_CARD_FIELDS = (
    "card_name",
    "bonus_value_amount",
    "spend_requirement",
    "current_spend",
)


@dataclass(frozen=True)
class BonusRecord:
    """A single signup bonus being tracked.

    Records are immutable; status changes produce new records through
    ``bonustrack.transitions``.
    """

    id: str
    category: BonusCategory
    institution_name: str
    bonus_amount: Decimal
    status: BonusStatus = BonusStatus.PENDING
    requirements_met: bool = False
    card_name: str | None = None
    bonus_type: str | None = None  # signup, referral, points, miles, cashback
    bonus_value_amount: Decimal | None = None
    deadline: date | None = None
    spend_requirement: Decimal | None = None
    current_spend: Decimal | None = None
    received_date: date | None = None
    is_taxable: bool = True
    taxable_amount: Decimal | None = None
    form_1099_received: bool = False
    notes: str | None = None
    created_at: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Coerce enum fields and reject fields that don't fit the category."""
        try:
            category = BonusCategory(self.category)
        except ValueError:
            raise ValueError(f"Unknown bonus category: {self.category!r}") from None
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "status", BonusStatus.parse(self.status))

        if category is BonusCategory.BANK:
            for name in CREDIT_CARD_FIELDS:
                if getattr(self, name) is not None:
                    raise ValueError(f"{name} is only valid for credit card bonuses")

    @classmethod
    def create(
        cls,
        category: BonusCategory | str,
        institution_name: str,
        bonus_amount: Decimal,
        now: datetime,
        **fields: object,
    ) -> "BonusRecord":
        """Create a new pending bonus with a fresh id."""
        fields.pop("status", None)
        fields.pop("requirements_met", None)
        fields.pop("received_date", None)
        return cls(
            id=str(fields.pop("id", None) or uuid.uuid4().hex),
            category=BonusCategory(category),
            institution_name=institution_name,
            bonus_amount=bonus_amount,
            created_at=now,
            **fields,  # type: ignore[arg-type]
        )

    @property
    def is_credit_card(self) -> bool:
        """Return True for credit card bonuses."""
        return self.category is BonusCategory.CREDIT_CARD

    @property
    def display_name(self) -> str:
        """Card name for credit cards, otherwise the institution name."""
        return self.card_name or self.institution_name

    @property
    def cash_value(self) -> Decimal:
        """Cash-equivalent value, falling back to the nominal amount."""
        if self.bonus_value_amount is not None:
            return self.bonus_value_amount
        return self.bonus_amount

    @property
    def effective_taxable_amount(self) -> Decimal:
        """Taxable amount, falling back to the nominal amount."""
        if self.taxable_amount is not None:
            return self.taxable_amount
        return self.bonus_amount

    @property
    def tax_year(self) -> int | None:
        """Year the bonus counts toward: received year, else creation year."""
        if self.received_date is not None:
            return self.received_date.year
        if self.created_at is not None:
            return self.created_at.year
        return None

    def to_dict(self) -> dict[str, str]:
        """Convert to a flat string dictionary for CSV/JSON output."""

        def _fmt(value: object) -> str:
            if value is None:
                return ""
            if isinstance(value, bool):
                return "true" if value else "false"
            if isinstance(value, (date, datetime)):
                return value.isoformat()
            return str(value)

        return {
            "id": self.id,
            "category": self.category.value,
            "institution_name": self.institution_name,
            "card_name": _fmt(self.card_name),
            "bonus_type": _fmt(self.bonus_type),
            "bonus_amount": str(self.bonus_amount),
            "bonus_value_amount": _fmt(self.bonus_value_amount),
            "status": self.status.value,
            "requirements_met": _fmt(self.requirements_met),
            "deadline": _fmt(self.deadline),
            "spend_requirement": _fmt(self.spend_requirement),
            "current_spend": _fmt(self.current_spend),
            "received_date": _fmt(self.received_date),
            "is_taxable": _fmt(self.is_taxable),
            "taxable_amount": _fmt(self.taxable_amount),
            "form_1099_received": _fmt(self.form_1099_received),
            "notes": _fmt(self.notes),
            "created_at": _fmt(self.created_at),
        }
