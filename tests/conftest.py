"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from bonustrack.models import BonusCategory, BonusRecord
from bonustrack.storage import BonusStore

# Fixed "current time" used across tests; no test reads the real clock
NOW = datetime(2026, 3, 15, 14, 30)

RecordFactory = Callable[..., BonusRecord]


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep config and data lookups away from the real home directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg_config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg_data"))
    monkeypatch.delenv("BONUSTRACK_API_TOKEN", raising=False)


@pytest.fixture
def now() -> datetime:
    """Return the fixed current time."""
    return NOW


@pytest.fixture
def make_bank() -> RecordFactory:
    """Factory for bank bonus records."""
    counter = iter(range(1, 10_000))

    def factory(**overrides: Any) -> BonusRecord:
        fields: dict[str, Any] = {
            "id": f"bank-{next(counter)}",
            "category": BonusCategory.BANK,
            "institution_name": "Chase",
            "bonus_amount": Decimal("300"),
            "bonus_type": "signup",
            "created_at": NOW,
        }
        fields.update(overrides)
        return BonusRecord(**fields)

    return factory


@pytest.fixture
def make_card() -> RecordFactory:
    """Factory for credit card bonus records."""
    counter = iter(range(1, 10_000))

    def factory(**overrides: Any) -> BonusRecord:
        fields: dict[str, Any] = {
            "id": f"card-{next(counter)}",
            "category": BonusCategory.CREDIT_CARD,
            "institution_name": "American Express",
            "card_name": "Gold Card",
            "bonus_amount": Decimal("60000"),
            "bonus_type": "points",
            "created_at": NOW,
        }
        fields.update(overrides)
        return BonusRecord(**fields)

    return factory


@pytest.fixture
def store(tmp_path: Path) -> BonusStore:
    """Return an empty SQLite store in a temporary directory."""
    return BonusStore(tmp_path / "bonuses.db")
