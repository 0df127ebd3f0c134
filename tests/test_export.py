"""Tests for tax report writers."""

import csv
import json
from collections.abc import Callable
from datetime import date
from decimal import Decimal
from pathlib import Path

from bonustrack.export import TAX_CSV_HEADERS, tax_row, write_tax_csv, write_tax_json
from bonustrack.models import BonusRecord

RecordFactory = Callable[..., BonusRecord]


def _records(make_bank: RecordFactory, make_card: RecordFactory) -> list[BonusRecord]:
    return [
        make_bank(
            status="received",
            requirements_met=True,
            received_date=date(2025, 4, 2),
            taxable_amount=Decimal("280"),
            notes="Direct deposit",
        ),
        make_card(
            status="received",
            requirements_met=True,
            received_date=date(2025, 8, 9),
            is_taxable=False,
        ),
        make_bank(status="received", requirements_met=True, received_date=date(2024, 1, 5)),
        make_bank(),
    ]


class TestTaxRow:
    """Tests for tax_row."""

    def test_bank_row(self, make_bank: RecordFactory) -> None:
        """Test formatting a bank bonus row."""
        record = make_bank(
            status="received",
            requirements_met=True,
            received_date=date(2025, 4, 2),
            form_1099_received=True,
        )
        assert tax_row(record) == [
            "Bank Bonus",
            "Chase",
            "$300",
            "$300",
            "Yes",
            "Yes",
            "2025-04-02",
            "",
        ]

    def test_card_row_uses_card_name(self, make_card: RecordFactory) -> None:
        """Test credit card rows name the card."""
        row = tax_row(make_card(is_taxable=False))
        assert row[0] == "Credit Card Bonus"
        assert row[1] == "Gold Card"
        assert row[4] == "No"


class TestWriteTaxCsv:
    """Tests for write_tax_csv."""

    def test_writes_year_only(
        self, make_bank: RecordFactory, make_card: RecordFactory, tmp_path: Path
    ) -> None:
        """Test only bonuses received in the year are written."""
        output = tmp_path / "tax_2025.csv"
        count = write_tax_csv(_records(make_bank, make_card), 2025, output)
        assert count == 2

        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0] == TAX_CSV_HEADERS
        assert len(rows) == 3
        assert rows[1][3] == "$280"
        assert rows[1][7] == "Direct deposit"

    def test_all_fields_quoted(self, tmp_path: Path) -> None:
        """Test every field is quoted."""
        output = tmp_path / "tax.csv"
        write_tax_csv([], 2025, output)
        assert output.read_text(encoding="utf-8").startswith('"Bonus Type","Institution"')

    def test_custom_delimiter(
        self, make_bank: RecordFactory, make_card: RecordFactory, tmp_path: Path
    ) -> None:
        """Test writing with a semicolon delimiter."""
        output = tmp_path / "tax.csv"
        write_tax_csv(_records(make_bank, make_card), 2025, output, delimiter=";")
        with open(output, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f, delimiter=";"))
        assert len(rows[0]) == len(TAX_CSV_HEADERS)


class TestWriteTaxJson:
    """Tests for write_tax_json."""

    def test_report_contents(
        self, make_bank: RecordFactory, make_card: RecordFactory, tmp_path: Path
    ) -> None:
        """Test the JSON report has the summary and bonuses."""
        output = tmp_path / "tax.json"
        count = write_tax_json(_records(make_bank, make_card), 2025, output)
        assert count == 2

        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["year"] == 2025
        assert report["summary"]["taxable_total"] == "280"
        assert report["summary"]["non_taxable_total"] == "60000"
        assert report["summary"]["form_1099_pending"] == 1
        assert [b["type"] for b in report["bonuses"]] == ["bank", "creditCard"]
