"""Tax-year report writers."""

import csv
import json
from pathlib import Path
from typing import Any

from bonustrack.models import BonusRecord
from bonustrack.reporter import received_for_year, tax_summary

TAX_CSV_HEADERS = [
    "Bonus Type",
    "Institution",
    "Bonus Amount",
    "Taxable Amount",
    "Is Taxable",
    "Form 1099 Received",
    "Received Date",
    "Notes",
]


def tax_row(record: BonusRecord) -> list[str]:
    """Format one received bonus as a tax report row."""
    return [
        "Credit Card Bonus" if record.is_credit_card else "Bank Bonus",
        record.display_name,
        f"${record.bonus_amount}",
        f"${record.effective_taxable_amount}",
        "Yes" if record.is_taxable else "No",
        "Yes" if record.form_1099_received else "No",
        record.received_date.isoformat() if record.received_date else "",
        record.notes or "",
    ]


def write_tax_csv(
    records: list[BonusRecord],
    tax_year: int,
    output_path: Path,
    delimiter: str = ",",
) -> int:
    """
    Write the received bonuses of a tax year to CSV.

    Args:
        records: All bonuses; only those received in tax_year are written
        tax_year: Calendar year to report
        output_path: Output file path
        delimiter: CSV delimiter (default comma)

    Returns:
        Number of rows written
    """
    rows = received_for_year(records, tax_year)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, delimiter=delimiter, quoting=csv.QUOTE_ALL)
        writer.writerow(TAX_CSV_HEADERS)
        for record in rows:
            writer.writerow(tax_row(record))
    return len(rows)


def tax_report(records: list[BonusRecord], tax_year: int) -> dict[str, Any]:
    """Build the JSON tax report for a year."""
    received = received_for_year(records, tax_year)
    return {
        "year": tax_year,
        "summary": tax_summary(received, tax_year).to_dict(),
        "bonuses": [
            {
                "id": r.id,
                "type": r.category.value,
                "name": r.display_name,
                "bonus_amount": str(r.bonus_amount),
                "taxable_amount": str(r.effective_taxable_amount),
                "is_taxable": r.is_taxable,
                "form_1099_received": r.form_1099_received,
                "received_date": r.received_date.isoformat() if r.received_date else None,
                "notes": r.notes,
            }
            for r in received
        ],
    }


def write_tax_json(records: list[BonusRecord], tax_year: int, output_path: Path) -> int:
    """Write the JSON tax report for a year. Returns the number of bonuses."""
    report = tax_report(records, tax_year)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)
        f.write("\n")
    return len(report["bonuses"])
