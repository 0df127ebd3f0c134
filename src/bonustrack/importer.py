"""Import bonuses from CSV, JSON or Excel files."""

import csv
import dataclasses
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from io import StringIO
from pathlib import Path
from typing import Any

from bonustrack.models import BonusCategory, BonusRecord, BonusStatus
from bonustrack.transitions import override_status
from bonustrack.utils import parse_amount, parse_bool, parse_date, read_file

# Normalized header -> BonusRecord field. Accepts snake_case, the dashboard
# API's camelCase, and the friendlier spreadsheet names.
HEADER_ALIASES = {
    "id": "id",
    "category": "category",
    "bonuscategory": "category",
    "institution": "institution_name",
    "institutionname": "institution_name",
    "bank": "institution_name",
    "bankname": "institution_name",
    "card": "card_name",
    "cardname": "card_name",
    "bonustype": "bonus_type",
    "amount": "bonus_amount",
    "bonusamount": "bonus_amount",
    "value": "bonus_value_amount",
    "bonusvalue": "bonus_value_amount",
    "bonusvalueamount": "bonus_value_amount",
    "status": "status",
    "requirementsmet": "requirements_met",
    "deadline": "deadline",
    "requirementsdeadline": "deadline",
    "spenddeadline": "deadline",
    "spendrequirement": "spend_requirement",
    "currentspend": "current_spend",
    "receiveddate": "received_date",
    "bonusreceiveddate": "received_date",
    "taxable": "is_taxable",
    "istaxable": "is_taxable",
    "taxableamount": "taxable_amount",
    "form1099received": "form_1099_received",
    "notes": "notes",
}

CATEGORY_ALIASES = {
    "bank": BonusCategory.BANK,
    "bankbonus": BonusCategory.BANK,
    "creditcard": BonusCategory.CREDIT_CARD,
    "card": BonusCategory.CREDIT_CARD,
    "creditcardbonus": BonusCategory.CREDIT_CARD,
}

_AMOUNT_FIELDS = ("bonus_value_amount", "spend_requirement", "current_spend", "taxable_amount")
_DATE_FIELDS = ("deadline", "received_date")
_TEXT_FIELDS = ("card_name", "bonus_type", "notes")


def _normalize(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


@dataclass
class ImportResult:
    """Records parsed from a file plus per-row errors."""

    records: list[BonusRecord] = field(default_factory=list)
    errors: list[tuple[int, str]] = field(default_factory=list)  # (row number, message)

    @property
    def total(self) -> int:
        """Rows seen, successful or not."""
        return len(self.records) + len(self.errors)


def _parse_category(value: str, card_name: str | None) -> BonusCategory:
    if not value:
        return BonusCategory.CREDIT_CARD if card_name else BonusCategory.BANK
    try:
        return CATEGORY_ALIASES[_normalize(value)]
    except KeyError:
        raise ValueError(f"Unknown bonus category: {value!r}") from None


def _require_amount(value: str, name: str) -> Decimal:
    amount = parse_amount(value)
    if amount is None:
        raise ValueError(f"Invalid or missing {name}: {value!r}")
    return amount


def row_to_record(row: dict[str, str], now: datetime) -> BonusRecord:
    """
    Build a BonusRecord from one import row.

    Args:
        row: Mapping of BonusRecord field names to raw string values
        now: Creation time for the new record

    Returns:
        New record, in the row's status if one was given

    Raises:
        ValueError: If a required value is missing or malformed
    """
    institution = row.get("institution_name", "").strip()
    if not institution:
        raise ValueError("Missing institution name")

    fields: dict[str, Any] = {}
    for name in _TEXT_FIELDS:
        value = row.get(name, "").strip()
        if value:
            fields[name] = value

    for name in _AMOUNT_FIELDS:
        value = row.get(name, "")
        if value.strip():
            fields[name] = _require_amount(value, name)

    for name in _DATE_FIELDS:
        value = row.get(name, "")
        if value.strip():
            parsed = parse_date(value)
            if parsed is None:
                raise ValueError(f"Invalid {name}: {value!r}")
            fields[name] = parsed

    if row.get("id", "").strip():
        fields["id"] = row["id"].strip()
    fields["is_taxable"] = parse_bool(row.get("is_taxable", ""), default=True)
    fields["form_1099_received"] = parse_bool(row.get("form_1099_received", ""))

    category = _parse_category(row.get("category", ""), fields.get("card_name"))
    received_date = fields.pop("received_date", None)

    record = BonusRecord.create(
        category,
        institution,
        _require_amount(row.get("bonus_amount", ""), "bonus_amount"),
        now,
        **fields,
    )

    status = BonusStatus.parse(row.get("status", "").strip() or BonusStatus.PENDING)
    if status is not BonusStatus.PENDING:
        record = override_status(record, status, received_date or now)
    elif parse_bool(row.get("requirements_met", "")):
        record = dataclasses.replace(record, requirements_met=True)
    return record


def _json_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_rows(content: str, filepath: Path) -> list[dict[str, str]]:
    """Split file content into rows keyed by BonusRecord field name."""
    if filepath.suffix.lower() == ".json":
        payload = json.loads(content)
        if isinstance(payload, dict):
            payload = payload.get("bonuses", [])
        if not isinstance(payload, list):
            raise ValueError("JSON import must be a list of bonuses")
        raw_rows = []
        for number, item in enumerate(payload, start=1):
            if not isinstance(item, dict):
                raise ValueError(f"JSON entry {number} is not an object")
            raw_rows.append({str(k): _json_value(v) for k, v in item.items()})
    else:
        raw_rows = list(csv.DictReader(StringIO(content)))

    rows: list[dict[str, str]] = []
    for raw in raw_rows:
        row: dict[str, str] = {}
        for key, value in raw.items():
            name = HEADER_ALIASES.get(_normalize(key or ""))
            if name and value is not None:
                row[name] = value
        rows.append(row)
    return rows


def load_bonus_file(filepath: Path, now: datetime) -> ImportResult:
    """
    Read bonuses from a CSV, JSON or .xls file.

    Malformed rows are reported in ``ImportResult.errors`` and skipped.

    Raises:
        ValueError: If the file itself cannot be read
    """
    content = read_file(filepath)
    try:
        rows = parse_rows(content, filepath)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {filepath}: {e}") from e

    result = ImportResult()
    for number, row in enumerate(rows, start=1):
        try:
            result.records.append(row_to_record(row, now))
        except ValueError as e:
            result.errors.append((number, str(e)))
    return result
