"""Client for the finance dashboard REST API.

The dashboard exposes bank and credit card bonuses as two collections,
``/api/bank-bonuses`` and ``/api/credit-card-bonuses``, with camelCase JSON
bodies. This client maps them onto ``BonusRecord`` and implements the same
repository operations as the local SQLite store.
"""

import dataclasses
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import requests

from bonustrack.errors import BonusNotFoundError, ConflictError
from bonustrack.models import BonusCategory, BonusRecord, BonusStatus
from bonustrack.storage import check_editable

ENDPOINTS = {
    BonusCategory.BANK: "bank-bonuses",
    BonusCategory.CREDIT_CARD: "credit-card-bonuses",
}

DEFAULT_BONUS_TYPE = "signup"

# BonusRecord field -> API field, per category
_COMMON_FIELDS = {
    "institution_name": "bankName",
    "bonus_type": "bonusType",
    "bonus_amount": "bonusAmount",
    "requirements_met": "requirementsMet",
    "received_date": "bonusReceivedDate",
    "is_taxable": "isTaxable",
    "taxable_amount": "taxableAmount",
    "notes": "notes",
    "status": "status",
}
API_FIELDS = {
    BonusCategory.BANK: {
        **_COMMON_FIELDS,
        "deadline": "requirementsDeadline",
        "form_1099_received": "form1099Received",
    },
    BonusCategory.CREDIT_CARD: {
        **_COMMON_FIELDS,
        "card_name": "cardName",
        "bonus_value_amount": "bonusValue",
        "deadline": "spendDeadline",
        "spend_requirement": "spendRequirement",
        "current_spend": "currentSpend",
    },
}


def _parse_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid amount from dashboard: {value!r}") from None


def _parse_api_date(value: Any) -> date | None:
    """Parse '2024-03-01' or a full ISO timestamp down to a date."""
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _parse_api_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def record_from_api(payload: dict[str, Any], category: BonusCategory) -> BonusRecord:
    """Convert a dashboard API object to a BonusRecord."""
    mapping = API_FIELDS[category]

    def get(name: str) -> Any:
        return payload.get(mapping[name])

    fields: dict[str, Any] = {
        "id": str(payload["id"]),
        "category": category,
        "institution_name": get("institution_name") or "",
        "bonus_amount": _parse_decimal(get("bonus_amount")) or Decimal("0"),
        "status": get("status") or BonusStatus.PENDING,
        "requirements_met": bool(get("requirements_met")),
        "bonus_type": get("bonus_type"),
        "deadline": _parse_api_date(get("deadline")),
        "received_date": _parse_api_date(get("received_date")),
        "is_taxable": get("is_taxable") is not False,
        "taxable_amount": _parse_decimal(get("taxable_amount")),
        "notes": get("notes"),
        "created_at": _parse_api_datetime(payload.get("createdAt")),
    }
    if category is BonusCategory.BANK:
        fields["form_1099_received"] = bool(get("form_1099_received"))
    else:
        fields["card_name"] = get("card_name")
        fields["bonus_value_amount"] = _parse_decimal(get("bonus_value_amount"))
        fields["spend_requirement"] = _parse_decimal(get("spend_requirement"))
        fields["current_spend"] = _parse_decimal(get("current_spend"))
    return BonusRecord(**fields)


def _to_api_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, BonusStatus):
        return value.value
    return value


def fields_to_api(category: BonusCategory, fields: dict[str, Any]) -> dict[str, Any]:
    """Rename BonusRecord fields to API fields, dropping ones the API lacks."""
    mapping = API_FIELDS[category]
    return {
        mapping[name]: _to_api_value(value)
        for name, value in fields.items()
        if name in mapping
    }


def record_to_payload(record: BonusRecord) -> dict[str, Any]:
    """
    Convert a BonusRecord to a create payload for the dashboard API.

    The dashboard requires a bonus type on every bonus and a card name on
    credit card bonuses. A missing bonus type is sent as DEFAULT_BONUS_TYPE.

    Raises:
        ValueError: If a credit card bonus has no card name
    """
    if record.is_credit_card and not record.card_name:
        raise ValueError(f"Credit card bonus {record.id} needs a card name")

    values = {name: getattr(record, name) for name in API_FIELDS[record.category]}
    if not values["bonus_type"]:
        values["bonus_type"] = DEFAULT_BONUS_TYPE
    payload = fields_to_api(record.category, values)
    payload["id"] = record.id
    return payload


class DashboardClient:
    """Bonus repository backed by the dashboard REST API."""

    def __init__(self, base_url: str, api_token: str | None = None) -> None:
        """Initialize client with the dashboard URL and an optional bearer token."""
        self.base_url = base_url.rstrip("/")
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if api_token:
            self._session.headers["Authorization"] = f"Bearer {api_token}"

    def _request(
        self,
        method: str,
        endpoint: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API request."""
        url = f"{self.base_url}/api/{endpoint}"
        response = self._session.request(method, url, json=json)
        response.raise_for_status()
        if response.status_code == 204:
            return None
        return response.json()

    def _fetch(self, category: BonusCategory) -> list[BonusRecord]:
        items = self._request("GET", ENDPOINTS[category]) or []
        return [record_from_api(item, category) for item in items]

    def load_bonus_records(self, user_id: str) -> list[BonusRecord]:
        """Load all bonuses visible to the authenticated user.

        The API scopes results by its session, so user_id is not sent.
        """
        return self._fetch(BonusCategory.BANK) + self._fetch(BonusCategory.CREDIT_CARD)

    def get_bonus(self, bonus_id: str) -> BonusRecord | None:
        for category in ENDPOINTS:
            for record in self._fetch(category):
                if record.id == bonus_id:
                    return record
        return None

    def add_bonus(self, user_id: str, record: BonusRecord) -> BonusRecord:
        result = self._request("POST", ENDPOINTS[record.category], json=record_to_payload(record))
        return record_from_api(result, record.category)

    def _patch(self, record: BonusRecord, payload: dict[str, Any]) -> BonusRecord:
        endpoint = f"{ENDPOINTS[record.category]}/{record.id}"
        try:
            result = self._request("PATCH", endpoint, json=payload)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                raise BonusNotFoundError(record.id) from e
            raise
        return record_from_api(result, record.category)

    def update_bonus(self, bonus_id: str, **fields: Any) -> BonusRecord:
        """Edit non-status fields of a bonus."""
        check_editable(fields)
        current = self.get_bonus(bonus_id)
        if current is None:
            raise BonusNotFoundError(bonus_id)
        updated = dataclasses.replace(current, **fields)
        changed = {name: getattr(updated, name) for name in fields}
        return self._patch(current, fields_to_api(current.category, changed))

    def save_bonus_status(
        self,
        bonus_id: str,
        expected_status: BonusStatus,
        new_status: BonusStatus,
        fields: dict[str, Any],
    ) -> BonusRecord:
        """
        Change the status if the dashboard still reports the expected one.

        The API has no conditional update, so this re-reads the bonus right
        before patching it.

        Raises:
            ConflictError: The dashboard reports a different status
            BonusNotFoundError: The bonus no longer exists
        """
        current = self.get_bonus(bonus_id)
        if current is None:
            raise BonusNotFoundError(bonus_id)
        if current.status is not BonusStatus.parse(expected_status):
            raise ConflictError(bonus_id, str(expected_status), str(current.status))

        payload = fields_to_api(current.category, {"status": new_status, **fields})
        received_date = fields.get("received_date")
        payload["taxYear"] = received_date.year if received_date else None
        return self._patch(current, payload)

    def delete_bonus(self, bonus_id: str) -> bool:
        current = self.get_bonus(bonus_id)
        if current is None:
            return False
        self._request("DELETE", f"{ENDPOINTS[current.category]}/{current.id}")
        return True
