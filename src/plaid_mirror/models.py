"""Domain models for linked items, transactions and reconciliation plans.

Transactions arrive from two places that share one shape: the Plaid feed
("source") and the Airtable mirror ("mirror"). Both are represented by
``TransactionRecord``; only the mirror copy carries a ``record_id``.
"""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATE_FORMAT = "%Y-%m-%d"
CATEGORY_LEVELS = 3


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        str_strip_whitespace=True,
        from_attributes=True,
        populate_by_name=True,
    )


class TokenPair(BaseModel):
    """Durable credentials for one linked institution."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    access_token: str


class TransactionRecord(BaseSchema):
    """One transaction, keyed by ``(account_id, remote_id)``."""

    record_id: str | None = Field(
        default=None, description="Storage identity assigned by the mirror"
    )
    remote_id: str = Field(..., description="Plaid transaction ID")
    account_id: str = Field(..., description="Plaid account ID")
    amount: float = 0.0
    name: str = ""
    merchant_name: str = ""
    pending: bool = False
    date: str = Field(..., description="Transaction date as YYYY-MM-DD")
    category_1: str = ""
    category_2: str = ""
    category_3: str = ""
    address: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        """Accept ``datetime.date`` from the Plaid SDK and store it as text."""
        if isinstance(v, date):
            return v.isoformat()
        return v

    @property
    def key(self) -> tuple[str, str]:
        return (self.account_id, self.remote_id)

    def mutable_fields(self) -> tuple[bool, str]:
        """Fields that may change after a transaction is first recorded."""
        return (self.pending, self.address)

    def with_record_id(self, record_id: str | None) -> "TransactionRecord":
        return self.model_copy(update={"record_id": record_id})

    @classmethod
    def from_plaid(cls, tx: Any) -> "TransactionRecord":
        """Build a source record from a Plaid SDK transaction (or a dict)."""
        get = _getter(tx)

        categories = [str(c) for c in (get("category") or [])][:CATEGORY_LEVELS]
        categories += [""] * (CATEGORY_LEVELS - len(categories))

        return cls(
            remote_id=get("transaction_id"),
            account_id=get("account_id"),
            amount=float(get("amount") or 0.0),
            name=get("name") or "",
            merchant_name=get("merchant_name") or "",
            pending=bool(get("pending")),
            date=get("date"),
            category_1=categories[0],
            category_2=categories[1],
            category_3=categories[2],
            address=format_address(get("location")),
        )


class AccountRecord(BaseSchema):
    """One account row in the mirror's accounts table."""

    record_id: str | None = None
    account_id: str
    name: str = ""

    @classmethod
    def from_plaid(cls, account: Any) -> "AccountRecord":
        """Build an account record, preferring the official account name."""
        get = _getter(account)
        return cls(
            account_id=get("account_id"),
            name=get("official_name") or get("name") or "",
        )


class PlanAction(Enum):
    """Write operations a reconciliation plan can schedule."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ReconciliationPlan(BaseModel):
    """Records to create, update and delete to bring the mirror in sync."""

    to_create: list[TransactionRecord] = Field(default_factory=list)
    to_update: list[TransactionRecord] = Field(default_factory=list)
    to_delete: list[TransactionRecord] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_delete)

    def merge(self, other: "ReconciliationPlan") -> "ReconciliationPlan":
        return ReconciliationPlan(
            to_create=self.to_create + other.to_create,
            to_update=self.to_update + other.to_update,
            to_delete=self.to_delete + other.to_delete,
        )

    def summary(self) -> dict[PlanAction, int]:
        return {
            PlanAction.CREATE: len(self.to_create),
            PlanAction.UPDATE: len(self.to_update),
            PlanAction.DELETE: len(self.to_delete),
        }


def format_address(location: Any) -> str:
    """Flatten a Plaid location block into a single address line."""
    if location is None:
        return ""
    get = _getter(location)
    parts = [
        get("address"),
        get("city"),
        get("region"),
        get("postal_code"),
        get("country"),
    ]
    return ", ".join(str(p) for p in parts if p)


def _getter(obj: Any) -> Any:
    # Plaid SDK models raise on unset optional attributes; getattr's default
    # covers that, and tests pass plain dicts.
    if isinstance(obj, dict):
        return obj.get
    return lambda name: getattr(obj, name, None)
