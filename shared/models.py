"""Pydantic contracts shared across the API, services and repositories."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


Amount = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
ALL_CATEGORIES_SENTINEL = "All"
# Largest magnitude a JSON number carries without losing cents.
MAX_ABS_AMOUNT = Decimal("1e13")


class ServiceErrorCode(str, Enum):
    """Stable error codes returned by services and mapped to HTTP statuses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    BACKEND_ERROR = "BACKEND_ERROR"


class ServiceError(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: ServiceErrorCode
    message: str
    details: dict[str, object] | None = None


class TransactionCategory(str, Enum):
    """Closed set of categories a transaction can be filed under."""

    FOOD = "Food"
    TRANSPORT = "Transport"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    UTILITIES = "Utilities"
    HEALTH = "Health"
    OTHER = "Other"
    SALARY = "Salary"
    INVESTMENT = "Investment"
    INCOME = "Income"


def ensure_utc(value: datetime) -> datetime:
    """Return an aware datetime, reading naive values as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date_bound(value: object, *, field_name: str, end_of_day: bool = False) -> datetime | None:
    """Parse a date filter bound from an ISO date or datetime string.

    A bare `YYYY-MM-DD` value starts at midnight UTC, or covers the whole day
    when `end_of_day` is set.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.max if end_of_day else time.min, tzinfo=timezone.utc)

    raw = str(value).strip()
    if not raw:
        return None
    try:
        if len(raw) == 10:
            parsed_date = date.fromisoformat(raw)
            return datetime.combine(parsed_date, time.max if end_of_day else time.min, tzinfo=timezone.utc)
        return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError as exc:
        raise ValueError(
            f"Invalid {field_name} format. Expected YYYY-MM-DD or an ISO 8601 datetime"
        ) from exc


class Transaction(BaseModel):
    """A ledger entry as stored and returned to its owner."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    id: UUID
    user_id: UUID = Field(alias="user")
    title: str
    amount: Amount
    category: TransactionCategory
    date: datetime
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("date", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class TransactionCreateRequest(BaseModel):
    """Body accepted when adding a transaction."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(min_length=1)
    amount: Decimal = Field(allow_inf_nan=False, ge=-MAX_ABS_AMOUNT, le=MAX_ABS_AMOUNT)
    category: TransactionCategory
    date: datetime | None = None
    notes: str | None = None

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class TransactionUpdateRequest(BaseModel):
    """Partial body accepted when updating a transaction.

    Only fields present in the payload are applied; `notes` may be cleared
    with null, the other fields may not.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1)
    amount: Decimal | None = Field(
        default=None, allow_inf_nan=False, ge=-MAX_ABS_AMOUNT, le=MAX_ABS_AMOUNT
    )
    category: TransactionCategory | None = None
    date: datetime | None = None
    notes: str | None = None

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "TransactionUpdateRequest":
        nulled = sorted(
            name
            for name in ("title", "amount", "category", "date")
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)


class TransactionListQuery(BaseModel):
    """Query-string parameters of the transactions listing."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    search: str | None = None
    category: TransactionCategory | None = None
    start_date: datetime | None = Field(default=None, alias="startDate")
    end_date: datetime | None = Field(default=None, alias="endDate")

    @field_validator("search", mode="before")
    @classmethod
    def empty_search_is_absent(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("category", mode="before")
    @classmethod
    def all_category_is_absent(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() in {"", ALL_CATEGORIES_SENTINEL}:
            return None
        return value

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start_date(cls, value: object) -> datetime | None:
        return parse_date_bound(value, field_name="startDate")

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end_date(cls, value: object) -> datetime | None:
        return parse_date_bound(value, field_name="endDate", end_of_day=True)

    @model_validator(mode="after")
    def validate_date_order(self) -> "TransactionListQuery":
        if self.start_date is not None and self.end_date is not None and self.start_date > self.end_date:
            raise ValueError("startDate must be before or equal to endDate")
        return self


class TransactionFilters(BaseModel):
    """Store-level predicate; always scoped to a single owner."""

    model_config = ConfigDict(extra="forbid")

    user_id: UUID
    search: str | None = None
    category: TransactionCategory | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("search")
    @classmethod
    def drop_wildcard_characters(cls, value: str | None) -> str | None:
        """Remove `*`, which the Supabase store can only read as a wildcard."""
        if value is None:
            return None
        cleaned = value.replace("*", "").strip()
        return cleaned or None

    def matches(self, transaction: Transaction) -> bool:
        if transaction.user_id != self.user_id:
            return False
        if self.search and self.search.lower() not in transaction.title.lower():
            return False
        if self.category is not None and transaction.category != self.category:
            return False
        if self.start_date is not None and transaction.date < self.start_date:
            return False
        if self.end_date is not None and transaction.date > self.end_date:
            return False
        return True


class TransactionListResult(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    transactions: list[Transaction]
    total_pages: int
    current_page: int


class TransactionDeleteResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID


class SummaryTotals(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    total_income: Amount = Decimal("0")
    total_expense: Amount = Decimal("0")
    balance: Amount = Decimal("0")


class CategoryTotal(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    category: TransactionCategory = Field(alias="_id")
    total_amount: Amount


class TransactionSummaryResult(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    summary: SummaryTotals
    category_breakdown: list[CategoryTotal]
