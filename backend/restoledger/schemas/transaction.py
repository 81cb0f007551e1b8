from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field, field_validator

from restoledger.schemas.common import CamelModel, check_cents

TxType = Literal["INCOME", "EXPENSE"]
TxStatus = Literal["PENDING", "PAID", "CANCELED"]
Frequency = Literal["WEEKLY", "MONTHLY", "YEARLY"]


def _positive_amount(v: Decimal | None):
    if v is None:
        return None
    check_cents(v)
    if v <= 0:
        raise ValueError("amount must be positive")
    return v


def _trim(v: str | None):
    if v is None:
        return None
    v = v.strip()
    return v or None


class TxCreate(CamelModel):
    description: str
    amount: Decimal
    type: TxType
    due_date: date
    status: TxStatus = "PENDING"
    payment_method: str | None = None
    payment_date: date | None = None
    category_id: int | None = None
    supplier_id: int | None = None
    bank_account_id: int | None = None
    order_id: int | None = None
    recipient_user_id: int | None = None
    is_recurring: bool = False
    recurrence_frequency: Frequency | None = None
    recurrence_end_date: date | None = None

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: Decimal):
        if v is None:
            raise ValueError("amount is required")
        return _positive_amount(v)

    @field_validator("description")
    @classmethod
    def description_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("description is required")
        return v

    @field_validator("payment_method")
    @classmethod
    def payment_method_trim(cls, v: str | None):
        return _trim(v)


class TxUpdate(CamelModel):
    """Partial update: only fields present in the request body are applied."""

    description: str | None = None
    amount: Decimal | None = None
    type: TxType | None = None
    due_date: date | None = None
    status: TxStatus | None = None
    payment_method: str | None = None
    payment_date: date | None = None
    category_id: int | None = None
    supplier_id: int | None = None
    bank_account_id: int | None = None
    order_id: int | None = None
    recipient_user_id: int | None = None
    is_recurring: bool | None = None
    recurrence_frequency: Frequency | None = None
    recurrence_end_date: date | None = None

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: Decimal | None):
        return _positive_amount(v)

    @field_validator("description")
    @classmethod
    def description_trim(cls, v: str | None):
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("description cannot be empty")
        return v

    @field_validator("payment_method")
    @classmethod
    def payment_method_trim(cls, v: str | None):
        return _trim(v)

    def changes(self) -> dict:
        return {k: getattr(self, k) for k in self.model_fields_set}


class TxOut(CamelModel):
    id: int
    restaurant_id: int
    description: str
    amount: float
    type: TxType
    status: TxStatus
    due_date: date
    payment_date: date | None
    payment_method: str | None
    category_id: int | None
    supplier_id: int | None
    bank_account_id: int | None
    order_id: int | None
    recipient_user_id: int | None
    is_recurring: bool
    recurrence_frequency: Frequency | None
    recurrence_end_date: date | None
    parent_transaction_id: int | None
    related_transaction_id: int | None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TxSummary(CamelModel):
    total_income: float
    total_expense: float


class TxListOut(CamelModel):
    transactions: list[TxOut]
    summary: TxSummary


class TransferIn(CamelModel):
    from_account_id: int | None = None
    to_account_id: int | None = None
    amount: Decimal | None = None
    transfer_date: date | None = Field(default=None, alias="date")
    description: str | None = None

    @field_validator("description")
    @classmethod
    def description_trim(cls, v: str | None):
        return _trim(v)

    @field_validator("amount")
    @classmethod
    def amount_cents(cls, v: Decimal | None):
        return check_cents(v)


class TransferOut(CamelModel):
    success: bool = True
    debit_id: int
    credit_id: int


class SyncRecurringOut(CamelModel):
    generated_count: int
    generated: list[TxOut]
    failed_template_ids: list[int] = []
