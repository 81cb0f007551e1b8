from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import field_validator

from restoledger.schemas.common import CamelModel, check_cents

AccountType = Literal["CASH", "CHECKING", "SAVINGS", "CARD"]


class BankAccountCreate(CamelModel):
    name: str
    type: AccountType = "CASH"
    balance: Decimal = Decimal("0")

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("balance")
    @classmethod
    def balance_cents(cls, v: Decimal):
        return check_cents(v, "balance")


class BankAccountUpdate(CamelModel):
    name: str | None = None
    type: AccountType | None = None

    @field_validator("name")
    @classmethod
    def name_trim(cls, v: str | None):
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class BankAccountOut(CamelModel):
    id: int
    name: str
    type: AccountType
    balance: float
    transaction_count: int = 0
    created_at: datetime | None = None
