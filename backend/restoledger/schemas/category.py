from datetime import datetime
from typing import Literal

from pydantic import field_validator

from restoledger.schemas.common import CamelModel

CategoryType = Literal["INCOME", "EXPENSE"]


class CategoryCreate(CamelModel):
    name: str
    type: CategoryType

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class CategoryUpdate(CamelModel):
    name: str | None = None
    type: CategoryType | None = None


class CategoryOut(CamelModel):
    id: int
    name: str
    type: CategoryType
    created_at: datetime | None = None
