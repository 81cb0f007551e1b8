from decimal import Decimal

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case is accepted on input too."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


CENT = Decimal("0.01")


def check_cents(v: Decimal | None, field: str = "amount"):
    if v is None:
        return None
    if not v.is_finite():
        raise ValueError(f"{field} must be finite")
    # money columns are Numeric(14, 2)
    if v != v.quantize(CENT):
        raise ValueError(f"{field} must have at most 2 decimal places")
    return v
