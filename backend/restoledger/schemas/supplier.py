import re
from datetime import datetime

from pydantic import field_validator

from restoledger.schemas.common import CamelModel

_EMAIL_RE = re.compile(r"^[\w\.+-]+@[\w\.-]+\.\w+$")


class SupplierIn(CamelModel):
    name: str | None = None
    cnpj: str | None = None
    email: str | None = None
    phone: str | None = None
    contact_name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None

    @field_validator("name", "cnpj", "phone", "contact_name", "address", "city", "state")
    @classmethod
    def blank_to_none(cls, v: str | None):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str | None):
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not _EMAIL_RE.match(v):
            raise ValueError("invalid email format")
        return v

    def changes(self) -> dict:
        return {k: getattr(self, k) for k in self.model_fields_set}


class SupplierOut(CamelModel):
    id: int
    name: str
    cnpj: str | None
    email: str | None
    phone: str | None
    contact_name: str | None
    address: str | None
    city: str | None
    state: str | None
    created_at: datetime | None = None
