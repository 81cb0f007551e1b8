from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from restoledger.core.errors import NotFoundError, ValidationError
from restoledger.db.unit import atomic
from restoledger.models.bank_account import BankAccount
from restoledger.models.category import TransactionCategory
from restoledger.models.supplier import Supplier
from restoledger.models.transaction import FinancialTransaction
from restoledger.models.user import User
from restoledger.services.accounts import adjust_balance, signed_effect, to_money

log = logging.getLogger(__name__)

TX_TYPES = ("INCOME", "EXPENSE")
TX_STATUSES = ("PENDING", "PAID", "CANCELED")

_REQUIRED = ("description", "amount", "type", "due_date", "status", "is_recurring")

_LINKS = {
    "category_id": (TransactionCategory, "category_not_found"),
    "supplier_id": (Supplier, "supplier_not_found"),
    "bank_account_id": (BankAccount, "bank_account_not_found"),
    "recipient_user_id": (User, "recipient_user_not_found"),
}

_WRITABLE = (
    "description",
    "amount",
    "type",
    "status",
    "due_date",
    "payment_date",
    "payment_method",
    "category_id",
    "supplier_id",
    "bank_account_id",
    "order_id",
    "recipient_user_id",
    "is_recurring",
    "recurrence_frequency",
    "recurrence_end_date",
)


def _check_links(s: Session, restaurant_id: int, data: dict) -> None:
    for field, (model, detail) in _LINKS.items():
        ref_id = data.get(field)
        if ref_id is None:
            continue
        found = s.execute(
            select(model.id).where(model.id == ref_id, model.restaurant_id == restaurant_id)
        ).scalar_one_or_none()
        if found is None:
            raise NotFoundError(detail)


def _validate(t: FinancialTransaction) -> None:
    if t.type not in TX_TYPES:
        raise ValidationError("type must be INCOME or EXPENSE")
    if t.status not in TX_STATUSES:
        raise ValidationError("status must be PENDING, PAID or CANCELED")
    if t.amount is None:
        raise ValidationError("amount is required")
    t.amount = to_money(t.amount)
    if t.amount <= 0:
        raise ValidationError("amount must be positive")
    if t.is_recurring and not t.recurrence_frequency:
        raise ValidationError("recurrence_frequency is required for recurring transactions")


def _applies_to_balance(t: FinancialTransaction) -> bool:
    return t.status == "PAID" and t.bank_account_id is not None


def require_transaction(s: Session, restaurant_id: int, tx_id: int, *, lock: bool = False) -> FinancialTransaction:
    q = select(FinancialTransaction).where(
        FinancialTransaction.id == tx_id,
        FinancialTransaction.restaurant_id == restaurant_id,
    )
    if lock:
        q = q.with_for_update()
    t = s.execute(q).scalar_one_or_none()
    if t is None:
        raise NotFoundError("transaction_not_found")
    return t


def create_transaction(s: Session, restaurant_id: int, data: dict) -> FinancialTransaction:
    values = {k: data[k] for k in _WRITABLE if k in data}
    values.setdefault("status", "PENDING")
    values["is_recurring"] = bool(values.get("is_recurring"))

    with atomic(s, "tx.create", restaurant_id=restaurant_id):
        _check_links(s, restaurant_id, values)
        t = FinancialTransaction(restaurant_id=restaurant_id, **values)
        _validate(t)
        s.add(t)
        s.flush()
        if _applies_to_balance(t):
            adjust_balance(s, t.bank_account_id, signed_effect(t.type, t.amount))

    s.refresh(t)
    log.info("transaction created restaurant=%s tx=%s status=%s", restaurant_id, t.id, t.status)
    return t


def update_transaction(s: Session, restaurant_id: int, tx_id: int, changes: dict) -> FinancialTransaction:
    changes = {k: v for k, v in changes.items() if k in _WRITABLE}
    for k in _REQUIRED:
        if k in changes and changes[k] is None:
            raise ValidationError(f"{k} cannot be null")

    with atomic(s, "tx.update", restaurant_id=restaurant_id, tx_id=tx_id):
        t = require_transaction(s, restaurant_id, tx_id, lock=True)
        _check_links(s, restaurant_id, changes)

        if _applies_to_balance(t):
            adjust_balance(s, t.bank_account_id, -signed_effect(t.type, t.amount))

        for k, v in changes.items():
            setattr(t, k, v)
        _validate(t)
        s.flush()

        if _applies_to_balance(t):
            adjust_balance(s, t.bank_account_id, signed_effect(t.type, t.amount))

    s.refresh(t)
    log.info("transaction updated restaurant=%s tx=%s status=%s", restaurant_id, t.id, t.status)
    return t


def delete_transaction(s: Session, restaurant_id: int, tx_id: int) -> dict:
    with atomic(s, "tx.delete", restaurant_id=restaurant_id, tx_id=tx_id):
        t = require_transaction(s, restaurant_id, tx_id, lock=True)
        snapshot = {
            "description": t.description,
            "amount": str(t.amount),
            "type": t.type,
            "status": t.status,
            "bank_account_id": t.bank_account_id,
        }

        if _applies_to_balance(t):
            adjust_balance(s, t.bank_account_id, -signed_effect(t.type, t.amount))

        # the other transfer leg and generated instances outlive this row
        s.execute(
            update(FinancialTransaction)
            .where(FinancialTransaction.related_transaction_id == tx_id)
            .values(related_transaction_id=None)
        )
        s.execute(
            update(FinancialTransaction)
            .where(FinancialTransaction.parent_transaction_id == tx_id)
            .values(parent_transaction_id=None)
        )
        s.delete(t)

    log.info("transaction deleted restaurant=%s tx=%s", restaurant_id, tx_id)
    return snapshot


def list_transactions(
    s: Session,
    restaurant_id: int,
    start=None,
    end=None,
    status: str | None = None,
    tx_type: str | None = None,
):
    q = select(FinancialTransaction).where(FinancialTransaction.restaurant_id == restaurant_id)
    if start is not None:
        q = q.where(FinancialTransaction.due_date >= start)
    if end is not None:
        q = q.where(FinancialTransaction.due_date <= end)
    if status:
        q = q.where(FinancialTransaction.status == status)
    if tx_type:
        q = q.where(FinancialTransaction.type == tx_type)
    q = q.order_by(FinancialTransaction.due_date.asc(), FinancialTransaction.id.asc())
    txs = s.execute(q).scalars().all()

    total_income = Decimal("0")
    total_expense = Decimal("0")
    for t in txs:
        if t.type == "INCOME":
            total_income += Decimal(str(t.amount))
        elif t.type == "EXPENSE":
            total_expense += Decimal(str(t.amount))

    return txs, {"total_income": total_income, "total_expense": total_expense}
