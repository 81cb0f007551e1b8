"""Bank accounts and the single place their balance is mutated.

``adjust_balance`` never commits: it runs inside the caller's unit of work so
the balance moves together with the ledger rows that justify it.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import select, func, update
from sqlalchemy.orm import Session

from restoledger.core.errors import ConflictError, NotFoundError, ValidationError
from restoledger.models.bank_account import BankAccount
from restoledger.models.transaction import FinancialTransaction

log = logging.getLogger(__name__)


CENT = Decimal("0.01")


def _to_dec(v) -> Decimal:
    return Decimal(str(v))


def to_money(v, field: str = "amount") -> Decimal:
    """Parse a money value; more than two decimal places is rejected, never rounded."""
    try:
        amt = _to_dec(v)
        cents = amt.quantize(CENT)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if amt != cents:
        raise ValidationError(f"{field} must have at most 2 decimal places")
    return cents


def signed_effect(tx_type: str, amount) -> Decimal:
    amt = _to_dec(amount)
    return amt if tx_type == "INCOME" else -amt


def adjust_balance(s: Session, account_id: int, delta: Decimal) -> None:
    delta = _to_dec(delta)
    res = s.execute(
        update(BankAccount)
        .where(BankAccount.id == account_id)
        .values(balance=BankAccount.balance + delta)
    )
    if res.rowcount == 0:
        raise NotFoundError("bank_account_not_found")
    log.debug("balance account=%s delta=%s", account_id, delta)


def require_account(s: Session, restaurant_id: int, account_id: int) -> BankAccount:
    acc = s.execute(
        select(BankAccount).where(BankAccount.id == account_id, BankAccount.restaurant_id == restaurant_id)
    ).scalar_one_or_none()
    if acc is None:
        raise NotFoundError("bank_account_not_found")
    return acc


def list_accounts(s: Session, restaurant_id: int) -> list[dict]:
    counts = (
        select(FinancialTransaction.bank_account_id, func.count(FinancialTransaction.id).label("n"))
        .where(FinancialTransaction.restaurant_id == restaurant_id)
        .group_by(FinancialTransaction.bank_account_id)
        .subquery()
    )
    rows = s.execute(
        select(BankAccount, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.bank_account_id == BankAccount.id)
        .where(BankAccount.restaurant_id == restaurant_id)
        .order_by(BankAccount.name.asc(), BankAccount.id.asc())
    ).all()
    return [account_out(acc, int(n)) for acc, n in rows]


def account_out(acc: BankAccount, transaction_count: int = 0) -> dict:
    return {
        "id": acc.id,
        "name": acc.name,
        "type": acc.type,
        "balance": float(acc.balance),
        "transaction_count": transaction_count,
        "created_at": acc.created_at,
    }


def create_account(s: Session, restaurant_id: int, name: str, account_type: str = "CASH", opening_balance=0) -> BankAccount:
    acc = BankAccount(
        restaurant_id=restaurant_id,
        name=name,
        type=account_type or "CASH",
        balance=to_money(opening_balance or 0, "balance"),
    )
    s.add(acc)
    s.commit()
    s.refresh(acc)
    log.info("bank account created restaurant=%s account=%s", restaurant_id, acc.id)
    return acc


def update_account(s: Session, restaurant_id: int, account_id: int, name: str | None = None, account_type: str | None = None) -> BankAccount:
    acc = require_account(s, restaurant_id, account_id)
    if name is not None:
        acc.name = name
    if account_type is not None:
        acc.type = account_type
    s.add(acc)
    s.commit()
    s.refresh(acc)
    log.info("bank account updated restaurant=%s account=%s", restaurant_id, account_id)
    return acc


def delete_account(s: Session, restaurant_id: int, account_id: int) -> BankAccount:
    acc = require_account(s, restaurant_id, account_id)
    refs = s.execute(
        select(func.count(FinancialTransaction.id)).where(FinancialTransaction.bank_account_id == account_id)
    ).scalar_one()
    if refs:
        raise ConflictError("bank_account_has_transactions")
    s.delete(acc)
    s.commit()
    log.info("bank account deleted restaurant=%s account=%s", restaurant_id, account_id)
    return acc
