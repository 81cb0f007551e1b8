from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from restoledger.core.errors import ValidationError
from restoledger.db.unit import atomic
from restoledger.models.transaction import FinancialTransaction
from restoledger.services.accounts import adjust_balance, require_account, to_money
from restoledger.utils.timezone import today_local

log = logging.getLogger(__name__)

TRANSFER_OUT_PREFIX = "TRANSFER OUT"
TRANSFER_IN_PREFIX = "TRANSFER IN"
TRANSFER_PAYMENT_METHOD = "transfer"


def create_transfer(
    s: Session,
    restaurant_id: int,
    from_account_id: int | None,
    to_account_id: int | None,
    amount,
    transfer_date: date | None = None,
    description: str | None = None,
) -> tuple[FinancialTransaction, FinancialTransaction]:
    if not from_account_id:
        raise ValidationError("fromAccountId is required")
    if not to_account_id:
        raise ValidationError("toAccountId is required")
    if amount is None:
        raise ValidationError("amount is required")
    amt = to_money(amount)
    if amt <= 0:
        raise ValidationError("amount must be positive")
    if from_account_id == to_account_id:
        raise ValidationError("fromAccountId and toAccountId must differ")

    day = transfer_date or today_local()
    label = description or "Transfer"

    with atomic(s, "tx.transfer", restaurant_id=restaurant_id, from_account_id=from_account_id, to_account_id=to_account_id):
        require_account(s, restaurant_id, from_account_id)
        require_account(s, restaurant_id, to_account_id)

        debit = FinancialTransaction(
            restaurant_id=restaurant_id,
            description=f"{TRANSFER_OUT_PREFIX}: {label}",
            amount=amt,
            type="EXPENSE",
            status="PAID",
            due_date=day,
            payment_date=day,
            bank_account_id=from_account_id,
            payment_method=TRANSFER_PAYMENT_METHOD,
            is_recurring=False,
        )
        s.add(debit)
        s.flush()

        credit = FinancialTransaction(
            restaurant_id=restaurant_id,
            description=f"{TRANSFER_IN_PREFIX}: {label}",
            amount=amt,
            type="INCOME",
            status="PAID",
            due_date=day,
            payment_date=day,
            bank_account_id=to_account_id,
            payment_method=TRANSFER_PAYMENT_METHOD,
            is_recurring=False,
            related_transaction_id=debit.id,
        )
        s.add(credit)
        s.flush()

        debit.related_transaction_id = credit.id
        s.flush()

        adjust_balance(s, from_account_id, -amt)
        adjust_balance(s, to_account_id, amt)

    s.refresh(debit)
    s.refresh(credit)
    log.info(
        "transfer restaurant=%s from=%s to=%s amount=%s debit=%s credit=%s",
        restaurant_id,
        from_account_id,
        to_account_id,
        amt,
        debit.id,
        credit.id,
    )
    return debit, credit
