from datetime import date
from decimal import Decimal
from random import Random

import pytest
from sqlalchemy import select

from restoledger.core.errors import NotFoundError, ValidationError
from restoledger.models.bank_account import BankAccount
from restoledger.models.category import TransactionCategory
from restoledger.models.transaction import FinancialTransaction
from restoledger.services.accounts import create_account
from restoledger.services.transactions import (
    create_transaction,
    delete_transaction,
    list_transactions,
    update_transaction,
)


def _balance(session, account_id: int) -> Decimal:
    session.expire_all()
    return session.get(BankAccount, account_id).balance


def _tx(**kw) -> dict:
    data = {
        "description": "Fornecedor de carnes",
        "amount": Decimal("50.00"),
        "type": "INCOME",
        "due_date": date(2026, 3, 10),
    }
    data.update(kw)
    return data


def test_create_defaults_to_pending_without_balance_effect(session, restaurant):
    acc = create_account(session, restaurant.id, "Caixa")

    t = create_transaction(session, restaurant.id, _tx(bank_account_id=acc.id))

    assert t.status == "PENDING"
    assert t.is_recurring is False
    assert _balance(session, acc.id) == Decimal("0.00")


def test_create_paid_applies_signed_effect(session, restaurant):
    acc = create_account(session, restaurant.id, "Caixa")

    create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=acc.id, amount=Decimal("80.00")))
    create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=acc.id, type="EXPENSE", amount=Decimal("30.25")))

    assert _balance(session, acc.id) == Decimal("49.75")


def test_create_paid_without_account_is_plain_record(session, restaurant):
    t = create_transaction(session, restaurant.id, _tx(status="PAID"))
    assert t.bank_account_id is None
    assert t.status == "PAID"


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_create_rejects_non_positive_amount(session, restaurant, amount):
    with pytest.raises(ValidationError):
        create_transaction(session, restaurant.id, _tx(amount=amount))
    assert session.execute(select(FinancialTransaction)).scalars().all() == []


def test_create_rejects_unknown_type(session, restaurant):
    with pytest.raises(ValidationError):
        create_transaction(session, restaurant.id, _tx(type="REFUND"))


def test_create_recurring_requires_frequency(session, restaurant):
    with pytest.raises(ValidationError):
        create_transaction(session, restaurant.id, _tx(is_recurring=True))


def test_create_with_foreign_account_is_rejected(session, restaurant, other_restaurant):
    foreign = create_account(session, other_restaurant.id, "Caixa alheio")

    with pytest.raises(NotFoundError):
        create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=foreign.id))

    assert _balance(session, foreign.id) == Decimal("0.00")
    assert session.execute(select(FinancialTransaction)).scalars().all() == []


def test_status_round_trip_never_double_counts(session, restaurant):
    acc = create_account(session, restaurant.id, "X")
    t = create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=acc.id))
    assert _balance(session, acc.id) == Decimal("50.00")

    update_transaction(session, restaurant.id, t.id, {"status": "CANCELED"})
    assert _balance(session, acc.id) == Decimal("0.00")

    update_transaction(session, restaurant.id, t.id, {"status": "PAID"})
    assert _balance(session, acc.id) == Decimal("50.00")

    # re-saving a paid record leaves the balance alone
    update_transaction(session, restaurant.id, t.id, {"description": "Renamed"})
    assert _balance(session, acc.id) == Decimal("50.00")

    update_transaction(session, restaurant.id, t.id, {"status": "PENDING"})
    assert _balance(session, acc.id) == Decimal("0.00")


def test_update_amount_and_type_while_paid(session, restaurant):
    acc = create_account(session, restaurant.id, "X")
    t = create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=acc.id))

    update_transaction(session, restaurant.id, t.id, {"amount": Decimal("120.00"), "type": "EXPENSE"})

    assert _balance(session, acc.id) == Decimal("-120.00")


def test_update_moves_effect_between_accounts(session, restaurant):
    a = create_account(session, restaurant.id, "A")
    b = create_account(session, restaurant.id, "B")
    t = create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=a.id))

    update_transaction(session, restaurant.id, t.id, {"bank_account_id": b.id})
    assert _balance(session, a.id) == Decimal("0.00")
    assert _balance(session, b.id) == Decimal("50.00")

    update_transaction(session, restaurant.id, t.id, {"bank_account_id": None})
    assert _balance(session, b.id) == Decimal("0.00")


def test_update_paying_pending_applies_effect(session, restaurant):
    acc = create_account(session, restaurant.id, "X")
    t = create_transaction(session, restaurant.id, _tx(type="EXPENSE"))

    update_transaction(
        session,
        restaurant.id,
        t.id,
        {"status": "PAID", "bank_account_id": acc.id, "payment_date": date(2026, 3, 11), "payment_method": "pix"},
    )

    assert _balance(session, acc.id) == Decimal("-50.00")
    session.expire_all()
    t = session.get(FinancialTransaction, t.id)
    assert t.payment_date == date(2026, 3, 11)
    assert t.payment_method == "pix"


def test_update_missing_transaction(session, restaurant):
    with pytest.raises(NotFoundError):
        update_transaction(session, restaurant.id, 424242, {"status": "PAID"})


def test_failed_update_rolls_back_reversal(session, restaurant):
    acc = create_account(session, restaurant.id, "X")
    t = create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=acc.id))

    # the reversal runs before the bad amount is detected
    with pytest.raises(ValidationError):
        update_transaction(session, restaurant.id, t.id, {"amount": Decimal("-1")})
    with pytest.raises(NotFoundError):
        update_transaction(session, restaurant.id, t.id, {"category_id": 9999})

    assert _balance(session, acc.id) == Decimal("50.00")
    session.expire_all()
    assert session.get(FinancialTransaction, t.id).amount == Decimal("50.00")


def test_update_rejects_null_for_required_fields(session, restaurant):
    t = create_transaction(session, restaurant.id, _tx())
    with pytest.raises(ValidationError):
        update_transaction(session, restaurant.id, t.id, {"amount": None})


def test_other_restaurant_cannot_touch_transaction(session, restaurant, other_restaurant):
    t = create_transaction(session, restaurant.id, _tx())
    with pytest.raises(NotFoundError):
        update_transaction(session, other_restaurant.id, t.id, {"status": "PAID"})
    with pytest.raises(NotFoundError):
        delete_transaction(session, other_restaurant.id, t.id)


def test_delete_paid_reverses_balance(session, restaurant):
    acc = create_account(session, restaurant.id, "X")
    t = create_transaction(session, restaurant.id, _tx(status="PAID", type="EXPENSE", bank_account_id=acc.id))
    assert _balance(session, acc.id) == Decimal("-50.00")

    delete_transaction(session, restaurant.id, t.id)

    assert _balance(session, acc.id) == Decimal("0.00")
    assert session.get(FinancialTransaction, t.id) is None


def test_delete_pending_leaves_balance(session, restaurant):
    acc = create_account(session, restaurant.id, "X", opening_balance=Decimal("10.00"))
    t = create_transaction(session, restaurant.id, _tx(bank_account_id=acc.id))

    delete_transaction(session, restaurant.id, t.id)

    assert _balance(session, acc.id) == Decimal("10.00")


def test_delete_missing_transaction(session, restaurant):
    with pytest.raises(NotFoundError):
        delete_transaction(session, restaurant.id, 31337)


def test_list_filters_and_summary(session, restaurant, other_restaurant):
    create_transaction(session, restaurant.id, _tx(description="a", due_date=date(2026, 1, 31), amount=Decimal("10")))
    create_transaction(session, restaurant.id, _tx(description="b", due_date=date(2026, 2, 1), amount=Decimal("20"), status="PAID"))
    create_transaction(session, restaurant.id, _tx(description="c", due_date=date(2026, 2, 15), amount=Decimal("5"), type="EXPENSE"))
    create_transaction(session, restaurant.id, _tx(description="d", due_date=date(2026, 2, 28), amount=Decimal("7.50"), type="EXPENSE", status="PAID"))
    create_transaction(session, restaurant.id, _tx(description="e", due_date=date(2026, 3, 1), amount=Decimal("99")))
    create_transaction(session, other_restaurant.id, _tx(description="foreign", due_date=date(2026, 2, 10)))

    txs, summary = list_transactions(session, restaurant.id, date(2026, 2, 1), date(2026, 2, 28))
    assert [t.description for t in txs] == ["b", "c", "d"]
    assert summary == {"total_income": Decimal("20.00"), "total_expense": Decimal("12.50")}

    txs, summary = list_transactions(session, restaurant.id, status="PAID")
    assert [t.description for t in txs] == ["b", "d"]

    txs, summary = list_transactions(session, restaurant.id, tx_type="EXPENSE")
    assert [t.description for t in txs] == ["c", "d"]
    assert summary["total_income"] == Decimal("0")

    txs, _ = list_transactions(session, restaurant.id)
    assert [t.due_date for t in txs] == sorted(t.due_date for t in txs)
    assert len(txs) == 5


def test_category_link_must_belong_to_restaurant(session, restaurant, other_restaurant):
    cat = TransactionCategory(restaurant_id=other_restaurant.id, name="Insumos", type="EXPENSE")
    session.add(cat)
    session.commit()

    with pytest.raises(NotFoundError):
        create_transaction(session, restaurant.id, _tx(category_id=cat.id))


def _expected_balance(session, account_id: int) -> Decimal:
    rows = session.execute(
        select(FinancialTransaction).where(
            FinancialTransaction.bank_account_id == account_id,
            FinancialTransaction.status == "PAID",
        )
    ).scalars().all()
    total = Decimal("0")
    for t in rows:
        total += t.amount if t.type == "INCOME" else -t.amount
    return total


def test_randomized_operations_reconcile_with_paid_rows(session, restaurant):
    rnd = Random(20260119)
    accounts = [create_account(session, restaurant.id, f"Conta {i}").id for i in range(3)]
    live: list[int] = []

    for _ in range(150):
        op = rnd.choice(["create", "create", "update", "update", "delete"])
        if op == "create" or not live:
            t = create_transaction(
                session,
                restaurant.id,
                _tx(
                    amount=Decimal(rnd.randint(1, 50000)) / 100,
                    type=rnd.choice(["INCOME", "EXPENSE"]),
                    status=rnd.choice(["PENDING", "PAID", "CANCELED"]),
                    bank_account_id=rnd.choice(accounts + [None]),
                ),
            )
            live.append(t.id)
        elif op == "update":
            tx_id = rnd.choice(live)
            changes = {}
            if rnd.random() < 0.6:
                changes["status"] = rnd.choice(["PENDING", "PAID", "CANCELED"])
            if rnd.random() < 0.4:
                changes["amount"] = Decimal(rnd.randint(1, 50000)) / 100
            if rnd.random() < 0.3:
                changes["bank_account_id"] = rnd.choice(accounts + [None])
            if rnd.random() < 0.2:
                changes["type"] = rnd.choice(["INCOME", "EXPENSE"])
            update_transaction(session, restaurant.id, tx_id, changes)
        else:
            tx_id = live.pop(rnd.randrange(len(live)))
            delete_transaction(session, restaurant.id, tx_id)

    session.expire_all()
    for account_id in accounts:
        assert _balance(session, account_id) == _expected_balance(session, account_id)


@pytest.mark.parametrize("amount", [Decimal("0.004"), Decimal("10.001"), "abc", Decimal("NaN")])
def test_create_rejects_amounts_the_ledger_cannot_store(session, restaurant, amount):
    acc = create_account(session, restaurant.id, "Caixa")

    with pytest.raises(ValidationError):
        create_transaction(session, restaurant.id, _tx(amount=amount, status="PAID", bank_account_id=acc.id))

    assert _balance(session, acc.id) == Decimal("0.00")
    assert session.execute(select(FinancialTransaction)).scalars().all() == []


def test_sub_cent_amounts_never_unbalance_the_account(session, restaurant):
    acc = create_account(session, restaurant.id, "Caixa")
    for _ in range(5):
        with pytest.raises(ValidationError):
            create_transaction(session, restaurant.id, _tx(amount=Decimal("0.004"), status="PAID", bank_account_id=acc.id))

    t = create_transaction(session, restaurant.id, _tx(amount=Decimal("0.01"), status="PAID", bank_account_id=acc.id))
    with pytest.raises(ValidationError):
        update_transaction(session, restaurant.id, t.id, {"amount": Decimal("0.015")})

    assert _balance(session, acc.id) == Decimal("0.01")
    assert _balance(session, acc.id) == _expected_balance(session, acc.id)


def test_unparseable_amount_on_update_keeps_paid_effect(session, restaurant):
    acc = create_account(session, restaurant.id, "X")
    t = create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=acc.id))

    with pytest.raises(ValidationError):
        update_transaction(session, restaurant.id, t.id, {"amount": "abc"})

    assert not session.in_transaction()
    assert _balance(session, acc.id) == Decimal("50.00")


def test_unexpected_error_mid_update_rolls_back_reversal(session, restaurant, monkeypatch):
    from restoledger.core.errors import IntegrityViolation
    from restoledger.services import transactions

    acc = create_account(session, restaurant.id, "X")
    t = create_transaction(session, restaurant.id, _tx(status="PAID", bank_account_id=acc.id))

    def boom(_t):
        raise RuntimeError("validator crashed")

    # runs after the old effect has been reversed
    monkeypatch.setattr(transactions, "_validate", boom)

    with pytest.raises(IntegrityViolation):
        update_transaction(session, restaurant.id, t.id, {"status": "CANCELED"})

    assert not session.in_transaction()
    assert _balance(session, acc.id) == Decimal("50.00")
    session.expire_all()
    assert session.get(FinancialTransaction, t.id).status == "PAID"
