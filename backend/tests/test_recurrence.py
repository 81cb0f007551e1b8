from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from restoledger.core.errors import IntegrityViolation
from restoledger.models.bank_account import BankAccount
from restoledger.models.transaction import FinancialTransaction
from restoledger.services import recurrence
from restoledger.services.accounts import create_account
from restoledger.services.recurrence import (
    MAX_STEPS_PER_TEMPLATE,
    next_occurrence,
    project_dates,
    sync_recurring,
)
from restoledger.services.transactions import create_transaction


@pytest.mark.parametrize(
    "d,freq,anchor,expected",
    [
        (date(2024, 1, 15), "WEEKLY", None, date(2024, 1, 22)),
        (date(2024, 12, 28), "WEEKLY", None, date(2025, 1, 4)),
        (date(2024, 1, 15), "MONTHLY", None, date(2024, 2, 15)),
        (date(2024, 12, 10), "MONTHLY", None, date(2025, 1, 10)),
        (date(2024, 1, 31), "MONTHLY", None, date(2024, 2, 29)),
        (date(2023, 1, 31), "MONTHLY", None, date(2023, 2, 28)),
        (date(2024, 2, 29), "MONTHLY", 31, date(2024, 3, 31)),
        (date(2024, 2, 29), "YEARLY", None, date(2025, 2, 28)),
        (date(2025, 2, 28), "YEARLY", 29, date(2026, 2, 28)),
        (date(2027, 2, 28), "YEARLY", 29, date(2028, 2, 29)),
        (date(2024, 1, 15), "DAILY", None, None),
        (date(2024, 1, 15), None, None, None),
    ],
)
def test_next_occurrence(d, freq, anchor, expected):
    assert next_occurrence(d, freq, anchor) == expected


def test_project_monthly_single_step_inside_window():
    assert project_dates(date(2024, 1, 15), "MONTHLY", date(2024, 1, 20)) == [date(2024, 2, 15)]


def test_project_stops_at_end_date():
    assert project_dates(date(2024, 1, 15), "MONTHLY", date(2024, 1, 20), end_date=date(2024, 2, 1)) == []


def test_project_end_date_is_inclusive():
    out = project_dates(date(2024, 1, 15), "MONTHLY", date(2024, 1, 20), end_date=date(2024, 2, 15))
    assert out == [date(2024, 2, 15)]


def test_project_month_end_keeps_anchor_day():
    out = project_dates(date(2024, 1, 31), "MONTHLY", date(2024, 3, 1), anchor_day=31)
    assert out == [date(2024, 2, 29), date(2024, 3, 31)]


def test_project_weekly_fills_window():
    out = project_dates(date(2024, 1, 1), "WEEKLY", date(2024, 1, 1))
    assert out == [date(2024, 1, 1) + timedelta(weeks=k) for k in range(1, 7)]
    assert out[-1] <= date(2024, 1, 1) + timedelta(days=recurrence.PROJECTION_WINDOW_DAYS)


def test_project_unknown_frequency_yields_nothing():
    assert project_dates(date(2024, 1, 1), "FORTNIGHTLY", date(2024, 1, 1)) == []


def test_project_caps_steps_for_stale_templates():
    out = project_dates(date(2020, 1, 1), "WEEKLY", date(2024, 1, 1))
    assert len(out) == MAX_STEPS_PER_TEMPLATE
    assert out[0] == date(2020, 1, 8)
    assert out == sorted(set(out))


def test_project_nothing_when_last_date_beyond_window():
    assert project_dates(date(2024, 6, 1), "MONTHLY", date(2024, 1, 1)) == []


def _template(session, rid, **kw):
    data = {
        "description": "Aluguel",
        "amount": Decimal("1500.00"),
        "type": "EXPENSE",
        "due_date": date(2026, 3, 1),
        "is_recurring": True,
        "recurrence_frequency": "MONTHLY",
    }
    data.update(kw)
    return create_transaction(session, rid, data)


def _children(session, template_id):
    session.expire_all()
    return session.execute(
        select(FinancialTransaction)
        .where(FinancialTransaction.parent_transaction_id == template_id)
        .order_by(FinancialTransaction.due_date)
    ).scalars().all()


def test_sync_generates_pending_children_inheriting_template(session, restaurant):
    acc = create_account(session, restaurant.id, "Banco", "CHECKING")
    t = _template(session, restaurant.id, status="PAID", bank_account_id=acc.id, payment_method="boleto")

    out = sync_recurring(session, restaurant.id, today=date(2026, 3, 10))

    assert out["generated_count"] == 1
    assert out["failed_template_ids"] == []
    [child] = _children(session, t.id)
    assert child.due_date == date(2026, 4, 1)
    assert child.status == "PENDING"
    assert child.is_recurring is False
    assert child.description == "Aluguel"
    assert child.amount == Decimal("1500.00")
    assert child.type == "EXPENSE"
    assert child.bank_account_id == acc.id
    assert child.restaurant_id == restaurant.id
    assert child.payment_date is None
    # only the paid template moved the balance
    assert session.get(BankAccount, acc.id).balance == Decimal("-1500.00")


def test_sync_is_idempotent_within_window(session, restaurant):
    t = _template(session, restaurant.id)

    first = sync_recurring(session, restaurant.id, today=date(2026, 3, 10))
    second = sync_recurring(session, restaurant.id, today=date(2026, 3, 10))

    assert first["generated_count"] == 1
    assert second["generated_count"] == 0
    assert len(_children(session, t.id)) == 1


def test_sync_continues_from_latest_child(session, restaurant):
    t = _template(session, restaurant.id, due_date=date(2026, 1, 31))

    sync_recurring(session, restaurant.id, today=date(2026, 1, 31))
    later = sync_recurring(session, restaurant.id, today=date(2026, 4, 20))

    assert [c.due_date for c in _children(session, t.id)] == [
        date(2026, 2, 28),
        date(2026, 3, 31),
        date(2026, 4, 30),
        date(2026, 5, 31),
    ]
    assert later["generated_count"] == 3


def test_sync_skips_expired_and_non_recurring(session, restaurant, other_restaurant):
    expired = _template(session, restaurant.id, recurrence_end_date=date(2026, 3, 5))
    plain = create_transaction(
        session,
        restaurant.id,
        {"description": "Avulso", "amount": Decimal("10"), "type": "INCOME", "due_date": date(2026, 3, 1)},
    )
    foreign = _template(session, other_restaurant.id)

    out = sync_recurring(session, restaurant.id, today=date(2026, 3, 10))

    assert out["generated_count"] == 0
    assert _children(session, expired.id) == []
    assert _children(session, plain.id) == []
    assert _children(session, foreign.id) == []


def test_generated_children_are_not_templates(session, restaurant):
    _template(session, restaurant.id, recurrence_frequency="WEEKLY")

    first = sync_recurring(session, restaurant.id, today=date(2026, 3, 1))
    second = sync_recurring(session, restaurant.id, today=date(2026, 3, 1))

    assert first["generated_count"] == 6
    assert second["generated_count"] == 0


def test_sync_failure_is_isolated_per_template(session, restaurant, monkeypatch):
    bad = _template(session, restaurant.id, description="Quebrado", due_date=date(2026, 3, 2))
    good = _template(session, restaurant.id, description="Luz", due_date=date(2026, 3, 5))

    real = recurrence.project_dates

    def flaky(last_date, *args, **kwargs):
        if last_date == date(2026, 3, 2):
            raise IntegrityViolation()
        return real(last_date, *args, **kwargs)

    monkeypatch.setattr(recurrence, "project_dates", flaky)

    out = sync_recurring(session, restaurant.id, today=date(2026, 3, 10))

    assert out["failed_template_ids"] == [bad.id]
    assert out["generated_count"] == 1
    assert _children(session, bad.id) == []
    assert [c.due_date for c in _children(session, good.id)] == [date(2026, 4, 5)]
