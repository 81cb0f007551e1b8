"""Materializes upcoming instances of recurring templates.

A template is a top-level transaction with ``is_recurring`` set. Each call
projects forward from the latest generated instance (or the template's own
due date) up to ``today + PROJECTION_WINDOW_DAYS``, taking at most
``MAX_STEPS_PER_TEMPLATE`` steps per template. Callers re-run it on their own
cadence; the window moves forward with ``today``.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta

from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from restoledger.core.errors import ConstraintError, IntegrityViolation, NotFoundError
from restoledger.db.unit import atomic
from restoledger.models.transaction import FinancialTransaction
from restoledger.utils.timezone import today_local

log = logging.getLogger(__name__)

PROJECTION_WINDOW_DAYS = 45
MAX_STEPS_PER_TEMPLATE = 12

FREQUENCIES = ("WEEKLY", "MONTHLY", "YEARLY")


def _resolve_dom(target_day: int, y: int, m: int) -> int:
    return min(target_day, calendar.monthrange(y, m)[1])


def next_occurrence(d: date, frequency: str | None, anchor_day: int | None = None) -> date | None:
    """One step of ``frequency`` after ``d``; None for an unknown frequency.

    Month and year steps aim at ``anchor_day`` (default: ``d.day``) and clamp
    it to the length of the target month.
    """
    target = anchor_day or d.day
    if frequency == "WEEKLY":
        return d + timedelta(days=7)
    if frequency == "MONTHLY":
        y, m = d.year, d.month + 1
        if m > 12:
            y, m = y + 1, 1
        return date(y, m, _resolve_dom(target, y, m))
    if frequency == "YEARLY":
        y = d.year + 1
        return date(y, d.month, _resolve_dom(target, y, d.month))
    return None


def project_dates(
    last_date: date,
    frequency: str | None,
    today: date,
    end_date: date | None = None,
    anchor_day: int | None = None,
    window_days: int = PROJECTION_WINDOW_DAYS,
    max_steps: int = MAX_STEPS_PER_TEMPLATE,
) -> list[date]:
    limit = today + timedelta(days=window_days)
    out: list[date] = []
    cursor = last_date
    steps = 0
    while cursor < limit and steps < max_steps:
        nxt = next_occurrence(cursor, frequency, anchor_day)
        if nxt is None:
            break
        cursor = nxt
        if end_date is not None and cursor > end_date:
            break
        if cursor > limit:
            break
        if cursor > last_date:
            out.append(cursor)
            last_date = cursor
        steps += 1
    return out


def _active_templates(restaurant_id: int, today: date):
    return (
        select(FinancialTransaction)
        .where(
            FinancialTransaction.restaurant_id == restaurant_id,
            FinancialTransaction.is_recurring.is_(True),
            FinancialTransaction.parent_transaction_id.is_(None),
            or_(
                FinancialTransaction.recurrence_end_date.is_(None),
                FinancialTransaction.recurrence_end_date >= today,
            ),
        )
    )


def _project_template(s: Session, restaurant_id: int, template_id: int, today: date) -> list[FinancialTransaction]:
    with atomic(s, "tx.sync_recurring", restaurant_id=restaurant_id, template_id=template_id):
        # re-read under lock so two projection runs cannot both insert the same step
        t = s.execute(
            _active_templates(restaurant_id, today)
            .where(FinancialTransaction.id == template_id)
            .with_for_update()
        ).scalar_one_or_none()
        if t is None:
            return []

        last_child = s.execute(
            select(func.max(FinancialTransaction.due_date)).where(
                FinancialTransaction.parent_transaction_id == template_id
            )
        ).scalar_one()
        last_date = last_child or t.due_date

        dates = project_dates(
            last_date,
            t.recurrence_frequency,
            today,
            end_date=t.recurrence_end_date,
            anchor_day=t.due_date.day,
        )
        if t.recurrence_frequency not in FREQUENCIES:
            log.warning("template %s has unknown frequency %r", template_id, t.recurrence_frequency)

        children = [
            FinancialTransaction(
                restaurant_id=t.restaurant_id,
                description=t.description,
                amount=t.amount,
                type=t.type,
                status="PENDING",
                due_date=d,
                category_id=t.category_id,
                supplier_id=t.supplier_id,
                bank_account_id=t.bank_account_id,
                is_recurring=False,
                parent_transaction_id=t.id,
            )
            for d in dates
        ]
        s.add_all(children)
        s.flush()

    return children


def sync_recurring(s: Session, restaurant_id: int, today: date | None = None) -> dict:
    today = today or today_local()
    template_ids = s.execute(
        _active_templates(restaurant_id, today)
        .with_only_columns(FinancialTransaction.id)
        .order_by(FinancialTransaction.id.asc())
    ).scalars().all()

    generated: list[FinancialTransaction] = []
    failed: list[int] = []
    for template_id in template_ids:
        try:
            generated.extend(_project_template(s, restaurant_id, template_id, today))
        except (ConstraintError, IntegrityViolation, NotFoundError):
            # already rolled back and logged by atomic(); other templates are independent
            failed.append(template_id)

    log.info(
        "recurring sync restaurant=%s templates=%s generated=%s failed=%s",
        restaurant_id,
        len(template_ids),
        len(generated),
        failed,
    )
    return {"generated": generated, "generated_count": len(generated), "failed_template_ids": failed}
