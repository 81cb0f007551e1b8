from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time
from decimal import Decimal

import xlsxwriter
from sqlalchemy import select, func, and_
from sqlalchemy.orm import Session

from restoledger.models.bank_account import BankAccount
from restoledger.models.category import TransactionCategory
from restoledger.models.restaurant import Restaurant
from restoledger.models.transaction import FinancialTransaction

UNCATEGORIZED = "Uncategorized"
DATE_BASIS_NOTE = "Dated by payment date, or due date when not paid"


def _effective_day():
    # cash moves on the payment date; unpaid rows fall back to the due date
    return func.coalesce(FinancialTransaction.payment_date, FinancialTransaction.due_date)


def cash_flow_rows(s: Session, restaurant_id: int, start: date, end: date):
    """Every row whose cash day falls in the range, same basis as the summary."""
    return s.execute(
        select(FinancialTransaction, TransactionCategory.name, BankAccount.name)
        .outerjoin(TransactionCategory, TransactionCategory.id == FinancialTransaction.category_id)
        .outerjoin(BankAccount, BankAccount.id == FinancialTransaction.bank_account_id)
        .where(
            FinancialTransaction.restaurant_id == restaurant_id,
            _effective_day() >= start,
            _effective_day() <= end,
        )
        .order_by(_effective_day().asc(), FinancialTransaction.id.asc())
    ).all()


def summarize_cash_flow(s: Session, restaurant_id: int, start: date, end: date) -> dict:
    """Paid income and expense for the period, broken down by category.

    Transfer legs are excluded: they move money between the restaurant's
    own accounts and would inflate both sides.
    """
    rows = s.execute(
        select(FinancialTransaction.type, TransactionCategory.name, FinancialTransaction.amount)
        .outerjoin(TransactionCategory, TransactionCategory.id == FinancialTransaction.category_id)
        .where(
            and_(
                FinancialTransaction.restaurant_id == restaurant_id,
                FinancialTransaction.status == "PAID",
                FinancialTransaction.related_transaction_id.is_(None),
                _effective_day() >= start,
                _effective_day() <= end,
            )
        )
    ).all()

    income: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    expense: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for tx_type, cat_name, amount in rows:
        bucket = income if tx_type == "INCOME" else expense
        bucket[cat_name or UNCATEGORIZED] += Decimal(str(amount))

    total_income = sum(income.values(), Decimal("0"))
    total_expense = sum(expense.values(), Decimal("0"))
    return {
        "income_by_category": dict(sorted(income.items())),
        "expense_by_category": dict(sorted(expense.items())),
        "total_income": total_income,
        "total_expense": total_expense,
        "net": total_income - total_expense,
    }


def build_cash_flow_report(s: Session, restaurant_id: int, start: date, end: date, out_file) -> None:
    restaurant = s.execute(select(Restaurant).where(Restaurant.id == restaurant_id)).scalar_one()
    rows = cash_flow_rows(s, restaurant_id, start, end)
    summary_data = summarize_cash_flow(s, restaurant_id, start, end)

    wb = xlsxwriter.Workbook(out_file, {"in_memory": True})
    base_font = "Calibri"

    meta_label = wb.add_format({"bold": True, "font_name": base_font, "font_size": 11, "font_color": "#334155"})
    meta_value = wb.add_format({"font_name": base_font, "font_size": 11, "font_color": "#0f172a"})
    subtle = wb.add_format({"font_name": base_font, "font_size": 10, "font_color": "#64748b"})
    title = wb.add_format({"bold": True, "font_name": base_font, "font_size": 14, "font_color": "#0f172a"})
    header = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F1F5F9",
            "border": 1,
            "align": "center",
            "valign": "vcenter",
        }
    )
    date_fmt = wb.add_format({"font_name": base_font, "font_size": 11, "num_format": "yyyy-mm-dd", "border": 1})
    money2 = wb.add_format(
        {"font_name": base_font, "font_size": 11, "num_format": "#,##0.00", "border": 1, "align": "right"}
    )
    text_cell = wb.add_format({"font_name": base_font, "font_size": 11, "border": 1, "align": "left"})
    total_label = wb.add_format(
        {"bold": True, "font_name": base_font, "font_size": 11, "bg_color": "#F8FAFC", "border": 1, "align": "left"}
    )
    total_money2 = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F8FAFC",
            "border": 1,
            "num_format": "#,##0.00",
            "align": "right",
        }
    )

    # ----------------------------
    # Sheet 1: Transactions
    # ----------------------------
    ws = wb.add_worksheet("Transactions")
    ws.set_column(0, 1, 12)  # Due / Paid
    ws.set_column(2, 2, 36)  # Description
    ws.set_column(3, 4, 20)  # Category / Account
    ws.set_column(5, 6, 10)  # Type / Status
    ws.set_column(7, 7, 16)  # Amount

    ws.write(0, 0, "Restaurant", meta_label)
    ws.write(0, 2, restaurant.name, meta_value)
    ws.write(1, 0, "Range", meta_label)
    ws.write(1, 2, f"{start} to {end}", subtle)
    ws.write(1, 4, "Generated", meta_label)
    ws.write(1, 5, datetime.now().strftime("%Y-%m-%d %H:%M"), subtle)
    ws.write(2, 0, DATE_BASIS_NOTE, subtle)

    headers = ["Due", "Paid", "Description", "Category", "Account", "Type", "Status", "Amount"]
    ws.set_row(3, 18)
    for c, h in enumerate(headers):
        ws.write(3, c, h, header)
    ws.freeze_panes(4, 0)

    r = 4
    for t, cat_name, account_name in rows:
        ws.write_datetime(r, 0, datetime.combine(t.due_date, time.min), date_fmt)
        if t.payment_date is not None:
            ws.write_datetime(r, 1, datetime.combine(t.payment_date, time.min), date_fmt)
        else:
            ws.write_blank(r, 1, None, text_cell)
        ws.write(r, 2, t.description, text_cell)
        ws.write(r, 3, cat_name or "", text_cell)
        ws.write(r, 4, account_name or "", text_cell)
        ws.write(r, 5, t.type, text_cell)
        ws.write(r, 6, t.status, text_cell)
        # expenses negative so the column sums to the net movement
        amt = float(t.amount) if t.type == "INCOME" else -float(t.amount)
        ws.write_number(r, 7, amt, money2)
        r += 1

    last_data_row = r - 1
    if last_data_row >= 4:
        ws.autofilter(3, 0, last_data_row, 7)
        ws.write(r, 0, "Net", total_label)
        ws.write_formula(r, 7, f"=SUM(H5:H{last_data_row + 1})", total_money2)
        ws.set_landscape()
        ws.fit_to_pages(1, 0)

    # ----------------------------
    # Sheet 2: Summary (paid only, by category)
    # ----------------------------
    summary = wb.add_worksheet("Summary")
    summary.set_column(0, 0, 32)
    summary.set_column(1, 1, 18)
    summary.write(0, 0, "Cash Flow Summary", title)
    summary.write(2, 0, "Restaurant", meta_label)
    summary.write(2, 1, restaurant.name, meta_value)
    summary.write(3, 0, "Range", meta_label)
    summary.write(3, 1, f"{start} to {end}", subtle)
    summary.write(4, 0, DATE_BASIS_NOTE, subtle)

    r = 5
    for label, bucket, total in (
        ("Income", summary_data["income_by_category"], summary_data["total_income"]),
        ("Expenses", summary_data["expense_by_category"], summary_data["total_expense"]),
    ):
        summary.write(r, 0, label, header)
        summary.write(r, 1, "Amount", header)
        r += 1
        for name, value in bucket.items():
            summary.write(r, 0, name, text_cell)
            summary.write_number(r, 1, float(value), money2)
            r += 1
        summary.write(r, 0, f"Total {label.lower()}", total_label)
        summary.write_number(r, 1, float(total), total_money2)
        r += 2

    summary.write(r, 0, "Net result", total_label)
    summary.write_number(r, 1, float(summary_data["net"]), total_money2)

    wb.close()
