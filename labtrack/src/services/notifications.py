"""
Outbound message rendering for the maintenance notices.

Each builder returns an unsaved ``Notification`` row; the sweep decides when it
is enqueued.
"""

from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from html import escape
from typing import List

from labtrack.src.models.notifications import Notification
from labtrack.src.models.transactions import Transaction
from labtrack.src.schema.transactions import BorrowedItem, NotificationTypeEnum
from labtrack.src.services.status import days_overdue, local_date, parse_items

REQUIRED_CONTACT_FIELDS = ("borrower_id", "borrower_name", "borrower_email")

FOOTER = "This is an automated message from eLabTrack System. Please do not reply to this email."


def missing_contact_fields(transaction: Transaction) -> List[str]:
    return [name for name in REQUIRED_CONTACT_FIELDS if not getattr(transaction, name, None)]


def format_due_date(due_date: datetime, tz: tzinfo = timezone.utc) -> str:
    day = local_date(due_date, tz)
    return f"{day.strftime('%B')} {day.day}, {day.year}"


def format_amount(amount: Decimal, currency_symbol: str) -> str:
    return f"{currency_symbol}{Decimal(amount):.2f}"


def _text_item_list(items: List[BorrowedItem]) -> str:
    return "\n".join(f"- {item.item_name} (Qty: {item.quantity})" for item in items)


def _html_item_list(items: List[BorrowedItem]) -> str:
    rows = "".join(
        f"<li>{escape(item.item_name)} (Qty: {item.quantity})</li>" for item in items
    )
    return f"<ul>{rows}</ul>"


def _notification(
    transaction: Transaction,
    notification_type: NotificationTypeEnum,
    subject: str,
    text: str,
    html: str,
    now: datetime,
) -> Notification:
    return Notification(
        to=transaction.borrower_email,
        subject=subject,
        text=text,
        html=html,
        type=notification_type.value,
        transaction_id=transaction.id,
        user_id=transaction.borrower_id,
        created_at=now,
    )


def build_ondue_notice(
    transaction: Transaction,
    now: datetime,
    fine_per_day: Decimal,
    currency_symbol: str = "₱",
    tz: tzinfo = timezone.utc,
) -> Notification:
    items = parse_items(transaction.id, transaction.items)
    due = format_due_date(transaction.due_date, tz)
    rate = format_amount(fine_per_day, currency_symbol)
    name = transaction.borrower_name

    text = f"""Hi {name},

Your borrowed equipment is due today:

{_text_item_list(items)}

Due Date: {due}
Transaction ID: {transaction.id}

Please return the equipment before the end of the day to avoid penalties ({rate}/day).

Thank you!"""

    html = f"""
    <html>
        <body>
            <h2>Equipment Due Today</h2>
            <p>Hi <strong>{escape(name)}</strong>,</p>
            <p>Your borrowed equipment is <strong>due today</strong>:</p>
            {_html_item_list(items)}
            <p><strong>Due Date:</strong> {due}</p>
            <p><strong>Transaction ID:</strong> {transaction.id}</p>
            <p>Please return the equipment before the end of the day to avoid penalties ({rate}/day).</p>
            <p>{FOOTER}</p>
        </body>
    </html>
    """
    return _notification(
        transaction,
        NotificationTypeEnum.ONDUE_NOTICE,
        "Equipment Due Today",
        text,
        html,
        now,
    )


def build_return_reminder(
    transaction: Transaction,
    now: datetime,
    fine_per_day: Decimal,
    currency_symbol: str = "₱",
    tz: tzinfo = timezone.utc,
) -> Notification:
    items = parse_items(transaction.id, transaction.items)
    due = format_due_date(transaction.due_date, tz)
    rate = format_amount(fine_per_day, currency_symbol)
    name = transaction.borrower_name

    text = f"""Hi {name},

This is a friendly reminder that your borrowed equipment is due tomorrow:

{_text_item_list(items)}

Due Date: {due}
Transaction ID: {transaction.id}

Please return the equipment on time to avoid penalties ({rate}/day).

Thank you!"""

    html = f"""
    <html>
        <body>
            <h2>Equipment Return Reminder</h2>
            <p>Hi <strong>{escape(name)}</strong>,</p>
            <p>This is a friendly reminder that your borrowed equipment is <strong>due tomorrow</strong>:</p>
            {_html_item_list(items)}
            <p><strong>Due Date:</strong> {due}</p>
            <p><strong>Transaction ID:</strong> {transaction.id}</p>
            <p>Please return the equipment on time to avoid penalties ({rate}/day).</p>
            <p>{FOOTER}</p>
        </body>
    </html>
    """
    return _notification(
        transaction,
        NotificationTypeEnum.RETURN_REMINDER,
        "Equipment Return Reminder - Due Tomorrow",
        text,
        html,
        now,
    )


def build_overdue_notice(
    transaction: Transaction,
    now: datetime,
    fine_per_day: Decimal,
    currency_symbol: str = "₱",
    tz: tzinfo = timezone.utc,
) -> Notification:
    items = parse_items(transaction.id, transaction.items)
    due = format_due_date(transaction.due_date, tz)
    rate = format_amount(fine_per_day, currency_symbol)
    fine = format_amount(transaction.fine_amount or Decimal("0"), currency_symbol)
    late = days_overdue(transaction.due_date, now, tz)
    late_label = f"{late} day{'s' if late != 1 else ''}"
    name = transaction.borrower_name

    text = f"""Hi {name},

Your borrowed equipment is now OVERDUE:

{_text_item_list(items)}

Due Date: {due}
Days Overdue: {late_label}
Current Fine: {fine}
Transaction ID: {transaction.id}

Please return the equipment immediately to avoid additional penalties.
Fines increase by {rate} per day until the equipment is returned.

Thank you for your cooperation."""

    html = f"""
    <html>
        <body>
            <h2>OVERDUE: Equipment Return Required</h2>
            <p>Hi <strong>{escape(name)}</strong>,</p>
            <p>Your borrowed equipment is now <strong>OVERDUE</strong>:</p>
            {_html_item_list(items)}
            <p><strong>Due Date:</strong> {due}</p>
            <p><strong>Days Overdue:</strong> {late_label}</p>
            <p><strong>Current Fine:</strong> {fine}</p>
            <p><strong>Transaction ID:</strong> {transaction.id}</p>
            <p>Please return the equipment immediately to avoid additional penalties.
            Fines increase by {rate} per day until the equipment is returned.</p>
            <p>{FOOTER}</p>
        </body>
    </html>
    """
    return _notification(
        transaction,
        NotificationTypeEnum.OVERDUE_NOTICE,
        "OVERDUE: Equipment Return Required",
        text,
        html,
        now,
    )


NOTICE_BUILDERS = {
    NotificationTypeEnum.ONDUE_NOTICE: build_ondue_notice,
    NotificationTypeEnum.RETURN_REMINDER: build_return_reminder,
    NotificationTypeEnum.OVERDUE_NOTICE: build_overdue_notice,
}
