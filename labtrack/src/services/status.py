"""
Status and fine derivation for borrowing transactions.

Everything here is pure: no I/O and no clock. Callers pass the evaluation
time and the timezone whose calendar days decide what "due today" and
"overdue" mean, so the same inputs always produce the same answer.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Any, Iterable, List, Sequence, Union

from pydantic import ValidationError

from labtrack.src.schema.transactions import BorrowedItem, TransactionStatusEnum
from labtrack.src.services.exceptions import InvalidTransactionDataError


@dataclass(frozen=True)
class DerivedState:
    status: TransactionStatusEnum
    fine_amount: Decimal


def local_date(value: datetime, tz: tzinfo = timezone.utc) -> date:
    """Calendar date of ``value`` in ``tz``; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).date()


def days_overdue(due_date: datetime, now: datetime, tz: tzinfo = timezone.utc) -> int:
    """Whole calendar days past the due date, 0 when not yet overdue."""
    return max((local_date(now, tz) - local_date(due_date, tz)).days, 0)


def derive_status(
    items: Sequence[BorrowedItem],
    due_date: datetime,
    current_status: Union[TransactionStatusEnum, str],
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> TransactionStatusEnum:
    """Status a transaction should have at ``now``.

    A Request stays a Request until someone approves it. Otherwise return
    completeness decides the family (Complete, Incomplete, or untouched) and
    the due date decides the variant (plain, Ondue, Overdue). Complete has no
    Ondue variant. An empty item list counts as fully returned.
    """
    if TransactionStatusEnum(current_status) == TransactionStatusEnum.REQUEST:
        return TransactionStatusEnum.REQUEST

    today = local_date(now, tz)
    due_day = local_date(due_date, tz)
    is_overdue = today > due_day
    is_ondue = today == due_day

    all_returned = all(
        item.returned and item.returned_quantity == item.quantity for item in items
    )
    any_returned = any(item.returned_quantity > 0 for item in items)

    if all_returned:
        if is_overdue:
            return TransactionStatusEnum.COMPLETE_OVERDUE
        return TransactionStatusEnum.COMPLETE

    if any_returned:
        if is_overdue:
            return TransactionStatusEnum.INCOMPLETE_OVERDUE
        if is_ondue:
            return TransactionStatusEnum.INCOMPLETE_ONDUE
        return TransactionStatusEnum.INCOMPLETE

    if is_overdue:
        return TransactionStatusEnum.OVERDUE
    if is_ondue:
        return TransactionStatusEnum.ONDUE
    return TransactionStatusEnum.ONGOING


def calculate_fine(
    due_date: datetime,
    now: datetime,
    fine_per_day: Union[Decimal, int, str] = Decimal("10"),
    tz: tzinfo = timezone.utc,
) -> Decimal:
    """Fine owed at ``now``: one ``fine_per_day`` for every calendar day late.

    A partial day past the due date counts as a full day. The result is a
    level, not an increment, so recomputing on the same day is harmless.
    """
    return Decimal(days_overdue(due_date, now, tz)) * Decimal(str(fine_per_day))


def parse_items(transaction_id: str, raw_items: Iterable[Any]) -> List[BorrowedItem]:
    if raw_items is None:
        raise InvalidTransactionDataError(transaction_id, "items are missing")
    try:
        return [
            item if isinstance(item, BorrowedItem) else BorrowedItem.model_validate(item)
            for item in raw_items
        ]
    except (ValidationError, TypeError) as e:
        raise InvalidTransactionDataError(transaction_id, f"malformed items: {e}") from e


def derive_state(
    transaction,
    now: datetime,
    fine_per_day: Union[Decimal, int, str] = Decimal("10"),
    tz: tzinfo = timezone.utc,
) -> DerivedState:
    """Derive status and fine for a stored transaction.

    Raises InvalidTransactionDataError when the document cannot be evaluated.
    """
    try:
        current_status = TransactionStatusEnum(transaction.status)
    except ValueError as e:
        raise InvalidTransactionDataError(
            transaction.id, f"unknown status {transaction.status!r}"
        ) from e

    stored_fine = transaction.fine_amount or Decimal("0")
    if current_status == TransactionStatusEnum.REQUEST:
        return DerivedState(TransactionStatusEnum.REQUEST, stored_fine)

    if not isinstance(transaction.due_date, datetime):
        raise InvalidTransactionDataError(transaction.id, "due date is missing or malformed")

    items = parse_items(transaction.id, transaction.items)
    status = derive_status(items, transaction.due_date, current_status, now, tz)
    fine = calculate_fine(transaction.due_date, now, fine_per_day, tz)
    return DerivedState(status, fine)
