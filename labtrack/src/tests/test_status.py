"""
Unit tests for status and fine derivation.
These are pure functions, so every case pins an explicit evaluation time.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from labtrack.src.schema.transactions import BorrowedItem, TransactionStatusEnum as Status
from labtrack.src.services.exceptions import InvalidTransactionDataError
from labtrack.src.services.status import (
    calculate_fine,
    days_overdue,
    derive_state,
    derive_status,
    parse_items,
)
from labtrack.src.tests.utils import make_item, utc

DUE = utc(2024, 3, 10)


def items(*specs):
    """(quantity, returned_quantity) pairs -> BorrowedItem list"""
    return [BorrowedItem.model_validate(make_item(q, r)) for q, r in specs]


class TestDeriveStatus:
    def test_same_day_without_returns_is_ondue(self):
        status = derive_status(items((1, 0)), DUE, Status.ONGOING, utc(2024, 3, 10, 0, 0, 0))
        assert status == Status.ONDUE

    def test_two_days_late_without_returns_is_overdue(self):
        status = derive_status(items((1, 0)), DUE, Status.ONGOING, utc(2024, 3, 12, 0, 0, 1))
        assert status == Status.OVERDUE

    def test_before_due_date_is_ongoing(self):
        status = derive_status(items((1, 0)), DUE, Status.OVERDUE, utc(2024, 3, 9, 23, 59, 59))
        assert status == Status.ONGOING

    def test_partial_return_past_due_is_incomplete_and_overdue(self):
        lines = items((2, 2), (1, 1), (3, 1))
        status = derive_status(lines, DUE, Status.ONGOING, utc(2024, 3, 15))
        assert status == Status.INCOMPLETE_OVERDUE

    def test_partial_return_on_due_date_is_incomplete_and_ondue(self):
        status = derive_status(items((3, 1)), DUE, Status.INCOMPLETE, utc(2024, 3, 10, 15))
        assert status == Status.INCOMPLETE_ONDUE

    def test_partial_return_before_due_date_is_incomplete(self):
        status = derive_status(items((3, 1)), DUE, Status.ONGOING, utc(2024, 3, 1))
        assert status == Status.INCOMPLETE

    def test_fully_returned_item_next_to_untouched_item_is_incomplete(self):
        status = derive_status(items((1, 1), (2, 0)), DUE, Status.ONGOING, utc(2024, 3, 1))
        assert status == Status.INCOMPLETE

    def test_all_returned_before_due_date_is_complete(self):
        status = derive_status(items((2, 2), (1, 1)), DUE, Status.INCOMPLETE, utc(2024, 3, 8))
        assert status == Status.COMPLETE

    def test_all_returned_on_due_date_is_complete(self):
        status = derive_status(items((2, 2)), DUE, Status.ONDUE, utc(2024, 3, 10, 18))
        assert status == Status.COMPLETE

    def test_all_returned_after_due_date_is_complete_and_overdue(self):
        status = derive_status(items((2, 2)), DUE, Status.OVERDUE, utc(2024, 3, 11))
        assert status == Status.COMPLETE_OVERDUE

    def test_full_quantity_without_returned_flag_is_not_complete(self):
        lines = [BorrowedItem.model_validate(make_item(2, 2, returned=False))]
        status = derive_status(lines, DUE, Status.ONGOING, utc(2024, 3, 1))
        assert status == Status.INCOMPLETE

    def test_empty_item_list_counts_as_returned(self):
        assert derive_status([], DUE, Status.ONGOING, utc(2024, 3, 1)) == Status.COMPLETE
        assert derive_status([], DUE, Status.ONGOING, utc(2024, 3, 11)) == Status.COMPLETE_OVERDUE

    @pytest.mark.parametrize("now", [utc(2000, 1, 1), utc(2024, 3, 10), utc(2099, 12, 31)])
    def test_request_is_sticky(self, now):
        assert derive_status(items((1, 1)), DUE, Status.REQUEST, now) == Status.REQUEST
        assert derive_status(items((1, 0)), DUE, "Request", now) == Status.REQUEST

    def test_is_deterministic(self):
        lines = items((3, 1), (1, 0))
        now = utc(2024, 3, 11, 8)
        results = {derive_status(lines, DUE, Status.ONGOING, now) for _ in range(50)}
        assert results == {Status.INCOMPLETE_OVERDUE}

    def test_calendar_day_follows_evaluation_timezone(self):
        manila = ZoneInfo("Asia/Manila")
        # 2024-03-09 17:00 UTC is already 2024-03-10 01:00 in Manila
        now = utc(2024, 3, 9, 17)
        due = utc(2024, 3, 10, 3)
        assert derive_status(items((1, 0)), due, Status.ONGOING, now) == Status.ONGOING
        assert derive_status(items((1, 0)), due, Status.ONGOING, now, tz=manila) == Status.ONDUE

    def test_naive_datetimes_are_treated_as_utc(self):
        status = derive_status(items((1, 0)), datetime(2024, 3, 10), Status.ONGOING, datetime(2024, 3, 11))
        assert status == Status.OVERDUE


class TestCalculateFine:
    def test_no_fine_on_due_date(self):
        assert calculate_fine(DUE, utc(2024, 3, 10), 10) == 0
        assert calculate_fine(DUE, utc(2024, 3, 10, 23, 59, 59), 10) == 0

    def test_no_fine_before_due_date(self):
        assert calculate_fine(DUE, utc(2024, 3, 1), 10) == 0

    def test_two_days_late(self):
        assert calculate_fine(DUE, utc(2024, 3, 12, 0, 0, 1), 10) == Decimal("20")

    def test_one_millisecond_into_the_next_day_is_one_day(self):
        now = utc(2024, 3, 11) + timedelta(milliseconds=1)
        assert days_overdue(DUE, now) == 1
        assert calculate_fine(DUE, now, 10) == Decimal("10")

    def test_partial_day_counts_as_a_full_day(self):
        due = utc(2024, 3, 10, 17)
        assert calculate_fine(due, utc(2024, 3, 11, 9), 10) == Decimal("10")

    def test_recomputing_on_the_same_day_is_stable(self):
        morning = calculate_fine(DUE, utc(2024, 3, 13, 1), 10)
        evening = calculate_fine(DUE, utc(2024, 3, 13, 23), 10)
        assert morning == evening == Decimal("30")

    def test_accrues_linearly(self):
        fines = [calculate_fine(DUE, utc(2024, 3, 10) + timedelta(days=n, hours=6), 10) for n in range(1, 8)]
        assert [b - a for a, b in zip(fines, fines[1:])] == [Decimal("10")] * 6

    def test_rate_is_configurable(self):
        assert calculate_fine(DUE, utc(2024, 3, 13), Decimal("2.50")) == Decimal("7.50")
        assert calculate_fine(DUE, utc(2024, 3, 13), "5") == Decimal("15")


class TestDeriveState:
    def _transaction(self, **fields):
        defaults = dict(
            id="tx-1",
            status="Ongoing",
            items=[make_item(1, 0)],
            due_date=DUE,
            fine_amount=Decimal("0"),
        )
        defaults.update(fields)
        return SimpleNamespace(**defaults)

    def test_overdue_transaction(self):
        state = derive_state(self._transaction(), utc(2024, 3, 12, 0, 0, 1), 10)
        assert state.status == Status.OVERDUE
        assert state.fine_amount == Decimal("20")

    def test_complete_transaction_before_due_date_has_no_fine(self):
        transaction = self._transaction(items=[make_item(2, 2), make_item(1, 1)])
        state = derive_state(transaction, utc(2024, 3, 5), 10)
        assert state.status == Status.COMPLETE
        assert state.fine_amount == 0

    def test_request_keeps_stored_fine(self):
        transaction = self._transaction(status="Request", fine_amount=Decimal("40"), due_date=utc(2020, 1, 1))
        state = derive_state(transaction, utc(2024, 3, 12), 10)
        assert state.status == Status.REQUEST
        assert state.fine_amount == Decimal("40")

    def test_missing_due_date_is_invalid(self):
        with pytest.raises(InvalidTransactionDataError) as exc_info:
            derive_state(self._transaction(due_date=None), utc(2024, 3, 12), 10)
        assert exc_info.value.transaction_id == "tx-1"

    def test_unknown_status_is_invalid(self):
        with pytest.raises(InvalidTransactionDataError):
            derive_state(self._transaction(status="Lost"), utc(2024, 3, 12), 10)

    def test_malformed_items_are_invalid(self):
        with pytest.raises(InvalidTransactionDataError, match="malformed items"):
            derive_state(self._transaction(items=[{"itemName": "x", "quantity": "lots"}]), utc(2024, 3, 12), 10)


def test_parse_items_accepts_snake_and_camel_case():
    parsed = parse_items("tx-1", [
        {"item_name": "Flask", "quantity": 2, "returned_quantity": 1},
        {"itemName": "Pipette", "quantity": 3, "returnedQuantity": 3, "returned": True},
    ])
    assert [item.item_name for item in parsed] == ["Flask", "Pipette"]
    assert parsed[0].returned_quantity == 1
    assert parsed[1].returned is True


def test_parse_items_rejects_missing_items():
    with pytest.raises(InvalidTransactionDataError, match="items are missing"):
        parse_items("tx-1", None)
