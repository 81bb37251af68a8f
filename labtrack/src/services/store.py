"""
Data access for the maintenance sweep.

``TransactionStore`` and ``NotificationOutbox`` wrap one shared AsyncSession.
Neither commits on its own except through ``TransactionStore.commit``, so a
flag update and the notification it gates always land in the same database
transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence, TypeVar

from sqlalchemy import delete, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from labtrack.src.models.notifications import Notification
from labtrack.src.models.records import Record
from labtrack.src.models.transactions import Transaction
from labtrack.src.schema.transactions import TransactionStatusEnum

T = TypeVar("T")

NOTIFICATION_FLAGS = ("ondue_notified", "reminder_notified", "overdue_notified")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


@dataclass
class TransactionPatch:
    """Partial update guarded by the version the sweep read."""
    transaction_id: str
    expected_version: int
    changes: Dict[str, Any] = field(default_factory=dict)


class TransactionStore:
    def __init__(self, session: AsyncSession, batch_size: int = 400):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.session = session
        self.batch_size = batch_size

    async def get(self, transaction_id: str) -> Optional[Transaction]:
        return await self.session.get(Transaction, transaction_id, populate_existing=True)

    async def find(
        self,
        statuses: Sequence[TransactionStatusEnum],
        unset_flag: Optional[str] = None,
        due_from: Optional[datetime] = None,
        due_before: Optional[datetime] = None,
    ) -> List[Transaction]:
        """Transactions in ``statuses``, optionally with ``unset_flag`` still
        false and a due date in ``[due_from, due_before)``."""
        statement = select(Transaction).where(
            Transaction.status.in_([TransactionStatusEnum(s).value for s in statuses])
        )
        if unset_flag is not None:
            if unset_flag not in NOTIFICATION_FLAGS:
                raise ValueError(f"Unknown notification flag: {unset_flag}")
            statement = statement.where(getattr(Transaction, unset_flag) == False)  # noqa: E712
        if due_from is not None:
            statement = statement.where(Transaction.due_date >= due_from)
        if due_before is not None:
            statement = statement.where(Transaction.due_date < due_before)

        # Earlier passes may have rewritten rows this session already holds
        statement = statement.order_by(Transaction.due_date, Transaction.id).execution_options(
            populate_existing=True
        )
        result = await self.session.exec(statement)
        return list(result.all())

    async def apply_patch(self, patch: TransactionPatch, now: datetime) -> bool:
        """Stage a compare-and-set update. False when the row moved on since it was read."""
        statement = (
            update(Transaction)
            .where(
                Transaction.id == patch.transaction_id,
                Transaction.version == patch.expected_version,
            )
            .values(
                **patch.changes,
                version=patch.expected_version + 1,
                updated_at=now,
            )
        )
        result = await self.session.exec(statement)
        return result.rowcount == 1

    async def archive(self, transaction: Transaction, record: Record) -> bool:
        """Stage moving a transaction into the records table, guarded like ``apply_patch``."""
        statement = delete(Transaction).where(
            Transaction.id == transaction.id,
            Transaction.version == transaction.version,
        )
        result = await self.session.exec(statement)
        if result.rowcount != 1:
            return False
        self.session.add(record)
        return True

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


class NotificationOutbox:
    """Append-only queue of outbound messages, stored in the notification table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def enqueue(self, notification: Notification) -> None:
        self.session.add(notification)
