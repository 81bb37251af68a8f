"""
Post-sweep hook that moves finished transactions into the records table.

Off by default, enabled with ``ARCHIVE_COMPLETED_TRANSACTIONS``. A row is only
moved if its version still matches what was read, so another archiving
process working on the same rows cannot produce duplicate records.
"""

from datetime import datetime

from labtrack.src.models.records import Record
from labtrack.src.models.transactions import Transaction
from labtrack.src.schema.transactions import TERMINAL_STATUSES
from labtrack.src.services.store import TransactionStore, chunked


def build_record(transaction: Transaction, now: datetime) -> Record:
    return Record(
        transaction_id=transaction.id,
        borrower_id=transaction.borrower_id,
        borrower_name=transaction.borrower_name,
        borrower_email=transaction.borrower_email,
        items=list(transaction.items or []),
        borrowed_date=transaction.borrowed_date,
        due_date=transaction.due_date,
        completed_date=transaction.updated_at or now,
        final_status=transaction.status,
        total_price=transaction.total_price,
        fine_amount=transaction.fine_amount,
        archived_at=now,
    )


class RecordArchiver:
    name = "archive_records"

    async def run(self, store: TransactionStore, now: datetime) -> int:
        candidates = await store.find(statuses=TERMINAL_STATUSES)
        archived = 0
        for chunk in chunked(candidates, store.batch_size):
            for transaction in chunk:
                if await store.archive(transaction, build_record(transaction, now)):
                    archived += 1
            await store.commit()
        return archived
