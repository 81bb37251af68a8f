import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from labtrack.core.database import UTCDateTime, utcnow
from labtrack.src.schema.transactions import TransactionStatusEnum


class Transaction(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    borrower_id: Optional[str] = Field(default=None, index=True)
    borrower_name: Optional[str] = None
    borrower_email: Optional[str] = None
    items: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    borrowed_date: Optional[datetime] = Field(
        default=None, sa_column=Column(UTCDateTime, nullable=True)
    )
    due_date: Optional[datetime] = Field(
        default=None, sa_column=Column(UTCDateTime, nullable=True, index=True)
    )
    status: str = Field(default=TransactionStatusEnum.REQUEST.value, index=True)
    total_price: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    fine_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)

    # Notification flags: set once per overdue episode, never cleared by the sweep
    ondue_notified: bool = Field(default=False)
    reminder_notified: bool = Field(default=False)
    overdue_notified: bool = Field(default=False)

    # Bumped on every maintenance write; used as the compare-and-set precondition
    version: int = Field(default=1)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False)
    )
