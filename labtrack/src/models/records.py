import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from labtrack.core.database import UTCDateTime, utcnow


class Record(SQLModel, table=True):
    """Archived copy of a transaction that reached a Complete status."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    transaction_id: str = Field(index=True, unique=True)
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
        default=None, sa_column=Column(UTCDateTime, nullable=True)
    )
    completed_date: datetime = Field(sa_column=Column(UTCDateTime, nullable=False))
    final_status: str = Field(index=True)
    total_price: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    fine_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    notes: Optional[str] = None
    archived_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False)
    )
