from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel

from labtrack.src.schema.transactions import TransactionStatusEnum


class SweepResult(BaseModel):
    """Aggregate counts from one maintenance sweep"""
    sweep_id: Optional[str] = None
    evaluated_at: Optional[datetime] = None
    updated: int = 0
    ondue_notified: int = 0
    reminders_sent: int = 0
    overdue_notified: int = 0
    skipped: int = 0
    conflicts: int = 0
    # Counts reported by post-sweep hooks, keyed by hook name
    hooks: Dict[str, int] = {}


class MaintenanceRunResponse(BaseModel):
    success: bool = True
    trigger: str
    result: SweepResult


class TransactionPreview(BaseModel):
    """Stored state next to what the next sweep would write"""
    transaction_id: str
    evaluated_at: datetime
    stored_status: TransactionStatusEnum
    derived_status: TransactionStatusEnum
    stored_fine: Decimal
    derived_fine: Decimal
    days_overdue: int
    needs_update: bool
