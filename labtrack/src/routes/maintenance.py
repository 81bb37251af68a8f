from typing import Annotated
from zoneinfo import ZoneInfo
from fastapi import APIRouter, Depends, Request

from labtrack.core.authorization import require_roles
from labtrack.core.database import SessionDep, utcnow
from labtrack.core.error_handling import NotFoundError, UnprocessableTransactionError
from labtrack.core.logging import audit_event_logger
from labtrack.core.settings import settings
from labtrack.src.models.users import User
from labtrack.src.schema.maintenance import MaintenanceRunResponse, TransactionPreview
from labtrack.src.schema.transactions import ACTIVE_STATUSES, TransactionStatusEnum
from labtrack.src.schema.users import StaffRoleList
from labtrack.src.services.exceptions import InvalidTransactionDataError
from labtrack.src.services.maintenance import run_maintenance_sweep
from labtrack.src.services.status import days_overdue, derive_state
from labtrack.src.services.store import TransactionStore


router = APIRouter()


@router.post("/run", response_model=MaintenanceRunResponse)
async def run_maintenance(
    request: Request,
    staff: Annotated[User, Depends(require_roles(StaffRoleList))],
    session: SessionDep,
):
    audit_event_logger.log_admin_action(
        user_id=staff.id,
        action="manual_transaction_maintenance",
        request_id=getattr(request.state, "request_id", None),
    )
    result = await run_maintenance_sweep(session, trigger="manual")
    return MaintenanceRunResponse(trigger="manual", result=result)


@router.get("/preview/{transaction_id}", response_model=TransactionPreview)
async def preview_transaction(
    transaction_id: str,
    staff: Annotated[User, Depends(require_roles(StaffRoleList))],
    session: SessionDep,
):
    """What the next sweep would write for one transaction, without writing it."""
    transaction = await TransactionStore(session).get(transaction_id)
    if not transaction:
        raise NotFoundError("Transaction", transaction_id)

    try:
        stored_status = TransactionStatusEnum(transaction.status)
    except ValueError:
        raise UnprocessableTransactionError(transaction_id, f"unknown status {transaction.status!r}")
    stored_fine = transaction.fine_amount or 0

    now = utcnow()
    tz = ZoneInfo(settings.maintenance_timezone)
    derived_status, derived_fine = stored_status, stored_fine
    # The sweep never touches Request or Complete transactions
    if stored_status in ACTIVE_STATUSES:
        try:
            derived = derive_state(transaction, now, settings.fine_per_day, tz)
        except InvalidTransactionDataError as e:
            raise UnprocessableTransactionError(transaction_id, e.reason)
        derived_status, derived_fine = derived.status, derived.fine_amount

    return TransactionPreview(
        transaction_id=transaction.id,
        evaluated_at=now,
        stored_status=stored_status,
        derived_status=derived_status,
        stored_fine=stored_fine,
        derived_fine=derived_fine,
        days_overdue=days_overdue(transaction.due_date, now, tz) if transaction.due_date else 0,
        needs_update=derived_status != stored_status or derived_fine != stored_fine,
    )
