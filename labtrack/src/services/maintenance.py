"""
Transaction maintenance sweep.

One sweep runs four passes in order, each its own unit of work:

1. recompute status and fine for every active transaction
2. notify borrowers whose equipment is due today
3. remind borrowers whose equipment is due tomorrow
4. notify borrowers whose equipment is overdue

Only changed fields are written, every write is conditional on the version
that was read, and each notice is enqueued in the same commit that sets its
flag. Running a sweep twice with nothing changing in between writes nothing
the second time.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from sqlmodel.ext.asyncio.session import AsyncSession

from labtrack.core.database import utcnow
from labtrack.core.logging import maintenance_event_logger
from labtrack.core.settings import settings
from labtrack.src.models.notifications import Notification
from labtrack.src.schema.maintenance import SweepResult
from labtrack.src.schema.transactions import (
    ACTIVE_STATUSES,
    ONDUE_NOTICE_STATUSES,
    OVERDUE_STATUSES,
    REMINDER_STATUSES,
    NotificationTypeEnum,
    TransactionStatusEnum,
)
from labtrack.src.services.archive import RecordArchiver
from labtrack.src.services.exceptions import InvalidTransactionDataError, MaintenancePassError
from labtrack.src.services.notifications import NOTICE_BUILDERS, missing_contact_fields
from labtrack.src.services.status import derive_state, local_date
from labtrack.src.services.store import (
    NotificationOutbox,
    TransactionPatch,
    TransactionStore,
    chunked,
)

RECOMPUTE_PASS = "recompute_statuses"
ONDUE_PASS = "send_ondue_notices"
REMINDER_PASS = "send_return_reminders"
OVERDUE_PASS = "send_overdue_notices"


@dataclass
class StagedWrite:
    patch: TransactionPatch
    notification: Optional[Notification] = None


@dataclass
class PassOutcome:
    candidates: int = 0
    written: int = 0
    skipped: int = 0
    conflicts: int = 0


def day_window(now: datetime, tz: tzinfo, offset_days: int = 0) -> Tuple[datetime, datetime]:
    """UTC bounds ``[start, end)`` of the calendar day ``offset_days`` after now's date in ``tz``."""
    day = local_date(now, tz) + timedelta(days=offset_days)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


class MaintenanceSweep:
    def __init__(
        self,
        store: TransactionStore,
        outbox: NotificationOutbox,
        fine_per_day: Decimal = settings.fine_per_day,
        timezone_name: str = settings.maintenance_timezone,
        currency_symbol: str = settings.currency_symbol,
        clock: Callable[[], datetime] = utcnow,
        post_sweep_hooks: Sequence = (),
        trigger: str = "scheduled",
    ):
        self.store = store
        self.outbox = outbox
        self.fine_per_day = Decimal(str(fine_per_day))
        self.tz = ZoneInfo(timezone_name)
        self.currency_symbol = currency_symbol
        self.clock = clock
        self.post_sweep_hooks = list(post_sweep_hooks)
        self.trigger = trigger
        self.sweep_id = uuid.uuid4().hex[:12]

    async def run(self) -> SweepResult:
        now = self.clock()
        result = SweepResult(sweep_id=self.sweep_id, evaluated_at=now)
        maintenance_event_logger.sweep_started(self.sweep_id, self.trigger, now)

        try:
            recompute = await self.recompute_statuses(now)
            result.updated = recompute.written

            ondue = await self.send_ondue_notices(now)
            result.ondue_notified = ondue.written

            reminders = await self.send_return_reminders(now)
            result.reminders_sent = reminders.written

            overdue = await self.send_overdue_notices(now)
            result.overdue_notified = overdue.written

            for outcome in (recompute, ondue, reminders, overdue):
                result.skipped += outcome.skipped
                result.conflicts += outcome.conflicts

            for hook in self.post_sweep_hooks:
                result.hooks[hook.name] = await self._run_hook(hook, now)
        except MaintenancePassError as e:
            maintenance_event_logger.sweep_failed(self.sweep_id, e.pass_name, e.cause)
            raise

        maintenance_event_logger.sweep_completed(
            self.sweep_id,
            result.model_dump(include={
                "updated", "ondue_notified", "reminders_sent",
                "overdue_notified", "skipped", "conflicts",
            }),
        )
        return result

    async def recompute_statuses(self, now: datetime) -> PassOutcome:
        candidates = await self._find(RECOMPUTE_PASS, statuses=ACTIVE_STATUSES)
        outcome = PassOutcome(candidates=len(candidates))
        staged: List[StagedWrite] = []

        for transaction in candidates:
            try:
                derived = derive_state(transaction, now, self.fine_per_day, self.tz)
            except Exception as e:
                self._skip(outcome, RECOMPUTE_PASS, transaction.id, e)
                continue

            changes = {}
            if derived.status != transaction.status:
                changes["status"] = derived.status.value
            if derived.fine_amount != (transaction.fine_amount or Decimal("0")):
                changes["fine_amount"] = derived.fine_amount
            if changes:
                staged.append(StagedWrite(
                    TransactionPatch(transaction.id, transaction.version, changes)
                ))

        await self._commit(RECOMPUTE_PASS, staged, outcome, now)
        return outcome

    async def send_ondue_notices(self, now: datetime) -> PassOutcome:
        start, end = day_window(now, self.tz)
        return await self._notice_pass(
            ONDUE_PASS,
            NotificationTypeEnum.ONDUE_NOTICE,
            "ondue_notified",
            now,
            statuses=ONDUE_NOTICE_STATUSES,
            due_from=start,
            due_before=end,
        )

    async def send_return_reminders(self, now: datetime) -> PassOutcome:
        start, end = day_window(now, self.tz, offset_days=1)
        return await self._notice_pass(
            REMINDER_PASS,
            NotificationTypeEnum.RETURN_REMINDER,
            "reminder_notified",
            now,
            statuses=REMINDER_STATUSES,
            due_from=start,
            due_before=end,
        )

    async def send_overdue_notices(self, now: datetime) -> PassOutcome:
        return await self._notice_pass(
            OVERDUE_PASS,
            NotificationTypeEnum.OVERDUE_NOTICE,
            "overdue_notified",
            now,
            statuses=OVERDUE_STATUSES,
        )

    async def _notice_pass(
        self,
        pass_name: str,
        notification_type: NotificationTypeEnum,
        flag: str,
        now: datetime,
        statuses: Sequence[TransactionStatusEnum],
        due_from: Optional[datetime] = None,
        due_before: Optional[datetime] = None,
    ) -> PassOutcome:
        candidates = await self._find(
            pass_name,
            statuses=statuses,
            unset_flag=flag,
            due_from=due_from,
            due_before=due_before,
        )
        outcome = PassOutcome(candidates=len(candidates))
        staged: List[StagedWrite] = []
        build = NOTICE_BUILDERS[notification_type]

        for transaction in candidates:
            missing = missing_contact_fields(transaction)
            if missing:
                self._skip(
                    outcome, pass_name, transaction.id,
                    f"missing borrower information ({', '.join(missing)})",
                )
                continue
            try:
                notification = build(
                    transaction, now, self.fine_per_day, self.currency_symbol, self.tz
                )
            except Exception as e:
                self._skip(outcome, pass_name, transaction.id, e)
                continue

            staged.append(StagedWrite(
                TransactionPatch(transaction.id, transaction.version, {flag: True}),
                notification,
            ))

        await self._commit(pass_name, staged, outcome, now)
        return outcome

    async def _find(self, pass_name: str, **criteria):
        try:
            return await self.store.find(**criteria)
        except Exception as e:
            raise MaintenancePassError(pass_name, e) from e

    async def _commit(
        self,
        pass_name: str,
        staged: List[StagedWrite],
        outcome: PassOutcome,
        now: datetime,
    ) -> None:
        for chunk in chunked(staged, self.store.batch_size):
            try:
                for write in chunk:
                    if not await self.store.apply_patch(write.patch, now):
                        outcome.conflicts += 1
                        maintenance_event_logger.write_conflict(
                            self.sweep_id, pass_name,
                            write.patch.transaction_id, write.patch.expected_version,
                        )
                        continue
                    if write.notification is not None:
                        self.outbox.enqueue(write.notification)
                    outcome.written += 1
                await self.store.commit()
            except Exception as e:
                await self.store.rollback()
                raise MaintenancePassError(pass_name, e) from e

        maintenance_event_logger.pass_completed(
            self.sweep_id, pass_name,
            outcome.candidates, outcome.written, outcome.skipped, outcome.conflicts,
        )

    async def _run_hook(self, hook, now: datetime) -> int:
        try:
            return await hook.run(self.store, now)
        except Exception as e:
            await self.store.rollback()
            raise MaintenancePassError(hook.name, e) from e

    def _skip(self, outcome: PassOutcome, pass_name: str, transaction_id: str, error) -> None:
        if isinstance(error, InvalidTransactionDataError):
            reason = error.reason
        else:
            reason = str(error)
        outcome.skipped += 1
        maintenance_event_logger.record_skipped(self.sweep_id, pass_name, transaction_id, reason)


async def run_maintenance_sweep(
    session: AsyncSession,
    trigger: str = "scheduled",
    clock: Callable[[], datetime] = utcnow,
) -> SweepResult:
    """Build a sweep over ``session`` from settings and run it.

    Shared by the daily job, the on-demand endpoint and the CLI script.
    """
    hooks = [RecordArchiver()] if settings.archive_completed_transactions else []
    sweep = MaintenanceSweep(
        TransactionStore(session, batch_size=settings.maintenance_batch_size),
        NotificationOutbox(session),
        fine_per_day=settings.fine_per_day,
        timezone_name=settings.maintenance_timezone,
        currency_symbol=settings.currency_symbol,
        clock=clock,
        post_sweep_hooks=hooks,
        trigger=trigger,
    )
    return await sweep.run()
