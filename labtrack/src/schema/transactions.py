from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TransactionStatusEnum(str, Enum):
    REQUEST = "Request"
    ONGOING = "Ongoing"
    ONDUE = "Ondue"
    OVERDUE = "Overdue"
    INCOMPLETE = "Incomplete"
    INCOMPLETE_ONDUE = "Incomplete and Ondue"
    INCOMPLETE_OVERDUE = "Incomplete and Overdue"
    COMPLETE = "Complete"
    COMPLETE_OVERDUE = "Complete and Overdue"


# Statuses the daily sweep recomputes; Request and the Complete states never change on their own
ACTIVE_STATUSES = [
    TransactionStatusEnum.ONGOING,
    TransactionStatusEnum.ONDUE,
    TransactionStatusEnum.INCOMPLETE,
    TransactionStatusEnum.INCOMPLETE_ONDUE,
    TransactionStatusEnum.OVERDUE,
    TransactionStatusEnum.INCOMPLETE_OVERDUE,
]

TERMINAL_STATUSES = [
    TransactionStatusEnum.COMPLETE,
    TransactionStatusEnum.COMPLETE_OVERDUE,
]

ONDUE_NOTICE_STATUSES = [
    TransactionStatusEnum.ONGOING,
    TransactionStatusEnum.ONDUE,
    TransactionStatusEnum.INCOMPLETE,
    TransactionStatusEnum.INCOMPLETE_ONDUE,
]

REMINDER_STATUSES = [
    TransactionStatusEnum.ONGOING,
    TransactionStatusEnum.INCOMPLETE,
]

OVERDUE_STATUSES = [
    TransactionStatusEnum.OVERDUE,
    TransactionStatusEnum.INCOMPLETE_OVERDUE,
]


class NotificationTypeEnum(str, Enum):
    ONDUE_NOTICE = "ondue_notice"
    RETURN_REMINDER = "return_reminder"
    OVERDUE_NOTICE = "overdue_notice"


class BorrowedItem(BaseModel):
    """One equipment line on a transaction.

    Accepts the camelCase keys the mobile client writes as well as snake_case.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    equipment_id: Optional[str] = None
    item_name: str = ""
    quantity: int = Field(ge=0)
    price_per_quantity: Decimal = Decimal("0")
    returned: bool = False
    returned_quantity: int = Field(default=0, ge=0)
    damaged_quantity: int = Field(default=0, ge=0)
    lost_quantity: int = Field(default=0, ge=0)
    damage_notes: str = ""
