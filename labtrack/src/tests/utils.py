import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from jose import jwt
from sqlalchemy.orm import Session

from labtrack.core.settings import settings
from labtrack.src.models.transactions import Transaction
from labtrack.src.models.users import User
from labtrack.src.schema.users import UserTypeEnum


def make_item(
    quantity: int = 1,
    returned_quantity: int = 0,
    returned: Optional[bool] = None,
    name: str = "Beaker",
    price: int = 50,
) -> dict:
    """Item dict in the camelCase shape the mobile client writes."""
    return {
        "id": uuid.uuid4().hex[:8],
        "equipmentId": f"eq-{name.lower().replace(' ', '-')}",
        "itemName": name,
        "quantity": quantity,
        "pricePerQuantity": price,
        "returned": returned if returned is not None else returned_quantity == quantity,
        "returnedQuantity": returned_quantity,
        "damagedQuantity": 0,
        "lostQuantity": 0,
        "damageNotes": "",
    }


def make_transaction(
    due_date: Optional[datetime],
    status: str = "Ongoing",
    items: Optional[list] = None,
    **overrides,
) -> Transaction:
    items = items if items is not None else [make_item(quantity=2, name="Microscope")]
    fields = dict(
        borrower_id="student-1",
        borrower_name="Juan Dela Cruz",
        borrower_email="juan@example.edu",
        items=items,
        borrowed_date=(due_date - timedelta(days=7)) if due_date else None,
        due_date=due_date,
        status=status,
        total_price=Decimal("100"),
    )
    fields.update(overrides)
    return Transaction(**fields)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


class TestDatabase:
    __test__ = False

    def __init__(self, session: Session):
        self.session = session

    def populate_test_data(self):
        staff_user = User(
            username="staffuser",
            name="Lab Staff",
            email="staff@example.edu",
            type=UserTypeEnum.staff.value,
            is_active=True,
        )
        student_user = User(
            username="student",
            name="Juan Dela Cruz",
            email="juan@example.edu",
            type=UserTypeEnum.student.value,
            is_active=True,
        )
        inactive_staff = User(
            username="formerstaff",
            name="Former Staff",
            email="former@example.edu",
            type=UserTypeEnum.staff.value,
            is_active=False,
        )
        self.session.add_all([staff_user, student_user, inactive_staff])
        self.session.commit()

        now = datetime.now(timezone.utc)
        test_transactions = [
            make_transaction(now - timedelta(days=3), id="overdue-1"),
            make_transaction(now + timedelta(days=10), id="ongoing-1"),
            make_transaction(now - timedelta(days=30), status="Request", id="request-1"),
            make_transaction(
                now + timedelta(days=10),
                items=[{"itemName": "Broken", "quantity": "lots"}],
                id="malformed-1",
            ),
        ]
        self.session.add_all(test_transactions)
        self.session.commit()


def create_access_token(username: str, expires_in: timedelta = timedelta(minutes=30)) -> str:
    """Token shaped like the ones the LabTrack auth service issues."""
    expire = datetime.now(timezone.utc) + expires_in
    return jwt.encode({"sub": username, "exp": expire}, settings.secret_key, algorithm=settings.algorithm)


def auth_headers(username: str) -> dict:
    token = create_access_token(username)
    return {"Authorization": f"Bearer {token}"}
