import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from labtrack.core.database import UTCDateTime, utcnow


class Notification(SQLModel, table=True):
    """Outbound message picked up by the mailer; rows are only ever inserted."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    to: str
    subject: str
    text: str = Field(sa_column=Column(Text, nullable=False))
    html: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    type: str = Field(index=True)
    # No foreign key: archived transactions leave the table but their messages stay queued
    transaction_id: str = Field(index=True)
    user_id: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False)
    )
