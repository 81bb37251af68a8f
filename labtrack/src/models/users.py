from datetime import datetime
from typing import Optional
from sqlalchemy import Column
from sqlmodel import Field, SQLModel

from labtrack.core.database import UTCDateTime, utcnow


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    type: str = Field(default="student", index=True)
    name: str = Field(index=True)
    email: Optional[str] = Field(default=None, index=True, unique=True)
    username: str = Field(index=True, unique=True)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False)
    )
