"""Staff user and role models."""

import enum
from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class Role(enum.StrEnum):
    admin = "Admin"
    employee = "Employee"
    security = "Security"


class User(SQLModel, table=True):
    """A staff account. Credentials are held by the identity provider, not here."""

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(index=True)
    email: str = Field(unique=True)
    role: Role = Role.employee
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
