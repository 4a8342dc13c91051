"""Visitor, foreign visitor, intern and employee directory models."""

import enum
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime

from sqlmodel import Field, SQLModel


def _new_id() -> str:
    return uuid.uuid4().hex


class PersonKind(enum.StrEnum):
    domestic = "domestic"
    foreign = "foreign"
    intern = "intern"


class Visitor(SQLModel, table=True):
    """A domestic visitor identified by Aadhar number."""

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    dob: date
    aadhar: str
    email: str
    phone: str
    visiting: str  # host employee
    employee_email: str
    photo_url: str
    aadhar_photo_url: str
    verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ForeignVisitor(SQLModel, table=True):
    """A foreign visitor identified by passport number."""

    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    dob: date
    passport: str
    country: str
    email: str
    phone: str
    visiting: str
    employee_email: str
    photo_url: str
    passport_photo_url: str
    verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Intern(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str
    dob: date
    aadhar: str
    email: str
    phone: str
    coordinator: str
    employee_email: str
    photo_url: str
    aadhar_photo_url: str
    is_intern: bool = True
    internship_from: date | None = None
    internship_to: date | None = None
    verified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Employee(SQLModel, table=True):
    """Directory entry used to pick the host employee on registration forms."""

    cpf_no: str = Field(primary_key=True)
    name: str = Field(index=True)
    designation: str
    email: str


@dataclass(frozen=True)
class PersonRef:
    """Resolved person as seen by the gate and RFID engines.

    ``host`` is the visited employee for visitors and the coordinator for interns.
    """

    id: str
    kind: PersonKind
    name: str
    phone: str
    host: str
    photo_url: str | None = None

    @property
    def is_intern(self) -> bool:
        return self.kind == PersonKind.intern


PersonRecord = Visitor | ForeignVisitor | Intern
