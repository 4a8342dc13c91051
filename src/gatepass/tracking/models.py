"""Location ledger and RFID history models."""

import datetime as dt
import enum
from datetime import UTC, datetime

from sqlmodel import Field, SQLModel, UniqueConstraint


class LocationState(enum.StrEnum):
    """Checkpoint status stored in a location record's ``location`` column."""

    main_gate = "ONGC main gate"
    geopic = "Geopic"
    out_of_geopic = "Out of GEOPIC"
    out_of_main_gate = "Out of ONGC main gate"


class VisitorLocation(SQLModel, table=True):
    """Current checkpoint status of a domestic or foreign visitor.

    Records created by an RFID toggle carry only a tag and a name, so
    ``visitor_id`` is nullable; NULLs do not collide in either unique index.
    """

    __table_args__ = (UniqueConstraint("rfid_tag", "name"),)

    id: int | None = Field(default=None, primary_key=True)
    visitor_id: str | None = Field(default=None, unique=True)
    location: str = LocationState.main_gate
    name: str | None = None
    phone: str | None = None
    visiting_employee: str | None = None
    date: datetime | None = None
    photo_url: str | None = None
    out_time: datetime | None = None
    geopic_in_time: datetime | None = None
    geopic_out_time: datetime | None = None
    rfid_tag: str | None = Field(default=None, index=True)
    version: int = 1  # bumped on every conditional update


class StudentLocation(SQLModel, table=True):
    """Checkpoint status of an intern for one day."""

    __table_args__ = (UniqueConstraint("student_id", "day"),)

    id: int | None = Field(default=None, primary_key=True)
    student_id: str = Field(index=True)
    day: dt.date  # "date" is a column name here
    location: str = LocationState.main_gate
    name: str | None = None
    phone: str | None = None
    coordinator: str | None = None
    date: datetime | None = None
    photo_url: str | None = None
    out_time: datetime | None = None
    geopic_in_time: datetime | None = None
    geopic_out_time: datetime | None = None
    version: int = 1
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


LocationRecord = VisitorLocation | StudentLocation


class RfidHistory(SQLModel, table=True):
    """Append-only log of Geopic visit cycles per tag."""

    id: int | None = Field(default=None, primary_key=True)
    rfid_tag: str = Field(index=True)
    location_id: int | None = Field(default=None, foreign_key="visitorlocation.id")
    name: str
    geopic_in_time: datetime
    geopic_out_time: datetime | None = None
