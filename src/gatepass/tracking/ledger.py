"""Location ledger: lookups, conditional updates and RFID tag binding.

Each entity variant has its own explicitly named lookup strategy. Visitors are
matched by descriptive fields (name, phone, visited employee) because some
gate clients only hold those; interns are matched by id, optionally scoped to
a day.
"""

import logging
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from gatepass.config import settings
from gatepass.errors import ConcurrentUpdateError, LocationNotFoundError, TagInUseError
from gatepass.tracking.models import LocationRecord, LocationState, StudentLocation, VisitorLocation

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime.

    Values read back from SQLite may be naive; they were written as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def facility_day(moment: datetime) -> date:
    """Calendar day of a moment on the facility's wall clock."""
    return as_utc(moment).astimezone(settings.facility_tz).date()


def day_window(day: date) -> tuple[datetime, datetime]:
    """Return ``[midnight, next midnight)`` of a facility calendar day, in UTC."""
    tz = settings.facility_tz
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def normalize_tag(tag: str) -> str:
    """Normalize an RFID tag id to upper case without surrounding whitespace."""
    return tag.strip().upper()


# --- Visitor lookups ---


def find_visitor_location_by_id(session: Session, visitor_id: str) -> VisitorLocation | None:
    stmt = select(VisitorLocation).where(VisitorLocation.visitor_id == visitor_id)
    return session.exec(stmt).first()


def find_visitor_location_by_description(
    session: Session, name: str, phone: str, visiting_employee: str
) -> VisitorLocation | None:
    """First visitor location matching name, phone and visited employee, any day."""
    stmt = (
        select(VisitorLocation)
        .where(
            VisitorLocation.name == name,
            VisitorLocation.phone == phone,
            VisitorLocation.visiting_employee == visiting_employee,
        )
        .order_by(VisitorLocation.id)  # type: ignore[arg-type]
    )
    return session.exec(stmt).first()


def find_visitor_location_by_tag(
    session: Session, tag: str, name: str | None = None
) -> VisitorLocation | None:
    stmt = select(VisitorLocation).where(VisitorLocation.rfid_tag == normalize_tag(tag))
    if name is not None:
        stmt = stmt.where(VisitorLocation.name == name)
    return session.exec(stmt.order_by(VisitorLocation.id)).first()  # type: ignore[arg-type]


# --- Intern lookups ---


def find_student_location_for_day(
    session: Session, student_id: str, day: date
) -> StudentLocation | None:
    """Intern location created within the given facility calendar day."""
    start, end = day_window(day)
    stmt = select(StudentLocation).where(
        StudentLocation.student_id == student_id,
        StudentLocation.date >= start,  # type: ignore[operator]
        StudentLocation.date < end,  # type: ignore[operator]
    )
    return session.exec(stmt).first()


def find_latest_student_location(session: Session, student_id: str) -> StudentLocation | None:
    """Most recent intern location regardless of day."""
    stmt = (
        select(StudentLocation)
        .where(StudentLocation.student_id == student_id)
        .order_by(StudentLocation.date.desc())  # type: ignore[union-attr]
    )
    return session.exec(stmt).first()


def find_student_location_by_description(
    session: Session, name: str, phone: str, coordinator: str
) -> StudentLocation | None:
    stmt = (
        select(StudentLocation)
        .where(
            StudentLocation.name == name,
            StudentLocation.phone == phone,
            StudentLocation.coordinator == coordinator,
        )
        .order_by(StudentLocation.date.desc())  # type: ignore[union-attr]
    )
    return session.exec(stmt).first()


# --- Listings ---


def list_visitor_locations(session: Session) -> list[VisitorLocation]:
    stmt = select(VisitorLocation).order_by(VisitorLocation.id)  # type: ignore[arg-type]
    return list(session.exec(stmt).all())


def list_student_locations(session: Session) -> list[StudentLocation]:
    stmt = select(StudentLocation).order_by(StudentLocation.created_at.desc())  # type: ignore[attr-defined]
    return list(session.exec(stmt).all())


# --- Writes ---


def conditional_update(session: Session, record: LocationRecord, **values: Any) -> None:
    """Update a location record only if nobody else changed it since it was read.

    The statement matches on the version the caller observed and bumps it, so
    two requests racing on the same record cannot both apply. Does not commit.

    Raises:
        ConcurrentUpdateError: If the record's version moved on.
    """
    model = type(record)
    stmt = (
        update(model)
        .where(model.id == record.id, model.version == record.version)  # type: ignore[arg-type]
        .values(version=record.version + 1, **values)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    if result.rowcount != 1:
        session.rollback()
        logger.warning("Lost update on %s id=%s", model.__name__, record.id)
        raise ConcurrentUpdateError("Location record was modified concurrently, retry the scan")


def commit_record(session: Session, record: LocationRecord) -> LocationRecord:
    session.commit()
    session.refresh(record)
    return record


def assign_tag(session: Session, location_id: int, tag: str) -> VisitorLocation:
    """Bind an RFID tag to a visitor location and mark it at the main gate.

    Raises:
        LocationNotFoundError: If no visitor location has that id.
        TagInUseError: If the tag is already bound to a record with the same name.
        ConcurrentUpdateError: If the record changed after it was read.
    """
    record = session.get(VisitorLocation, location_id)
    if record is None:
        raise LocationNotFoundError("Visitor location not found")

    tag = normalize_tag(tag)
    try:
        conditional_update(session, record, rfid_tag=tag, location=LocationState.main_gate)
    except IntegrityError as e:
        session.rollback()
        raise TagInUseError(f"RFID tag {tag} is already assigned") from e
    commit_record(session, record)
    logger.info("Assigned tag %s to %s", record.rfid_tag, record.name)
    return record


def release_tag(session: Session, location_id: int, now: datetime | None = None) -> VisitorLocation:
    """Unbind a visitor's tag; handing the tag back means leaving through the main gate.

    Raises:
        LocationNotFoundError: If no visitor location has that id.
        ConcurrentUpdateError: If the record changed after it was read.
    """
    record = session.get(VisitorLocation, location_id)
    if record is None:
        raise LocationNotFoundError("Visitor location not found")

    tag = record.rfid_tag
    conditional_update(
        session,
        record,
        rfid_tag=None,
        location=LocationState.out_of_main_gate,
        out_time=as_utc(now or utcnow()),
    )
    commit_record(session, record)
    logger.info("Released tag %s from %s", tag, record.name)
    return record
