"""Main gate and Geopic gate transitions.

The engine is permissive: any existing record may move to any
checkpoint state and repeated actions overwrite the latest timestamp. The only
rejected transitions are a second check-in in the same scope and an action on a
person with no location record.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from gatepass.errors import DuplicateCheckInError, LocationNotFoundError
from gatepass.registry.models import PersonRef
from gatepass.tracking.ledger import (
    as_utc,
    commit_record,
    conditional_update,
    facility_day,
    find_latest_student_location,
    find_student_location_by_description,
    find_student_location_for_day,
    find_visitor_location_by_description,
    find_visitor_location_by_id,
    utcnow,
)
from gatepass.tracking.models import LocationRecord, LocationState, StudentLocation, VisitorLocation

logger = logging.getLogger(__name__)


def check_in(session: Session, person: PersonRef, now: datetime | None = None) -> LocationRecord:
    """Create a person's location record at the main gate.

    Interns get one record per day; visitors get one record ever.

    Raises:
        DuplicateCheckInError: If a record already exists in that scope.
    """
    now = as_utc(now or utcnow())
    record: LocationRecord
    if person.is_intern:
        day = facility_day(now)
        if find_student_location_for_day(session, person.id, day) is not None:
            raise DuplicateCheckInError("Location already exists")
        record = StudentLocation(
            student_id=person.id,
            day=day,
            location=LocationState.main_gate,
            name=person.name,
            phone=person.phone,
            coordinator=person.host,
            date=now,
            photo_url=person.photo_url,
        )
    else:
        if find_visitor_location_by_id(session, person.id) is not None:
            raise DuplicateCheckInError("Location already exists")
        record = VisitorLocation(
            visitor_id=person.id,
            location=LocationState.main_gate,
            name=person.name,
            phone=person.phone,
            visiting_employee=person.host,
            date=now,
            photo_url=person.photo_url,
        )

    session.add(record)
    try:
        session.commit()
    except IntegrityError as e:
        # Another check-in for the same key committed first
        session.rollback()
        raise DuplicateCheckInError("Location already exists") from e
    session.refresh(record)
    logger.info("Checked in %s (%s) at main gate", person.name, person.kind)
    return record


def _find_for_main_gate_exit(session: Session, person: PersonRef) -> LocationRecord | None:
    if person.is_intern:
        return find_student_location_by_description(session, person.name, person.phone, person.host)
    return find_visitor_location_by_description(session, person.name, person.phone, person.host)


def _find_for_geopic_entry(
    session: Session, person: PersonRef, now: datetime
) -> LocationRecord | None:
    if person.is_intern:
        return find_student_location_for_day(session, person.id, facility_day(now))
    return find_visitor_location_by_description(session, person.name, person.phone, person.host)


def _find_for_geopic_exit(session: Session, person: PersonRef) -> LocationRecord | None:
    # Interns leaving Geopic are not day-scoped, unlike their entry
    if person.is_intern:
        return find_latest_student_location(session, person.id)
    return find_visitor_location_by_description(session, person.name, person.phone, person.host)


def main_gate_check_out(
    session: Session, person: PersonRef, now: datetime | None = None
) -> LocationRecord:
    """Mark a person as having left through the main gate.

    Raises:
        LocationNotFoundError: If no location record matches the person's details.
    """
    now = as_utc(now or utcnow())
    record = _find_for_main_gate_exit(session, person)
    if record is None:
        logger.warning("No location to check out for %s", person.name)
        raise LocationNotFoundError("Visitor location not found to update")

    conditional_update(session, record, location=LocationState.out_of_main_gate, out_time=now)
    commit_record(session, record)
    logger.info("Checked out %s at main gate", person.name)
    return record


def geopic_check_in(
    session: Session, person: PersonRef, now: datetime | None = None
) -> LocationRecord:
    """Move a person to the Geopic checkpoint.

    Raises:
        LocationNotFoundError: If the person has no matching location record.
    """
    now = as_utc(now or utcnow())
    record = _find_for_geopic_entry(session, person, now)
    if record is None:
        logger.warning("No location for Geopic entry of %s", person.name)
        raise LocationNotFoundError("Visitor location not found")

    conditional_update(session, record, location=LocationState.geopic, geopic_in_time=now)
    commit_record(session, record)
    logger.info("%s entered Geopic", person.name)
    return record


def geopic_check_out(
    session: Session, person: PersonRef, now: datetime | None = None
) -> LocationRecord:
    """Record a person leaving Geopic. No prior Geopic entry is required."""
    now = as_utc(now or utcnow())
    record = _find_for_geopic_exit(session, person)
    if record is None:
        logger.warning("No location for Geopic exit of %s", person.name)
        raise LocationNotFoundError("Visitor location not found")

    conditional_update(session, record, location=LocationState.out_of_geopic, geopic_out_time=now)
    commit_record(session, record)
    logger.info("%s left Geopic", person.name)
    return record
