"""RFID toggle engine and history ledger.

A scanner posts a tag and a name with no direction. Whether the scan is an
entry or an exit is inferred from the tag's visitor location record:

- no record: first sighting, open a cycle
- open cycle (entered, not yet left): close it
- closed cycle (anything else): open a new one

Location record and history entry are written in one transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, assert_never

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from gatepass.errors import ConcurrentUpdateError
from gatepass.tracking.ledger import (
    as_utc,
    commit_record,
    conditional_update,
    find_visitor_location_by_tag,
    normalize_tag,
    utcnow,
)
from gatepass.tracking.models import LocationState, RfidHistory, VisitorLocation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoRecord:
    pass


@dataclass(frozen=True)
class OpenCycle:
    record: VisitorLocation


@dataclass(frozen=True)
class ClosedCycle:
    record: VisitorLocation


CycleState = NoRecord | OpenCycle | ClosedCycle


def classify_cycle(record: VisitorLocation | None) -> CycleState:
    """Derive the toggle state from a record's Geopic timestamps.

    An open cycle always closes before a new one starts; a record that was
    never toggled (no entry time) counts as closed.
    """
    if record is None:
        return NoRecord()
    if record.geopic_in_time is not None and record.geopic_out_time is None:
        return OpenCycle(record)
    return ClosedCycle(record)


def _open_history(session: Session, record: VisitorLocation, now: datetime) -> RfidHistory:
    entry = RfidHistory(
        rfid_tag=record.rfid_tag or "",
        location_id=record.id,
        name=record.name or "",
        geopic_in_time=now,
    )
    session.add(entry)
    return entry


def _close_history(session: Session, tag: str, name: str, now: datetime) -> int:
    stmt = (
        update(RfidHistory)
        .where(
            RfidHistory.rfid_tag == tag,  # type: ignore[arg-type]
            RfidHistory.name == name,  # type: ignore[arg-type]
            RfidHistory.geopic_out_time.is_(None),  # type: ignore[union-attr]
        )
        .values(geopic_out_time=now)
    )
    result = session.exec(stmt)  # type: ignore[call-overload]
    return result.rowcount


def toggle(session: Session, tag: str, name: str, now: datetime | None = None) -> VisitorLocation:
    """Record an RFID scan at Geopic and return the updated location record.

    Raises:
        ConcurrentUpdateError: If another scan of the same tag and name won a race.
    """
    tag = normalize_tag(tag)
    now = as_utc(now or utcnow())
    state = classify_cycle(find_visitor_location_by_tag(session, tag, name))

    if isinstance(state, NoRecord):
        record = VisitorLocation(rfid_tag=tag, name=name, geopic_in_time=now)
        session.add(record)
        try:
            session.flush()
            _open_history(session, record, now)
            session.commit()
        except IntegrityError as e:
            session.rollback()
            logger.warning("Concurrent first scan of tag %s for %s", tag, name)
            raise ConcurrentUpdateError("Tag was registered concurrently, retry the scan") from e
        session.refresh(record)
        logger.info("Tag %s (%s) first entry into Geopic", tag, name)
        return record

    if isinstance(state, OpenCycle):
        record = state.record
        conditional_update(
            session, record, geopic_out_time=now, location=LocationState.out_of_geopic
        )
        if _close_history(session, tag, name, now) == 0:
            logger.warning("No open history entry to close for tag %s (%s)", tag, name)
        commit_record(session, record)
        logger.info("Tag %s (%s) left Geopic", tag, name)
        return record

    if isinstance(state, ClosedCycle):
        record = state.record
        conditional_update(
            session,
            record,
            geopic_in_time=now,
            geopic_out_time=None,
            location=LocationState.geopic,
        )
        _open_history(session, record, now)
        commit_record(session, record)
        logger.info("Tag %s (%s) entered Geopic", tag, name)
        return record

    assert_never(state)


@dataclass
class TagLookup:
    status: Literal["success", "fail"]
    name: str | None = None
    visiting: str | None = None
    message: str | None = None


def check_tag(session: Session, tag: str | None) -> TagLookup:
    """Identify the holder of a tag without changing any state."""
    if not tag or not tag.strip():
        return TagLookup(status="fail", message="Tag ID not provided")

    record = find_visitor_location_by_tag(session, tag)
    if record is None:
        return TagLookup(status="fail", message="Tag not recognized")
    return TagLookup(status="success", name=record.name, visiting=record.visiting_employee)


def get_rfid_history(session: Session, tag: str | None = None) -> list[RfidHistory]:
    """Return history entries in insertion order, optionally for one tag."""
    stmt = select(RfidHistory)
    if tag:
        stmt = stmt.where(RfidHistory.rfid_tag == normalize_tag(tag))
    stmt = stmt.order_by(RfidHistory.id)  # type: ignore[arg-type]
    return list(session.exec(stmt).all())
