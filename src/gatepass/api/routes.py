"""REST API endpoints for gate scanners and RFID readers."""

import dataclasses
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import Session

from gatepass.database import get_session
from gatepass.errors import (
    ConcurrentUpdateError,
    DuplicateCheckInError,
    GatepassError,
    LocationNotFoundError,
    NotificationError,
    PersonNotFoundError,
    TagInUseError,
)
from gatepass.registry.models import PersonRef
from gatepass.registry.store import resolve_person
from gatepass.tracking.gates import (
    check_in,
    geopic_check_in,
    geopic_check_out,
    main_gate_check_out,
)
from gatepass.tracking.ledger import (
    assign_tag,
    list_student_locations,
    list_visitor_locations,
    release_tag,
)
from gatepass.tracking.models import RfidHistory, StudentLocation, VisitorLocation
from gatepass.tracking.rfid import check_tag, get_rfid_history, toggle

router = APIRouter(prefix="/api")

_STATUS_CODES: dict[type[GatepassError], int] = {
    PersonNotFoundError: 404,
    LocationNotFoundError: 404,
    DuplicateCheckInError: 409,
    ConcurrentUpdateError: 409,
    TagInUseError: 409,
    NotificationError: 502,
}


def raise_http(error: GatepassError) -> NoReturn:
    """Translate a domain error into the matching HTTP error."""
    raise HTTPException(status_code=_STATUS_CODES.get(type(error), 500), detail=str(error))


# Request models
class ApiModel(BaseModel):
    """Accepts camelCase keys from scanner clients as well as snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GateHints(ApiModel):
    passport: str | None = None
    intern: bool | None = None

    @property
    def foreign(self) -> bool:
        # Presence of the key selects the foreign registry, even if null
        return "passport" in self.model_fields_set

    @property
    def is_intern(self) -> bool:
        return self.intern is True


class CheckInRequest(GateHints):
    person_id: str


class ToggleRequest(ApiModel):
    rfid_tag: str
    name: str


class AssignTagRequest(ApiModel):
    rfid_tag: str


def _resolve(session: Session, person_id: str, hints: GateHints | None) -> PersonRef:
    hints = hints or GateHints()
    try:
        return resolve_person(session, person_id, foreign=hints.foreign, intern=hints.is_intern)
    except PersonNotFoundError as e:
        raise_http(e)


# --- Main gate ---


@router.post("/locations", status_code=201, response_model=None)
def create_location(
    request: CheckInRequest,
    session: Session = Depends(get_session),
) -> VisitorLocation | StudentLocation:
    person = _resolve(session, request.person_id, request)
    try:
        return check_in(session, person)
    except DuplicateCheckInError as e:
        raise_http(e)


@router.post("/locations/{person_id}/out", response_model=None)
def main_gate_out(
    person_id: str,
    request: GateHints | None = None,
    session: Session = Depends(get_session),
) -> VisitorLocation | StudentLocation:
    person = _resolve(session, person_id, request)
    try:
        return main_gate_check_out(session, person)
    except (LocationNotFoundError, ConcurrentUpdateError) as e:
        raise_http(e)


# --- Geopic gate ---


@router.put("/geopic-locations/{person_id}", response_model=None)
def geopic_in(
    person_id: str,
    request: GateHints | None = None,
    session: Session = Depends(get_session),
) -> VisitorLocation | StudentLocation:
    person = _resolve(session, person_id, request)
    try:
        return geopic_check_in(session, person)
    except (LocationNotFoundError, ConcurrentUpdateError) as e:
        raise_http(e)


@router.post("/geopic-locations/{person_id}/out", response_model=None)
def geopic_out(
    person_id: str,
    request: GateHints | None = None,
    session: Session = Depends(get_session),
) -> VisitorLocation | StudentLocation:
    person = _resolve(session, person_id, request)
    try:
        return geopic_check_out(session, person)
    except (LocationNotFoundError, ConcurrentUpdateError) as e:
        raise_http(e)


# --- Location ledger ---


@router.get("/visitor-locations")
def visitor_locations(
    session: Session = Depends(get_session),
) -> list[VisitorLocation]:
    return list_visitor_locations(session)


@router.get("/student-locations")
def student_locations(
    session: Session = Depends(get_session),
) -> list[StudentLocation]:
    return list_student_locations(session)


@router.put("/visitor-locations/{location_id}/rfid")
def assign_rfid_tag(
    location_id: int,
    request: AssignTagRequest,
    session: Session = Depends(get_session),
) -> dict[str, str | None]:
    try:
        record = assign_tag(session, location_id, request.rfid_tag)
    except (LocationNotFoundError, TagInUseError, ConcurrentUpdateError) as e:
        raise_http(e)
    return {"message": "RFID tag updated successfully", "rfidTag": record.rfid_tag}


@router.delete("/visitor-locations/{location_id}/rfid")
def release_rfid_tag(
    location_id: int,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    try:
        release_tag(session, location_id)
    except (LocationNotFoundError, ConcurrentUpdateError) as e:
        raise_http(e)
    return {"message": "RFID tag deleted successfully"}


# --- RFID ---


@router.post("/toggle")
def toggle_tag(
    request: ToggleRequest,
    session: Session = Depends(get_session),
) -> VisitorLocation:
    try:
        return toggle(session, request.rfid_tag, request.name)
    except ConcurrentUpdateError as e:
        raise_http(e)


@router.get("/check_tag")
def check_rfid_tag(
    tag_id: str | None = Query(default=None, alias="tagID"),
    session: Session = Depends(get_session),
) -> dict[str, str]:
    lookup = check_tag(session, tag_id)
    return {k: v for k, v in dataclasses.asdict(lookup).items() if v is not None}


@router.get("/rfid-history")
def rfid_history(
    tag: str | None = None,
    session: Session = Depends(get_session),
) -> list[RfidHistory]:
    return get_rfid_history(session, tag=tag)
